"""Agent 响应体解析。

不同 Agent 配置返回的响应包结构并不固定，回复文本按以下顺序取第一个
存在（不为 None）的值：

1. response.result
2. response.response
3. response 本身（当它是字符串时）
4. 顶层 raw_response
5. 兜底文本 "Unable to generate response"

这里只包含纯函数，便于单独测试。
"""

import json
from typing import Any, Mapping, Optional

from kb_chat.domain.exceptions import ApiError
from kb_chat.domain.models import AgentReply


FALLBACK_REPLY = "Unable to generate response"


def extract_reply_text(payload: Mapping[str, Any]) -> str:
    response = payload.get("response")
    candidates = []
    if isinstance(response, Mapping):
        candidates.append(response.get("result"))
        candidates.append(response.get("response"))
    elif isinstance(response, str):
        candidates.append(response)
    candidates.append(payload.get("raw_response"))

    for value in candidates:
        if value is not None:
            return _as_text(value)
    return FALLBACK_REPLY


def parse_agent_reply(payload: Any) -> AgentReply:
    """把响应 JSON 转成 AgentReply；顶层不是对象时视为畸形响应。"""

    if not isinstance(payload, Mapping):
        raise ApiError(
            code="INVALID_RESPONSE",
            message=f"Agent response must be a JSON object, got {type(payload).__name__}",
        )
    success = bool(payload.get("success"))
    return AgentReply(
        success=success,
        text=extract_reply_text(payload) if success else None,
        error=_error_detail(payload),
        raw=dict(payload),
    )


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def _error_detail(payload: Mapping[str, Any]) -> Optional[str]:
    for key in ("error", "message"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None
