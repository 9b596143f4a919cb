"""远端 Agent 调用适配器。

本模块负责：

1. 把 transcript 与 agent_id 组装成 `{message, agent_id}` 请求体。
2. 调用 Agent 端点并处理网络/HTTP 异常。
3. 将响应 JSON 交给 agent_response 解析为统一的 AgentReply。
"""

import httpx

from kb_chat.config.settings import settings
from kb_chat.domain.exceptions import ApiError, NetworkError, RateLimitError
from kb_chat.domain.models import AgentReply, AgentRequest
from kb_chat.providers.agent_response import parse_agent_reply


class AgentClient:
    """Agent 端点客户端实现。"""

    name = "agent"

    def __init__(self, cfg=settings):
        # Settings 里包含 base_url、agent_id、超时等配置
        self._settings = cfg

    @property
    def endpoint(self) -> str:
        return f"{self._settings.agent_base_url.rstrip('/')}{self._settings.agent_path}"

    async def invoke(self, message: str) -> AgentReply:
        req = AgentRequest(message=message, agent_id=self._settings.agent_id)
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    self.endpoint,
                    json=req.to_payload(),
                    headers={"Content-Type": "application/json"},
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="Agent rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(code="INVALID_RESPONSE", message=f"Agent response is not JSON: {e}")
        return parse_agent_reply(data)
