"""远端 Agent 交互与操作结果的统一数据模型。

- AgentRequest: 发往 Agent 端点的请求体 `{message, agent_id}`。
- AgentReply: 从 Agent 响应解析出的统一结果。
- OperationResult: 需要把远端失败交还给调用方（而不是抛出）的操作结果。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class AgentRequest:
    message: str  # 完整 transcript，Agent 端不保存会话状态
    agent_id: str

    def to_payload(self) -> Dict[str, Any]:
        return {"message": self.message, "agent_id": self.agent_id}


@dataclass
class AgentReply:
    """一次 Agent 调用的解析结果。

    - success: 响应体中的 success 标志。
    - text: 按字段优先级提取出的回复文本（success 为 False 时为 None）。
    - error: 远端给出的错误说明（若有）。
    - raw: 原始响应 JSON，用于调试或日志记录。
    """

    success: bool
    text: Optional[str] = None
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationResult:
    ok: bool
    code: Optional[str] = None
    error: Optional[str] = None
