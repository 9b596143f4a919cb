"""远端接口抽象。

上层组件不直接依赖 httpx，而是依赖这里的协议：

- AgentProvider: 调用远端 Agent，返回统一的 AgentReply。
- KnowledgeBaseProvider: 向知识库上传文档、按名称删除文档。

测试与展示层可以注入任意满足协议的实现（例如内存中的假客户端）。
"""

from typing import List, Protocol

from kb_chat.domain.documents import UploadFile
from kb_chat.domain.models import AgentReply


class AgentProvider(Protocol):
    """远端 Agent 客户端协议。

    - name: 客户端名称，用于日志。
    - invoke(message): 发送一次完整 transcript。传输失败、非 2xx 或响应体
      无法解析时抛出 BusinessError 子类。
    """

    name: str

    async def invoke(self, message: str) -> AgentReply:
        ...


class KnowledgeBaseProvider(Protocol):
    """知识库客户端协议。

    - check_configured(): 同步检查配置（如 ragId），缺失时抛出 ValidationError。
      注册表在登记任何文档之前调用它。
    """

    name: str

    def check_configured(self) -> None:
        ...

    async def upload(self, file: UploadFile) -> None:
        ...

    async def delete_documents(self, names: List[str]) -> None:
        ...
