"""远端接口集成层。

该包下的模块负责：
- 定义客户端抽象接口 (base)。
- 解析 Agent 响应体 (agent_response)。
- 提供 Agent 与知识库的 HTTP 实现 (agent_client、rag_client)。
"""

from kb_chat.config.settings import settings
from kb_chat.providers.agent_client import AgentClient
from kb_chat.providers.base import AgentProvider, KnowledgeBaseProvider
from kb_chat.providers.rag_client import RagClient


def create_agent_client(cfg=None) -> AgentProvider:
    """创建 Agent 客户端，默认使用全局配置。"""

    return AgentClient(cfg or settings)


def create_rag_client(cfg=None) -> KnowledgeBaseProvider:
    return RagClient(cfg or settings)
