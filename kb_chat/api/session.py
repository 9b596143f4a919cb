"""对外会话接口。

ChatSession 是展示层持有的显式会话状态对象：会话存储、文档注册表、
Agent 编排器与邮件流程都挂在它上面，随进程创建、随进程销毁，
不存在模块级单例。所有状态只保存在内存中。
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from kb_chat.agents.email_workflow import EmailDialogState, EmailDispatchWorkflow
from kb_chat.agents.orchestrator import AgentRequestOrchestrator
from kb_chat.config.settings import settings
from kb_chat.domain.conversation import Conversation, Message
from kb_chat.domain.documents import Document, UploadFile
from kb_chat.domain.exceptions import ValidationError
from kb_chat.domain.identity import IdGenerator, utcnow
from kb_chat.domain.models import OperationResult
from kb_chat.infrastructure.storage.memory_store import InMemoryConversationStore
from kb_chat.knowledge.registry import DocumentRegistry
from kb_chat.providers import create_agent_client, create_rag_client
from kb_chat.providers.base import AgentProvider, KnowledgeBaseProvider


class ChatSession:
    def __init__(
        self,
        agent_client: Optional[AgentProvider] = None,
        rag_client: Optional[KnowledgeBaseProvider] = None,
        cfg=settings,
        ids: Optional[IdGenerator] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._settings = cfg
        self._clock = clock
        self.ids = ids or IdGenerator()
        self.conversations = InMemoryConversationStore(ids=self.ids, clock=clock)
        self.documents = DocumentRegistry(rag_client or create_rag_client(cfg), ids=self.ids, clock=clock)
        self.orchestrator = AgentRequestOrchestrator(
            self.conversations,
            agent_client or create_agent_client(cfg),
            ids=self.ids,
            clock=clock,
        )
        self.email = EmailDispatchWorkflow(self.orchestrator, self.conversations, cfg=cfg, clock=clock)

    # ---- 会话 ----

    @property
    def current(self) -> Optional[Conversation]:
        return self.conversations.current

    @property
    def loading(self) -> bool:
        """当前会话是否在等待 Agent 回复（输入框据此禁用）。"""

        current_id = self.conversations.current_id
        return current_id is not None and self.orchestrator.is_loading(current_id)

    def new_conversation(self) -> Conversation:
        return self.conversations.create_conversation()

    def select(self, conversation_id: str) -> Optional[Conversation]:
        return self.conversations.select_conversation(conversation_id)

    def delete_conversation(self, conversation_id: str) -> None:
        self.conversations.delete_conversation(conversation_id)

    async def send(self, content: str) -> Message:
        """向当前会话发送一条消息，返回追加的 Agent 回复或错误提示。"""

        current_id = self.conversations.current_id
        if current_id is None:
            raise ValidationError(code="NO_ACTIVE_CONVERSATION", message="No conversation selected")
        return await self.orchestrator.send_message(current_id, content)

    # ---- 知识库 ----

    async def upload(self, file: UploadFile) -> Optional[Document]:
        return await self.documents.upload(file)

    async def delete_document(self, document_id: str) -> OperationResult:
        return await self.documents.delete_document(document_id)

    # ---- 邮件 ----

    def open_email(self, recipient: str = "") -> None:
        self.email.open(recipient)

    async def send_email(self, recipient: str) -> EmailDialogState:
        return await self.email.send(recipient)

    # ---- 展示数据 ----

    def conversation_summaries(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """侧边栏列表数据，按新近程度排列。"""

        now = now or self._clock()
        current_id = self.conversations.current_id
        return [
            {
                "id": c.id,
                "title": c.title,
                "created_at": c.created_at.isoformat(),
                "age": format_relative_time(c.created_at, now),
                "message_count": len(c.messages),
                "active": c.id == current_id,
            }
            for c in self.conversations.list_conversations()
        ]

    def current_messages(self) -> List[Dict[str, Any]]:
        conv = self.conversations.current
        if conv is None:
            return []
        return [
            {
                "id": m.id,
                "sender": m.sender,
                "content": m.content,
                "timestamp": m.timestamp.isoformat(),
            }
            for m in conv.messages
        ]


def create_session(cfg=None) -> ChatSession:
    """按配置创建一个使用真实 HTTP 客户端的会话。"""

    return ChatSession(cfg=cfg or settings)


def format_relative_time(then: datetime, now: datetime) -> str:
    """把时间渲染为 "now" / "5m ago" / "3h ago" / "2d ago"，超过一周显示日期。"""

    seconds = (now - then).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)
    if minutes < 1:
        return "now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return then.date().isoformat()
