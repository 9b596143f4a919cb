from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional, Protocol


# 消息发送方：用户或远端 Agent
Sender = Literal["user", "agent"]

DEFAULT_TITLE = "New Conversation"
TITLE_MAX_LENGTH = 50


@dataclass(frozen=True)
class Message:
    id: str
    content: str
    sender: Sender
    timestamp: datetime


@dataclass
class Conversation:
    """一个会话。messages 只追加，不重排也不删除单条消息。"""

    id: str
    title: str
    created_at: datetime
    messages: List[Message] = field(default_factory=list)


def derive_title(content: str) -> str:
    """从首条消息派生标题：截取前 50 个字符，不追加省略号。"""

    return content[:TITLE_MAX_LENGTH]


class ConversationStore(Protocol):
    def create_conversation(self) -> Conversation:
        ...

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        ...

    def list_conversations(self) -> List[Conversation]:
        ...

    def select_conversation(self, conversation_id: str) -> Optional[Conversation]:
        ...

    def delete_conversation(self, conversation_id: str) -> None:
        ...

    def append_message(self, conversation_id: str, message: Message) -> Optional[Conversation]:
        ...

    @property
    def current(self) -> Optional[Conversation]:
        ...
