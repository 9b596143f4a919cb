"""进程内会话存储。

会话集合是唯一的数据源；"当前会话" 只保存 ID，读取时总是回到集合里
按 ID 查找，因此集合中的副本与当前会话不可能出现内容不一致。
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime

from kb_chat.domain.conversation import (
    DEFAULT_TITLE,
    Conversation,
    ConversationStore,
    Message,
    derive_title,
)
from kb_chat.domain.identity import IdGenerator, utcnow
from kb_chat.infrastructure.logging.logger import logger


class InMemoryConversationStore(ConversationStore):
    def __init__(
        self,
        ids: Optional[IdGenerator] = None,
        clock: Callable[[], datetime] = utcnow,
        default_title: str = DEFAULT_TITLE,
    ):
        self._ids = ids or IdGenerator()
        self._clock = clock
        self._default_title = default_title
        # 按新近程度排列，最新创建的在最前
        self._conversations: List[Conversation] = []
        self._current_id: Optional[str] = None

    @property
    def current_id(self) -> Optional[str]:
        return self._current_id

    @property
    def current(self) -> Optional[Conversation]:
        if self._current_id is None:
            return None
        return self.get_conversation(self._current_id)

    def create_conversation(self) -> Conversation:
        conv = Conversation(id=self._ids.new_id(), title=self._default_title, created_at=self._clock())
        self._conversations.insert(0, conv)
        self._current_id = conv.id
        self._log(logging.INFO, "Created conversation", conversation_id=conv.id)
        return conv

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        for conv in self._conversations:
            if conv.id == conversation_id:
                return conv
        return None

    def list_conversations(self) -> List[Conversation]:
        return list(self._conversations)

    def select_conversation(self, conversation_id: str) -> Optional[Conversation]:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            self._log(logging.WARNING, "Select ignored, conversation not found", conversation_id=conversation_id)
            return None
        self._current_id = conv.id
        return conv

    def delete_conversation(self, conversation_id: str) -> None:
        remaining = [c for c in self._conversations if c.id != conversation_id]
        if len(remaining) == len(self._conversations):
            self._log(logging.WARNING, "Delete ignored, conversation not found", conversation_id=conversation_id)
            return
        self._conversations = remaining
        if self._current_id == conversation_id:
            self._current_id = remaining[0].id if remaining else None
        self._log(
            logging.INFO,
            "Deleted conversation",
            conversation_id=conversation_id,
            current_id=self._current_id,
        )

    def append_message(self, conversation_id: str, message: Message) -> Optional[Conversation]:
        """向指定会话追加一条消息。

        首条消息决定会话标题，此后标题不再变化。会话已被删除时（例如迟到的
        Agent 回复）不做任何修改并返回 None。
        """

        conv = self.get_conversation(conversation_id)
        if conv is None:
            self._log(
                logging.WARNING,
                "Append ignored, conversation not found",
                conversation_id=conversation_id,
                message_id=message.id,
            )
            return None
        if not conv.messages:
            conv.title = derive_title(message.content)
        conv.messages.append(message)
        self._log(
            logging.INFO,
            "Appended message",
            conversation_id=conv.id,
            message_id=message.id,
            sender=message.sender,
            length=len(message.content),
        )
        return conv

    @staticmethod
    def _log(level: int, message: str, **fields: Any) -> None:
        payload: Dict[str, Any] = {"component": "conversation_store"}
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
