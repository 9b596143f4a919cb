"""Agent 请求编排器。

每个发送周期的状态机为 Idle → Sending → {Fulfilled, Failed} → Idle：

1. 乐观更新：先把用户消息追加到会话，再发起网络调用。
2. 把整个会话拼成 transcript 发送给 Agent（Agent 端无状态）。
3. 调用结束后按发起时捕获的会话 ID 写回恰好一条消息：成功时为 Agent
   回复，失败时为固定的错误提示。
4. 无论成功、失败还是抛出异常，都会清除该会话的 pending 标记。

pending 标记按会话 ID 维护，不同会话的发送互不阻塞。
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Set
from uuid import uuid4

from kb_chat.domain.conversation import ConversationStore, Message
from kb_chat.domain.exceptions import BusinessError, ValidationError
from kb_chat.domain.identity import IdGenerator, utcnow
from kb_chat.domain.models import AgentReply
from kb_chat.infrastructure.logging.logger import logger
from kb_chat.providers.base import AgentProvider


ROLE_LABELS = {"user": "User", "agent": "Assistant"}
ERROR_REPLY = "Sorry, I encountered an error processing your message. Please try again."


def build_transcript(messages: Iterable[Message]) -> str:
    """把消息按顺序渲染为 "<Role>: <content>" 行并用换行连接。"""

    return "\n".join(f"{ROLE_LABELS[m.sender]}: {m.content}" for m in messages)


class AgentRequestOrchestrator:
    def __init__(
        self,
        store: ConversationStore,
        client: AgentProvider,
        ids: Optional[IdGenerator] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._client = client
        self._ids = ids or IdGenerator()
        self._clock = clock
        self._pending: Set[str] = set()

    @property
    def pending(self) -> FrozenSet[str]:
        return frozenset(self._pending)

    @property
    def loading(self) -> bool:
        """是否有任意会话处于发送中。"""

        return bool(self._pending)

    def is_loading(self, conversation_id: str) -> bool:
        return conversation_id in self._pending

    async def request(self, message: str) -> AgentReply:
        """统一的 Agent 调用路径，聊天发送与邮件发送共用。

        传输失败或响应畸形时抛出 BusinessError，由调用方决定如何收敛。
        """

        start = time.time()
        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}", "client": self._client.name}
        self._log(logging.INFO, "Calling agent", log_ctx, length=len(message))
        try:
            reply = await self._client.invoke(message)
        except BusinessError as exc:
            self._log(
                logging.WARNING,
                "Agent call failed",
                log_ctx,
                code=exc.code,
                error=exc.message,
                elapsed_seconds=round(time.time() - start, 2),
            )
            raise
        self._log(
            logging.INFO,
            "Agent call finished",
            log_ctx,
            success=reply.success,
            elapsed_seconds=round(time.time() - start, 2),
        )
        return reply

    async def send_message(self, conversation_id: str, content: str) -> Message:
        """执行一个完整的发送周期，返回追加的 Agent 回复（或错误提示）消息。

        Raises:
            ValidationError: 输入为空、会话不存在或该会话已有发送在进行中。
                校验失败时不修改任何状态，也不发起网络请求。
        """

        if not content or not content.strip():
            raise ValidationError(code="EMPTY_MESSAGE", message="Message must not be empty")
        if self._store.get_conversation(conversation_id) is None:
            raise ValidationError(
                code="CONVERSATION_NOT_FOUND",
                message=f"Conversation {conversation_id} not found",
            )
        if conversation_id in self._pending:
            raise ValidationError(
                code="SEND_IN_PROGRESS",
                message="A message is already being sent in this conversation",
            )

        self._pending.add(conversation_id)
        try:
            user_message = Message(
                id=self._ids.new_id(),
                content=content,
                sender="user",
                timestamp=self._clock(),
            )
            updated = self._store.append_message(conversation_id, user_message)
            transcript = build_transcript(updated.messages)

            try:
                reply = await self.request(transcript)
            except BusinessError:
                reply_text = ERROR_REPLY
            except Exception:  # noqa: BLE001 - 任何失败都要收敛为一条错误消息
                logger.exception("Unexpected agent failure")
                reply_text = ERROR_REPLY
            else:
                reply_text = reply.text if reply.success and reply.text is not None else ERROR_REPLY

            agent_message = Message(
                id=self._ids.reply_id(user_message.id),
                content=reply_text,
                sender="agent",
                timestamp=self._clock(),
            )
            # 按发起时捕获的会话 ID 写回，而不是写给"当前会话"
            self._store.append_message(conversation_id, agent_message)
            return agent_message
        finally:
            self._pending.discard(conversation_id)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
