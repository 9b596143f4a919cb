"""邮件发送流程。

把当前会话渲染成纯文本 transcript，包装成一条"请把这份摘要发邮件给 X"
的自然语言指令，再经由 AgentRequestOrchestrator 的同一调用路径交给远端
Agent 处理。真正的排版与投递由 Agent 完成，这里拿不到结构化的投递回执，
success 只代表 Agent 接受了指令。

对话框状态机：Idle → Sending → {Success（延迟后自动关闭）, Error（保持打开并显示错误）}。
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Literal, Optional

from kb_chat.agents.orchestrator import AgentRequestOrchestrator
from kb_chat.config.settings import settings
from kb_chat.domain.conversation import Conversation, ConversationStore
from kb_chat.domain.exceptions import ValidationError
from kb_chat.domain.identity import utcnow
from kb_chat.infrastructure.logging.logger import logger
from kb_chat.prompts import load_prompt


EmailStatus = Literal["idle", "sending", "success", "error"]

SEND_FAILED_MESSAGE = "Failed to send email. Please try again."


@dataclass
class EmailDialogState:
    is_open: bool = False
    recipient: str = ""
    status: EmailStatus = "idle"
    error: Optional[str] = None


def build_email_transcript(conversation: Conversation, now: datetime) -> str:
    header = f"Conversation: {conversation.title}\nDate: {now.strftime('%Y-%m-%d %H:%M:%S')}\n\n"
    body = "\n\n".join(
        f"{'You' if m.sender == 'user' else 'Assistant'}: {m.content}" for m in conversation.messages
    )
    return header + body


def build_email_instruction(recipient: str, transcript: str) -> str:
    return load_prompt("email_instruction").format(recipient=recipient, transcript=transcript)


class EmailDispatchWorkflow:
    def __init__(
        self,
        orchestrator: AgentRequestOrchestrator,
        store: ConversationStore,
        cfg=settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._orchestrator = orchestrator
        self._store = store
        self._settings = cfg
        self._clock = clock
        self._state = EmailDialogState()
        self._close_handle: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> EmailDialogState:
        return replace(self._state)

    def open(self, recipient: str = "") -> None:
        self._cancel_auto_close()
        self._state = EmailDialogState(is_open=True, recipient=recipient)

    def close(self) -> None:
        self._cancel_auto_close()
        self._state = EmailDialogState()

    async def send(self, recipient: str, conversation_id: Optional[str] = None) -> EmailDialogState:
        """发送当前（或指定）会话的邮件摘要。

        Raises:
            ValidationError: 收件人为空、会话不存在或没有消息、已有邮件在发送中。
                此时不会发起任何网络请求，错误信息同时写入对话框状态。

        成功后的自动关闭通过当前事件循环的 call_later 调度。若调用方用
        asyncio.run() 只驱动这一次发送，事件循环会在定时器触发前关闭，
        对话框将停留在 success 且保持打开，需要调用方自行 close()。
        """

        if self._state.status == "sending":
            raise ValidationError(code="EMAIL_IN_PROGRESS", message="An email is already being sent")
        target = (recipient or "").strip()
        if not target:
            self._reject("EMPTY_RECIPIENT", "Please enter a recipient email address")
        conv = self._store.get_conversation(conversation_id) if conversation_id else self._store.current
        if conv is None or not conv.messages:
            self._reject("EMPTY_CONVERSATION", "There are no messages to send")

        self._state = replace(self._state, recipient=target, status="sending", error=None)
        instruction = build_email_instruction(target, build_email_transcript(conv, self._clock()))
        try:
            reply = await self._orchestrator.request(instruction)
        except Exception as exc:  # noqa: BLE001 - 失败只体现在对话框状态上
            logger.warning(
                "Email dispatch failed",
                extra={"extra": {"conversation_id": conv.id, "error": str(exc)}},
            )
            self._state = replace(self._state, status="error", error=SEND_FAILED_MESSAGE)
            return self.state

        if not reply.success:
            self._state = replace(self._state, status="error", error=reply.error or SEND_FAILED_MESSAGE)
            logger.warning(
                "Email dispatch rejected by agent",
                extra={"extra": {"conversation_id": conv.id, "error": reply.error}},
            )
            return self.state

        self._state = replace(self._state, status="success", error=None)
        logger.info(
            "Email dispatched",
            extra={"extra": {"conversation_id": conv.id, "message_count": len(conv.messages)}},
        )
        self._schedule_auto_close()
        return self.state

    def _reject(self, code: str, message: str) -> None:
        self._state = replace(self._state, error=message)
        raise ValidationError(code=code, message=message)

    def _schedule_auto_close(self) -> None:
        self._cancel_auto_close()
        loop = asyncio.get_running_loop()
        self._close_handle = loop.call_later(self._settings.email_close_delay, self.close)

    def _cancel_auto_close(self) -> None:
        if self._close_handle is not None:
            self._close_handle.cancel()
            self._close_handle = None
