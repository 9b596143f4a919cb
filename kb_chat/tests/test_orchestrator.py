import asyncio
from datetime import datetime, timezone

import pytest

from kb_chat.agents.orchestrator import ERROR_REPLY, AgentRequestOrchestrator, build_transcript
from kb_chat.domain.conversation import Message
from kb_chat.domain.exceptions import ApiError, NetworkError, ValidationError
from kb_chat.domain.models import AgentReply
from kb_chat.infrastructure.storage.memory_store import InMemoryConversationStore
from kb_chat.providers.agent_response import parse_agent_reply


class FakeAgent:
    name = "fake"

    def __init__(self, reply=None, exc=None, on_invoke=None):
        self.reply = reply
        self.exc = exc
        self.on_invoke = on_invoke
        self.calls = []

    async def invoke(self, message):
        self.calls.append(message)
        if self.on_invoke:
            self.on_invoke()
        if self.exc:
            raise self.exc
        return self.reply


def _setup(agent):
    store = InMemoryConversationStore()
    orchestrator = AgentRequestOrchestrator(store, agent)
    return store, orchestrator


def test_build_transcript_labels():
    store, _ = _setup(FakeAgent())
    conv = store.create_conversation()
    now = datetime.now(timezone.utc)
    store.append_message(conv.id, Message(id="1", content="Hello", sender="user", timestamp=now))
    store.append_message(conv.id, Message(id="1.1", content="Hi", sender="agent", timestamp=now))
    assert build_transcript(conv.messages) == "User: Hello\nAssistant: Hi"


def test_send_success_appends_reply():
    agent = FakeAgent(reply=parse_agent_reply({"success": True, "response": {"result": "Hi there"}}))
    store, orchestrator = _setup(agent)
    conv = store.create_conversation()
    reply = asyncio.run(orchestrator.send_message(conv.id, "Hello"))
    assert reply.content == "Hi there"
    assert [(m.sender, m.content) for m in conv.messages] == [("user", "Hello"), ("agent", "Hi there")]
    assert conv.messages[0].id < conv.messages[1].id
    assert agent.calls == ["User: Hello"]
    assert orchestrator.loading is False


def test_full_transcript_sent_every_time():
    agent = FakeAgent(reply=AgentReply(success=True, text="ok"))
    store, orchestrator = _setup(agent)
    conv = store.create_conversation()
    asyncio.run(orchestrator.send_message(conv.id, "one"))
    asyncio.run(orchestrator.send_message(conv.id, "two"))
    assert agent.calls[-1] == "User: one\nAssistant: ok\nUser: two"
    assert len(conv.messages) == 4


def test_user_message_visible_and_loading_during_call():
    seen = {}
    store = InMemoryConversationStore()

    def observe():
        conv = store.current
        seen["messages"] = [m.content for m in conv.messages]
        seen["loading"] = orchestrator.is_loading(conv.id)

    orchestrator = AgentRequestOrchestrator(store, FakeAgent(reply=AgentReply(success=True, text="ok"), on_invoke=observe))
    conv = store.create_conversation()
    asyncio.run(orchestrator.send_message(conv.id, "Hello"))
    assert seen == {"messages": ["Hello"], "loading": True}
    assert orchestrator.is_loading(conv.id) is False


@pytest.mark.parametrize(
    "agent",
    [
        FakeAgent(reply=AgentReply(success=False, error="nope")),
        FakeAgent(exc=NetworkError(code="NETWORK_ERROR", message="offline")),
        FakeAgent(exc=ApiError(code="INVALID_RESPONSE", message="bad json")),
        FakeAgent(exc=RuntimeError("unexpected")),
    ],
)
def test_failures_append_exactly_one_error_message(agent):
    store, orchestrator = _setup(agent)
    conv = store.create_conversation()
    reply = asyncio.run(orchestrator.send_message(conv.id, "Hello"))
    assert reply.content == ERROR_REPLY
    assert [(m.sender, m.content) for m in conv.messages] == [("user", "Hello"), ("agent", ERROR_REPLY)]
    assert orchestrator.loading is False


def test_validation_errors_do_not_mutate():
    agent = FakeAgent(reply=AgentReply(success=True, text="ok"))
    store, orchestrator = _setup(agent)
    conv = store.create_conversation()
    with pytest.raises(ValidationError) as exc:
        asyncio.run(orchestrator.send_message(conv.id, "   "))
    assert exc.value.code == "EMPTY_MESSAGE"
    with pytest.raises(ValidationError) as exc:
        asyncio.run(orchestrator.send_message("missing", "Hello"))
    assert exc.value.code == "CONVERSATION_NOT_FOUND"
    assert conv.messages == []
    assert agent.calls == []


def test_stale_reply_routes_to_originating_conversation():
    async def scenario():
        gate = asyncio.Event()

        class SlowAgent:
            name = "slow"

            async def invoke(self, message):
                await gate.wait()
                return AgentReply(success=True, text="late answer")

        store = InMemoryConversationStore()
        orchestrator = AgentRequestOrchestrator(store, SlowAgent())
        first = store.create_conversation()
        task = asyncio.create_task(orchestrator.send_message(first.id, "question"))
        await asyncio.sleep(0)
        second = store.create_conversation()
        assert store.current_id == second.id
        gate.set()
        await task
        return store, first, second

    store, first, second = asyncio.run(scenario())
    assert [m.content for m in first.messages] == ["question", "late answer"]
    assert second.messages == []


def test_concurrent_sends_to_different_conversations():
    async def scenario():
        gate = asyncio.Event()

        class SlowAgent:
            name = "slow"

            async def invoke(self, message):
                await gate.wait()
                return AgentReply(success=True, text=f"re: {message}")

        store = InMemoryConversationStore()
        orchestrator = AgentRequestOrchestrator(store, SlowAgent())
        a = store.create_conversation()
        b = store.create_conversation()
        task_a = asyncio.create_task(orchestrator.send_message(a.id, "A"))
        task_b = asyncio.create_task(orchestrator.send_message(b.id, "B"))
        await asyncio.sleep(0)
        assert orchestrator.pending == frozenset({a.id, b.id})
        with pytest.raises(ValidationError) as exc:
            await orchestrator.send_message(a.id, "again")
        assert exc.value.code == "SEND_IN_PROGRESS"
        gate.set()
        await asyncio.gather(task_a, task_b)
        return orchestrator, a, b

    orchestrator, a, b = asyncio.run(scenario())
    assert [m.content for m in a.messages] == ["A", "re: User: A"]
    assert [m.content for m in b.messages] == ["B", "re: User: B"]
    assert orchestrator.loading is False


def test_reply_for_deleted_conversation_is_dropped():
    async def scenario():
        gate = asyncio.Event()

        class SlowAgent:
            name = "slow"

            async def invoke(self, message):
                await gate.wait()
                return AgentReply(success=True, text="orphan")

        store = InMemoryConversationStore()
        orchestrator = AgentRequestOrchestrator(store, SlowAgent())
        conv = store.create_conversation()
        task = asyncio.create_task(orchestrator.send_message(conv.id, "hi"))
        await asyncio.sleep(0)
        store.delete_conversation(conv.id)
        gate.set()
        await task
        return store, orchestrator

    store, orchestrator = asyncio.run(scenario())
    assert store.list_conversations() == []
    assert orchestrator.loading is False
