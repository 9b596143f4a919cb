import asyncio

import httpx
import pytest

from kb_chat.domain.exceptions import ApiError, NetworkError, RateLimitError
from kb_chat.providers.agent_client import AgentClient


class SettingsStub:
    agent_base_url = "http://agent.local/"
    agent_path = "/api/agent"
    agent_id = "agent-123"
    http_timeout = 1.0


def _fake_client(resp=None, exc=None, captured=None):
    captured = captured if captured is not None else {}

    class Client:
        def __init__(self, *a, **kw):
            captured["init"] = kw

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, url, json=None, **kw):
            captured["url"] = url
            captured["payload"] = json
            if exc is not None:
                raise exc
            return resp

    return Client


class Resp:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


def test_agent_client_payload_and_parse(monkeypatch):
    captured = {}
    body = {"success": True, "response": {"result": "Hi there"}}
    monkeypatch.setattr("httpx.AsyncClient", _fake_client(Resp(body=body), captured=captured))
    reply = asyncio.run(AgentClient(SettingsStub()).invoke("User: Hello"))
    assert reply.success is True
    assert reply.text == "Hi there"
    assert captured["url"] == "http://agent.local/api/agent"
    assert captured["payload"] == {"message": "User: Hello", "agent_id": "agent-123"}
    assert captured["init"]["timeout"] == 1.0


def test_agent_client_network_error(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", _fake_client(exc=httpx.ConnectError("refused")))
    with pytest.raises(NetworkError):
        asyncio.run(AgentClient(SettingsStub()).invoke("x"))


def test_agent_client_rate_limit(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", _fake_client(Resp(status_code=429)))
    with pytest.raises(RateLimitError):
        asyncio.run(AgentClient(SettingsStub()).invoke("x"))


def test_agent_client_server_error(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", _fake_client(Resp(status_code=502, text="bad gateway")))
    with pytest.raises(ApiError) as exc:
        asyncio.run(AgentClient(SettingsStub()).invoke("x"))
    assert exc.value.http_status == 502
    assert exc.value.message == "bad gateway"


def test_agent_client_invalid_json(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", _fake_client(Resp(body=ValueError("Expecting value"))))
    with pytest.raises(ApiError) as exc:
        asyncio.run(AgentClient(SettingsStub()).invoke("x"))
    assert exc.value.code == "INVALID_RESPONSE"
