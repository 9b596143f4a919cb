import pytest

from kb_chat.domain.exceptions import ApiError
from kb_chat.providers.agent_response import FALLBACK_REPLY, extract_reply_text, parse_agent_reply


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"success": True, "response": {"result": "Hi"}}, "Hi"),
        ({"success": True, "response": {"response": "Hi"}}, "Hi"),
        ({"success": True, "response": "Hi"}, "Hi"),
        ({"success": True, "raw_response": "Hi"}, "Hi"),
        ({"success": True}, FALLBACK_REPLY),
    ],
)
def test_extract_reply_text_shapes(payload, expected):
    assert extract_reply_text(payload) == expected


def test_result_takes_precedence_over_everything():
    payload = {
        "success": True,
        "response": {"result": "first", "response": "second"},
        "raw_response": "third",
    }
    assert extract_reply_text(payload) == "first"


def test_empty_string_counts_as_present():
    assert extract_reply_text({"response": {"result": ""}, "raw_response": "raw"}) == ""


def test_object_without_known_fields_falls_through_to_raw_response():
    assert extract_reply_text({"response": {"other": 1}, "raw_response": "raw"}) == "raw"


def test_non_string_result_is_rendered_as_json():
    assert extract_reply_text({"response": {"result": {"answer": "是"}}}) == '{"answer": "是"}'


def test_parse_agent_reply_unsuccessful():
    reply = parse_agent_reply({"success": False, "error": "agent offline"})
    assert reply.success is False
    assert reply.text is None
    assert reply.error == "agent offline"


def test_parse_agent_reply_rejects_non_object():
    with pytest.raises(ApiError) as exc:
        parse_agent_reply(["not", "an", "object"])
    assert exc.value.code == "INVALID_RESPONSE"
