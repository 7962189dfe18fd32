"""
Tests for the AI completion client.
"""

from unittest.mock import Mock

import pytest
import requests

from marketsync.enhancer.ai_client import ANTHROPIC_URL, AIClient, AIClientError, parse_json_response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


def test_complete_returns_text(session, make_response):
    """Test a successful completion."""
    session.post.return_value = make_response(200, {"content": [{"type": "text", "text": "{\"mappings\": {}}"}]})
    client = AIClient(api_key="sk-test", model="test-model", max_tokens=100, session=session)

    assert client.complete("map these fields") == "{\"mappings\": {}}"

    args, kwargs = session.post.call_args
    assert args[0] == ANTHROPIC_URL
    assert kwargs["headers"]["x-api-key"] == "sk-test"
    assert kwargs["json"]["model"] == "test-model"
    assert kwargs["json"]["messages"] == [{"role": "user", "content": "map these fields"}]


def test_complete_requires_key(session):
    """Test that an unconfigured client never calls out."""
    client = AIClient(api_key="", session=session)

    with pytest.raises(AIClientError):
        client.complete("prompt")
    session.post.assert_not_called()


def test_complete_http_error(session, make_response):
    """Test a non-200 reply."""
    session.post.return_value = make_response(529, {"error": {"type": "overloaded_error"}})

    with pytest.raises(AIClientError, match="529"):
        AIClient(api_key="sk-test", session=session).complete("prompt")


def test_complete_unexpected_body(session, make_response):
    """Test a reply without content."""
    session.post.return_value = make_response(200, {"content": []})

    with pytest.raises(AIClientError):
        AIClient(api_key="sk-test", session=session).complete("prompt")


def test_parse_json_response_fences():
    """Test JSON extraction from fenced and bare replies."""
    assert parse_json_response("```json\n{\"a\": 1}\n```") == {"a": 1}
    assert parse_json_response("```\n[1, 2]\n```") == [1, 2]
    assert parse_json_response(" {\"b\": true} ") == {"b": True}
    with pytest.raises(ValueError):
        parse_json_response("no json here")
