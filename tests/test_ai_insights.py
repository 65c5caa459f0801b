"""
Tests for the AI narrative step.

Network calls are mocked; covers the missing-key guard, request payload,
and the fallback on transport errors or malformed responses.
"""
from unittest.mock import MagicMock

import pytest
import requests

import ai_insights
from ai_insights import (
    NO_CORRELATIONS_MESSAGE,
    NO_KEY_MESSAGE,
    UNAVAILABLE_MESSAGE,
    build_prompt,
    generate_ai_insights,
    is_placeholder,
)
from models import CorrelationResult

CORR = CorrelationResult(
    metric1="sleep_efficiency", metric2="recovery_score", correlation=0.85,
    strength="strong", direction="positive", n=21, p_value=0.0001,
    explanation="Sleep efficiency strongly increases with recovery score (r=0.850)",
)


def _session(json_body=None, exc=None):
    session = MagicMock()
    if exc is not None:
        session.post.side_effect = exc
    else:
        session.post.return_value.json.return_value = json_body
    return session


@pytest.fixture
def with_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


class TestGenerateAiInsights:

    def test_no_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        session = _session()
        assert generate_ai_insights([CORR], 21, session=session) == NO_KEY_MESSAGE
        session.post.assert_not_called()

    def test_no_correlations(self, with_key):
        assert generate_ai_insights([], 21, session=_session()) == NO_CORRELATIONS_MESSAGE

    def test_success_payload(self, with_key):
        body = {"choices": [{"message": {"content": "  Insight 1: Sleep drives recovery.  "}}]}
        session = _session(body)
        text = generate_ai_insights([CORR], 21, session=session)
        assert text == "Insight 1: Sleep drives recovery."

        _, kwargs = session.post.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["model"] == ai_insights.config.OPENAI_MODEL
        assert kwargs["json"]["max_tokens"] == 500
        assert kwargs["json"]["messages"][0]["role"] == "system"
        assert "21 days" in kwargs["json"]["messages"][1]["content"]

    def test_transport_error(self, with_key):
        session = _session(exc=requests.ConnectionError("boom"))
        assert generate_ai_insights([CORR], 21, session=session) == UNAVAILABLE_MESSAGE

    def test_http_error(self, with_key):
        session = _session({})
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("429")
        assert generate_ai_insights([CORR], 21, session=session) == UNAVAILABLE_MESSAGE

    @pytest.mark.parametrize("body", [{}, {"choices": []}, {"choices": [{"message": {}}]}])
    def test_malformed_response(self, with_key, body):
        assert generate_ai_insights([CORR], 21, session=_session(body)) == UNAVAILABLE_MESSAGE

    def test_empty_content(self, with_key):
        body = {"choices": [{"message": {"content": ""}}]}
        assert generate_ai_insights([CORR], 21, session=_session(body)) == UNAVAILABLE_MESSAGE


class TestPrompt:

    def test_lists_each_correlation(self):
        prompt = build_prompt([CORR], 30)
        assert "30 days" in prompt
        assert "sleep_efficiency vs recovery_score: 0.850 (strong positive)" in prompt
        assert "exactly 3" in prompt

    def test_placeholders(self):
        assert is_placeholder(NO_KEY_MESSAGE)
        assert is_placeholder(UNAVAILABLE_MESSAGE)
        assert not is_placeholder("Insight 1: ...")
