from __future__ import annotations

import pytest

from compliance_reconciler.config import OpenAISettings
from compliance_reconciler.errors import UpstreamError, UpstreamErrorKind
from compliance_reconciler.llm import openai_client as oa_client


class DummySegment:
    def __init__(self, text: str) -> None:
        self.text = text


class DummyOutput:
    def __init__(self, text: str) -> None:
        self.content = [DummySegment(text)]


class DummyResponse:
    def __init__(self, text: str) -> None:
        self.output = [DummyOutput(text)]


class RateLimitError(Exception):
    """Named like the provider's exception so classification can see it."""


class AuthenticationError(Exception):
    pass


def _install_responses(monkeypatch, outcomes: list) -> dict[str, int]:
    attempts = {"count": 0}

    class DummyResponses:
        def create(self, **_: object):
            outcome = outcomes[attempts["count"]]
            attempts["count"] += 1
            if isinstance(outcome, Exception):
                raise outcome
            return DummyResponse(outcome)

    class DummyOpenAI:
        def __init__(self, **_: object) -> None:
            self.responses = DummyResponses()

    monkeypatch.setattr(oa_client, "OpenAI", DummyOpenAI)
    monkeypatch.setattr(oa_client.time, "sleep", lambda _: None)
    return attempts


def test_client_requires_api_key(monkeypatch):
    """Client constructor validates that an API key is provided."""
    monkeypatch.setattr(oa_client, "OpenAI", object())
    with pytest.raises(ValueError):
        oa_client.OpenAICompletionClient(OpenAISettings(), api_key="")


def test_client_extracts_first_text_segment(monkeypatch):
    attempts = _install_responses(monkeypatch, ['{"issues": []}'])
    client = oa_client.OpenAICompletionClient(OpenAISettings(), api_key="token")

    assert client.complete(system_prompt="s", user_prompt="u") == '{"issues": []}'
    assert attempts["count"] == 1
    assert client.model == "gpt-4.1-mini"


def test_client_does_not_retry_by_default(monkeypatch):
    """A single attempt is made unless max_attempts is raised."""
    attempts = _install_responses(monkeypatch, [RateLimitError("429"), "unused"])
    client = oa_client.OpenAICompletionClient(OpenAISettings(), api_key="token")

    with pytest.raises(UpstreamError) as excinfo:
        client.complete(system_prompt="s", user_prompt="u")
    assert excinfo.value.kind == UpstreamErrorKind.RATE_LIMIT
    assert attempts["count"] == 1


def test_client_retries_retryable_failures_when_configured(monkeypatch):
    attempts = _install_responses(
        monkeypatch, [RuntimeError("Request timed out"), "Recovered output"]
    )
    settings = OpenAISettings(max_attempts=3)
    client = oa_client.OpenAICompletionClient(settings, api_key="token")

    assert client.complete(system_prompt="s", user_prompt="u") == "Recovered output"
    assert attempts["count"] == 2


def test_client_never_retries_auth_failures(monkeypatch):
    attempts = _install_responses(monkeypatch, [AuthenticationError("bad key"), "x"])
    client = oa_client.OpenAICompletionClient(
        OpenAISettings(max_attempts=3), api_key="token"
    )
    with pytest.raises(UpstreamError) as excinfo:
        client.complete(system_prompt="s", user_prompt="u")
    assert excinfo.value.kind == UpstreamErrorKind.AUTH
    assert attempts["count"] == 1


def test_classify_error_uses_status_and_message():
    class StatusError(Exception):
        def __init__(self, status_code: int) -> None:
            super().__init__(f"status {status_code}")
            self.status_code = status_code

    assert oa_client.classify_error(StatusError(529)).kind == UpstreamErrorKind.OVERLOADED
    assert oa_client.classify_error(StatusError(401)).kind == UpstreamErrorKind.AUTH
    assert (
        oa_client.classify_error(RuntimeError("Model is overloaded")).kind
        == UpstreamErrorKind.OVERLOADED
    )
    assert oa_client.classify_error(ValueError("boom")).kind == UpstreamErrorKind.OTHER
