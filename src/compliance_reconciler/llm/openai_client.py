from __future__ import annotations

import importlib
import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Protocol, cast

from ..config import OpenAISettings
from ..errors import UpstreamError, UpstreamErrorKind

logger = logging.getLogger(__name__)

OpenAI: Callable[..., Any] | None = None

_KIND_BY_EXCEPTION_NAME = {
    "RateLimitError": UpstreamErrorKind.RATE_LIMIT,
    "AuthenticationError": UpstreamErrorKind.AUTH,
    "PermissionDeniedError": UpstreamErrorKind.AUTH,
    "APITimeoutError": UpstreamErrorKind.TIMEOUT,
    "InternalServerError": UpstreamErrorKind.OVERLOADED,
}

_KIND_BY_STATUS = {
    401: UpstreamErrorKind.AUTH,
    403: UpstreamErrorKind.AUTH,
    408: UpstreamErrorKind.TIMEOUT,
    429: UpstreamErrorKind.RATE_LIMIT,
    503: UpstreamErrorKind.OVERLOADED,
    529: UpstreamErrorKind.OVERLOADED,
}


class CompletionClient(Protocol):
    """Anything that can turn a system prompt and user payload into raw text."""

    model: str

    def complete(self, *, system_prompt: str, user_prompt: str) -> str: ...


class OpenAICompletionClient:
    """Thin wrapper around the OpenAI Responses API with throttling and error mapping."""

    def __init__(self, settings: OpenAISettings, api_key: str) -> None:
        if not api_key:
            raise ValueError("OpenAI API key is required for analysis.")
        self._settings = settings
        self._api_key = api_key
        self._client_factory: Callable[..., Any] = _load_openai_factory()
        self._client: Any | None = None
        self._semaphore: threading.BoundedSemaphore | None = None
        if settings.parallel_requests > 0:
            self._semaphore = threading.BoundedSemaphore(settings.parallel_requests)
        self._max_attempts = max(1, settings.max_attempts)

    @property
    def settings(self) -> OpenAISettings:
        return self._settings

    @property
    def model(self) -> str:
        return self._settings.model

    def complete(self, *, system_prompt: str, user_prompt: str) -> str:
        """Send the analysis request and return the raw model output."""
        attempt = 0
        while True:
            attempt += 1
            try:
                with self._acquire_slot():
                    client = self._ensure_client()
                    response: Any = client.responses.create(
                        model=self._settings.model,
                        input=[
                            {"role": "system", "content": system_prompt},
                            {"role": "user", "content": user_prompt},
                        ],
                        temperature=self._settings.temperature,
                        max_output_tokens=self._settings.max_output_tokens,
                        top_p=self._settings.top_p,
                        timeout=self._settings.request_timeout,
                    )
                text = self._extract_text(response)
                logger.debug(
                    "OpenAI completion succeeded model=%s chars=%s",
                    self._settings.model,
                    len(text),
                )
                return text
            except UpstreamError:
                raise
            except Exception as exc:
                error = classify_error(exc)
                logger.warning(
                    "OpenAI completion failed kind=%s (attempt %s/%s): %s",
                    error.kind,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                if not error.retryable or attempt >= self._max_attempts:
                    raise error from exc
                time.sleep(min(2 ** (attempt - 1), 5))

    def _ensure_client(self) -> Any:
        if self._client is None:
            self._client = self._client_factory(
                api_key=self._api_key,
                base_url=self._settings.base_url,
                organization=self._settings.organization,
            )
        return self._client

    @contextmanager
    def _acquire_slot(self) -> Iterator[None]:
        if self._semaphore is None:
            yield
            return
        self._semaphore.acquire()
        try:
            yield
        finally:
            self._semaphore.release()

    @staticmethod
    def _extract_text(response: Any) -> str:
        output_text = getattr(response, "output_text", None)
        if isinstance(output_text, str) and output_text:
            return output_text
        output = getattr(response, "output", None)
        if not output:
            raise UpstreamError(
                UpstreamErrorKind.OTHER, "OpenAI response is missing output content."
            )
        first = OpenAICompletionClient._materialize_item(output[0])
        content = first.get("content")
        if not content:
            raise UpstreamError(
                UpstreamErrorKind.OTHER, "OpenAI response has no content segments."
            )
        segment = OpenAICompletionClient._materialize_item(content[0])
        text = segment.get("text")
        if not text:
            raise UpstreamError(
                UpstreamErrorKind.OTHER, "OpenAI response segment missing text."
            )
        return text

    @staticmethod
    def _materialize_item(item: Any) -> dict[str, Any]:
        if isinstance(item, dict):
            return cast(dict[str, Any], item)
        if hasattr(item, "model_dump"):
            dumpable: Any = item
            raw_dump: dict[str, Any] = dumpable.model_dump()
            return raw_dump
        if hasattr(item, "__dict__"):
            dumpable: Any = item
            raw_dict: dict[str, Any] = dict(dumpable.__dict__)
            return raw_dict
        raise UpstreamError(UpstreamErrorKind.OTHER, "Unexpected OpenAI response format.")


def classify_error(exc: BaseException) -> UpstreamError:
    """Map a provider exception onto an UpstreamError kind."""
    for klass in type(exc).__mro__:
        kind = _KIND_BY_EXCEPTION_NAME.get(klass.__name__)
        if kind is not None:
            return UpstreamError(kind, str(exc))
    status = getattr(exc, "status_code", None)
    if isinstance(status, int) and status in _KIND_BY_STATUS:
        return UpstreamError(_KIND_BY_STATUS[status], str(exc))
    message = str(exc).lower()
    if "overloaded" in message:
        return UpstreamError(UpstreamErrorKind.OVERLOADED, str(exc))
    if "timeout" in message or "timed out" in message:
        return UpstreamError(UpstreamErrorKind.TIMEOUT, str(exc))
    return UpstreamError(UpstreamErrorKind.OTHER, f"Analysis failed: {exc}")


def _load_openai_factory() -> Callable[..., Any]:
    """Dynamically import the OpenAI client factory to avoid hard dependency at import."""
    global OpenAI
    if OpenAI is not None:
        return OpenAI
    try:  # pragma: no cover - import guard
        module = importlib.import_module("openai")
    except Exception as exc:  # pragma: no cover - handled at runtime
        raise RuntimeError(
            "openai package is not installed. Install extras via 'pip install .[llm-openai]'."
        ) from exc
    openai_cls = getattr(module, "OpenAI", None)
    if openai_cls is None:  # pragma: no cover
        raise RuntimeError(
            "openai.OpenAI client class is unavailable in this environment."
        )
    OpenAI = cast(Callable[..., Any], openai_cls)
    return OpenAI
