from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, List

from . import __version__
from .aggregation import aggregate
from .config import OpenAISettings, ReconcilerConfig
from .errors import DocumentTooLarge, UpstreamError, UpstreamErrorKind
from .llm import CompletionClient
from .models import AnalysisResult, DocumentModel, Finding, ResultMeta
from .parsing import parse_response
from .prompts import SYSTEM_PROMPT, USER_PROMPT_TEMPLATE
from .validation import REJECTED_BY_BOUNDS, Accepted, SpanValidator

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisEngine:
    """Runs one document through the model and reconciles the reply against it."""

    def __init__(
        self,
        client: CompletionClient,
        config: ReconcilerConfig | None = None,
        *,
        validator: SpanValidator | None = None,
        clock: Callable[[], datetime] = _utc_now,
        system_prompt: str = SYSTEM_PROMPT,
        user_prompt_template: str = USER_PROMPT_TEMPLATE,
    ) -> None:
        self._client = client
        self._config = config or ReconcilerConfig()
        self._validator = validator or SpanValidator(
            threshold=self._config.fuzzy_threshold,
            max_quote_length=self._config.max_quote_length,
        )
        self._clock = clock
        self._system_prompt = system_prompt
        self._user_prompt_template = user_prompt_template

    @property
    def model(self) -> str:
        return getattr(self._client, "model", "unknown")

    def analyze(self, doc: DocumentModel) -> AnalysisResult:
        """Size-check, call the model, then reconcile its reply."""
        length = len(doc.full_text)
        if length > self._config.max_document_length:
            raise DocumentTooLarge(length, self._config.max_document_length)

        logger.info(
            "Analyzing document chars=%s paragraphs=%s",
            length,
            len(doc.paragraphs) if doc.paragraphs is not None else 0,
        )
        user_prompt = self._user_prompt_template.format(
            document=json.dumps(doc.to_payload(), indent=2, ensure_ascii=False)
        )
        try:
            raw_text = self._client.complete(
                system_prompt=self._system_prompt, user_prompt=user_prompt
            )
        except UpstreamError:
            raise
        except Exception as exc:
            raise UpstreamError(UpstreamErrorKind.OTHER, f"Analysis failed: {exc}") from exc

        return self.reconcile(raw_text, doc)

    def reconcile(self, raw_text: str, doc: DocumentModel) -> AnalysisResult:
        """Parse a raw model reply and keep only findings that anchor in ``doc``."""
        provisional = parse_response(raw_text)
        survivors: List[Finding] = []
        used_ids: set[str] = set()
        rejected_by_bounds = 0
        rejected_by_text = 0

        for candidate in provisional.issues:
            verdict = self._validator.validate(candidate, doc, used_ids)
            if isinstance(verdict, Accepted):
                survivors.append(verdict.finding)
                used_ids.add(verdict.finding.id)
                continue
            if verdict.reason == REJECTED_BY_BOUNDS:
                rejected_by_bounds += 1
            else:
                rejected_by_text += 1
            logger.warning(
                "Dropping finding %s (%s): %s",
                candidate.id or "<unnamed>",
                verdict.reason,
                verdict.detail,
            )

        result = aggregate(
            survivors,
            doc,
            rejected_by_bounds=rejected_by_bounds,
            rejected_by_text=rejected_by_text,
            meta=ResultMeta(
                model=self.model,
                timestamp=self._clock().isoformat(),
                processing_version=self._config.processing_version,
            ),
        )
        logger.info(
            "Validation stats: original=%s validated=%s bounds=%s text=%s",
            result.validation_stats.original,
            result.validation_stats.validated,
            rejected_by_bounds,
            rejected_by_text,
        )
        return result


def health_status(
    settings: OpenAISettings, clock: Callable[[], datetime] = _utc_now
) -> dict[str, Any]:
    """Report whether the upstream model credentials are configured."""
    configured = bool(settings.api_key) or bool(
        settings.api_key_env and os.environ.get(settings.api_key_env)
    )
    return {
        "status": "healthy" if configured else "unhealthy",
        "timestamp": clock().isoformat(),
        "version": __version__,
        "services": {"openai": "configured" if configured else "missing"},
    }
