from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from .errors import MalformedResponse
from .models import (
    FixDirective,
    Location,
    OffsetLocation,
    ParagraphLocation,
    ProvisionalFinding,
    ProvisionalResult,
)

logger = logging.getLogger(__name__)

_LOG_PREVIEW_CHARS = 500


def extract_json_text(raw_text: str) -> str:
    """
    Return the span from the first ``{`` to the last ``}`` of ``raw_text``.

    The model may wrap its JSON in leading or trailing prose but never
    interleaves prose inside it, so a greedy outer match is sufficient. When
    no such span exists the whole text is returned unchanged.
    """
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end < start:
        return raw_text
    return raw_text[start : end + 1]


def parse_response(raw_text: str) -> ProvisionalResult:
    """Decode the model reply into a fully-typed ProvisionalResult."""
    candidate = extract_json_text(raw_text)
    try:
        decoded = json.loads(candidate)
    except (ValueError, RecursionError) as exc:
        logger.error(
            "Model reply is not valid JSON (%s): %s",
            exc,
            raw_text[:_LOG_PREVIEW_CHARS],
        )
        raise MalformedResponse(
            f"Invalid JSON response from model: {exc}", raw_text
        ) from exc

    if not isinstance(decoded, dict):
        raise MalformedResponse(
            f"Model reply must be a JSON object, got {type(decoded).__name__}.",
            raw_text,
        )

    raw_issues = decoded.get("issues")
    if raw_issues is None:
        raw_issues = []
    if not isinstance(raw_issues, list):
        raise MalformedResponse("Model reply 'issues' must be an array.", raw_text)

    summary = decoded.get("summary")
    return ProvisionalResult(
        summary=summary if isinstance(summary, dict) else None,
        issues=[_decode_finding(item) for item in raw_issues],
    )


def _decode_finding(raw: Any) -> ProvisionalFinding:
    if not isinstance(raw, Mapping):
        # Still counted as an original issue; it will fail to anchor.
        return ProvisionalFinding(
            id=None,
            category="",
            title="",
            description="",
            severity="",
            location=None,
            expected="",
        )
    auto_fixable = raw.get("autoFixable")
    return ProvisionalFinding(
        id=_text(raw.get("id")) or None,
        category=_text(raw.get("category")),
        title=_text(raw.get("title")),
        description=_text(raw.get("description")),
        severity=_text(raw.get("severity")),
        location=_decode_location(raw.get("location")),
        expected=_text(raw.get("expected")),
        auto_fixable=auto_fixable if isinstance(auto_fixable, bool) else None,
        fix=_decode_fix(raw.get("fix")),
    )


def _decode_location(raw: Any) -> Location | None:
    if not isinstance(raw, Mapping):
        return None
    context = raw.get("context")
    context_text = context if isinstance(context, str) else None
    if "paragraphIndex" in raw:
        paragraph_index = _integer(raw.get("paragraphIndex"))
        if paragraph_index is None:
            return None
        return ParagraphLocation(
            paragraph_index=paragraph_index,
            searchable_text=_text(raw.get("searchableText")),
            context=context_text,
        )
    if "startIndex" in raw or "endIndex" in raw:
        start_index = _integer(raw.get("startIndex"))
        end_index = _integer(raw.get("endIndex"))
        if start_index is None or end_index is None:
            return None
        return OffsetLocation(
            start_index=start_index,
            end_index=end_index,
            exact_text=_text(raw.get("exactText")),
            context=context_text,
        )
    return None


def _decode_fix(raw: Any) -> FixDirective | None:
    if not isinstance(raw, Mapping):
        return None
    action = raw.get("action")
    if not isinstance(action, str) or not action:
        return None
    return FixDirective(action=action, new_value=raw.get("newValue"))


def _integer(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""
