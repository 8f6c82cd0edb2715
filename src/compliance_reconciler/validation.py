from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Collection, Union

from .matching import similarity
from .models import (
    DocumentModel,
    Finding,
    Location,
    OffsetLocation,
    ParagraphLocation,
    ProvisionalFinding,
)

logger = logging.getLogger(__name__)

REJECTED_BY_BOUNDS = "bounds"
REJECTED_BY_TEXT = "text"


@dataclass(frozen=True, slots=True)
class Accepted:
    finding: Finding


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: str
    detail: str


Verdict = Union[Accepted, Rejected]


def _random_issue_id() -> str:
    return f"issue_{uuid.uuid4().hex[:12]}"


class SpanValidator:
    """
    Confirms or repairs the location of a provisional finding.

    Offset locations are authoritative once in bounds: a quote that differs
    from the document but is similar enough is rewritten to the actual text.
    Paragraph locations must quote a literal substring of their paragraph,
    since consumers navigate to them with a literal text search.
    """

    def __init__(
        self,
        *,
        threshold: float = 0.8,
        max_quote_length: int = 2_000,
        id_factory: Callable[[], str] = _random_issue_id,
    ) -> None:
        self._threshold = threshold
        self._max_quote_length = max_quote_length
        self._id_factory = id_factory

    @property
    def threshold(self) -> float:
        return self._threshold

    def validate(
        self,
        finding: ProvisionalFinding,
        doc: DocumentModel,
        used_ids: Collection[str] = (),
    ) -> Verdict:
        """Classify ``finding`` as accepted (with its anchored Finding) or rejected."""
        location = finding.location
        if location is None:
            return Rejected(REJECTED_BY_BOUNDS, "finding has no decodable location")

        if doc.has_paragraphs:
            if not isinstance(location, ParagraphLocation):
                return Rejected(
                    REJECTED_BY_BOUNDS, "structured document needs a paragraph location"
                )
            verdict = self._check_paragraph(location, doc)
        else:
            if not isinstance(location, OffsetLocation):
                return Rejected(
                    REJECTED_BY_BOUNDS, "plain document needs an offset location"
                )
            verdict = self._check_offsets(location, doc.full_text)

        if isinstance(verdict, Rejected):
            return verdict
        return Accepted(self._freeze(finding, verdict, used_ids))

    def _check_offsets(self, location: OffsetLocation, full_text: str) -> Location | Rejected:
        start, end = location.start_index, location.end_index
        if start < 0 or end > len(full_text) or start >= end:
            return Rejected(
                REJECTED_BY_BOUNDS,
                f"range [{start}, {end}) outside document of length {len(full_text)}",
            )
        actual = full_text[start:end]
        if actual == location.exact_text:
            return location
        if max(len(actual), len(location.exact_text)) > self._max_quote_length:
            return Rejected(
                REJECTED_BY_TEXT,
                f"quoted span longer than {self._max_quote_length} characters",
            )
        score = similarity(actual, location.exact_text)
        if score >= self._threshold:
            return OffsetLocation(
                start_index=start,
                end_index=end,
                exact_text=actual,
                context=location.context,
            )
        return Rejected(
            REJECTED_BY_TEXT,
            f"quoted text {location.exact_text!r} does not match {actual!r} "
            f"(similarity {score:.2f})",
        )

    @staticmethod
    def _check_paragraph(
        location: ParagraphLocation, doc: DocumentModel
    ) -> Location | Rejected:
        paragraph_text = doc.paragraph_text(location.paragraph_index)
        if paragraph_text is None:
            return Rejected(
                REJECTED_BY_BOUNDS,
                f"paragraph index {location.paragraph_index} out of range",
            )
        if not location.searchable_text:
            return Rejected(REJECTED_BY_BOUNDS, "missing searchable text")
        if location.searchable_text not in paragraph_text:
            return Rejected(
                REJECTED_BY_TEXT,
                f"{location.searchable_text!r} not found in paragraph "
                f"{location.paragraph_index}",
            )
        return location

    def _freeze(
        self,
        finding: ProvisionalFinding,
        location: Location,
        used_ids: Collection[str],
    ) -> Finding:
        finding_id = finding.id
        while not finding_id or finding_id in used_ids:
            finding_id = self._id_factory()
        return Finding(
            id=finding_id,
            category=finding.category,
            title=finding.title,
            description=finding.description,
            severity=finding.severity,
            location=location,
            expected=finding.expected,
            auto_fixable=bool(finding.auto_fixable),
            fix=finding.fix,
        )
