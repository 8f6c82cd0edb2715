from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union

SEVERITY_CRITICAL = "Critical"
SEVERITY_WARNING = "Warning"
SEVERITY_SUGGESTION = "Suggestion"

KNOWN_CATEGORIES = ("Font", "Format", "Number", "Color", "Content")


@dataclass(slots=True)
class Paragraph:
    """One paragraph of a structured document plus its formatting metadata."""

    index: int
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"index": self.index, "text": self.text}
        payload.update(self.metadata)
        return payload


@dataclass(slots=True)
class DocumentModel:
    """The analyzed document: plain text, optionally split into paragraphs."""

    full_text: str
    paragraphs: List[Paragraph] | None = None

    @property
    def has_paragraphs(self) -> bool:
        return self.paragraphs is not None

    def paragraph_text(self, index: int) -> str | None:
        if self.paragraphs is None or not 0 <= index < len(self.paragraphs):
            return None
        return self.paragraphs[index].text

    def to_payload(self) -> dict[str, Any]:
        """Serializable view sent to the model."""
        payload: dict[str, Any] = {"fullText": self.full_text}
        if self.paragraphs is not None:
            payload["paragraphs"] = [p.to_dict() for p in self.paragraphs]
        return payload


@dataclass(frozen=True, slots=True)
class OffsetLocation:
    """Absolute character range into ``DocumentModel.full_text``."""

    start_index: int
    end_index: int
    exact_text: str
    context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "startIndex": self.start_index,
            "endIndex": self.end_index,
            "exactText": self.exact_text,
        }
        if self.context is not None:
            payload["context"] = self.context
        return payload


@dataclass(frozen=True, slots=True)
class ParagraphLocation:
    """Paragraph index plus a literal substring of that paragraph."""

    paragraph_index: int
    searchable_text: str
    context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "paragraphIndex": self.paragraph_index,
            "searchableText": self.searchable_text,
        }
        if self.context is not None:
            payload["context"] = self.context
        return payload


Location = Union[OffsetLocation, ParagraphLocation]


@dataclass(frozen=True, slots=True)
class FixDirective:
    """Client-side auto-fix instruction attached to a finding."""

    action: str
    new_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "newValue": self.new_value}


@dataclass(slots=True)
class ProvisionalFinding:
    """A finding as decoded from the model reply, before its location is checked.

    ``location`` is ``None`` when the reply carried no decodable anchor.
    """

    id: str | None
    category: str
    title: str
    description: str
    severity: str
    location: Location | None
    expected: str
    auto_fixable: bool | None = None
    fix: FixDirective | None = None


@dataclass(frozen=True, slots=True)
class Finding:
    """A reconciled finding whose location has been verified against the document."""

    id: str
    category: str
    title: str
    description: str
    severity: str
    location: Location
    expected: str
    auto_fixable: bool
    fix: FixDirective | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "location": self.location.to_dict(),
            "expected": self.expected,
            "autoFixable": self.auto_fixable,
        }
        if self.fix is not None:
            payload["fix"] = self.fix.to_dict()
        return payload


@dataclass(slots=True)
class ProvisionalResult:
    """Untrusted parse of the model reply; ``summary`` is advisory only."""

    summary: Dict[str, Any] | None
    issues: List[ProvisionalFinding]


@dataclass(frozen=True, slots=True)
class ValidationStats:
    original: int
    validated: int
    rejected_by_bounds: int
    rejected_by_text: int

    def to_dict(self) -> dict[str, int]:
        return {
            "original": self.original,
            "validated": self.validated,
            "rejectedByBounds": self.rejected_by_bounds,
            "rejectedByText": self.rejected_by_text,
        }


@dataclass(frozen=True, slots=True)
class Summary:
    total_issues: int
    critical: int
    warnings: int
    suggestions: int
    document_length: int

    def to_dict(self) -> dict[str, int]:
        return {
            "totalIssues": self.total_issues,
            "critical": self.critical,
            "warnings": self.warnings,
            "suggestions": self.suggestions,
            "documentLength": self.document_length,
        }


@dataclass(frozen=True, slots=True)
class ResultMeta:
    model: str
    timestamp: str
    processing_version: str

    def to_dict(self) -> dict[str, str]:
        return {
            "model": self.model,
            "timestamp": self.timestamp,
            "processingVersion": self.processing_version,
        }


@dataclass(slots=True)
class AnalysisResult:
    """Final reconciled output returned to the caller."""

    summary: Summary
    issues: List[Finding]
    validation_stats: ValidationStats
    meta: ResultMeta

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "issues": [issue.to_dict() for issue in self.issues],
            "validationStats": self.validation_stats.to_dict(),
            "meta": self.meta.to_dict(),
        }


MIN_ENVELOPE_TEXT_LENGTH = 100
ANALYSIS_MODES = ("llm", "rules", "hybrid")
MAX_USER_ID_LENGTH = 100


def document_from_dict(data: Mapping[str, Any]) -> DocumentModel:
    """Decode a request body into a DocumentModel.

    Accepts ``{fullText, paragraphs?}`` as well as the ``{documentText}`` and
    ``{documentStructure: {...}}`` envelopes. Text carried by an envelope must
    be at least ``MIN_ENVELOPE_TEXT_LENGTH`` characters long; the optional
    ``analysisMode`` and ``userId`` fields are checked on every form.
    """
    if not isinstance(data, Mapping):
        raise ValueError("Request body must be a JSON object.")
    _check_request_options(data)
    if "documentStructure" in data:
        structure = data["documentStructure"]
        if not isinstance(structure, Mapping):
            raise ValueError("documentStructure must be an object.")
        if not structure.get("fullText"):
            raise ValueError("documentStructure.fullText is required.")
        if "paragraphs" not in structure:
            raise ValueError("documentStructure.paragraphs must be an array.")
        document = _decode_document(structure)
        _check_envelope_length("documentStructure.fullText", document.full_text)
        return document
    if "documentText" in data:
        document = _decode_document({"fullText": data["documentText"]})
        _check_envelope_length("documentText", document.full_text)
        return document
    return _decode_document(data)


def _check_request_options(data: Mapping[str, Any]) -> None:
    mode = data.get("analysisMode")
    if mode and mode not in ANALYSIS_MODES:
        raise ValueError(f"analysisMode must be one of: {', '.join(ANALYSIS_MODES)}.")
    user_id = data.get("userId")
    if user_id and (not isinstance(user_id, str) or len(user_id) > MAX_USER_ID_LENGTH):
        raise ValueError(
            f"userId must be a string with maximum {MAX_USER_ID_LENGTH} characters."
        )


def _check_envelope_length(name: str, text: str) -> None:
    if len(text) < MIN_ENVELOPE_TEXT_LENGTH:
        raise ValueError(
            f"{name} is too short (minimum {MIN_ENVELOPE_TEXT_LENGTH} characters)."
        )


def _decode_document(data: Mapping[str, Any]) -> DocumentModel:
    full_text = data.get("fullText")
    if not isinstance(full_text, str):
        raise ValueError("fullText must be a string.")
    raw_paragraphs = data.get("paragraphs")
    if raw_paragraphs is None:
        return DocumentModel(full_text=full_text)
    if not isinstance(raw_paragraphs, list):
        raise ValueError("paragraphs must be an array.")
    paragraphs: List[Paragraph] = []
    for position, raw in enumerate(raw_paragraphs):
        if not isinstance(raw, Mapping):
            raise ValueError(f"paragraphs[{position}] must be an object.")
        index = raw.get("index", position)
        if index != position or isinstance(index, bool):
            raise ValueError(
                f"paragraphs[{position}].index must equal its position, got {index!r}."
            )
        text = raw.get("text", "")
        if not isinstance(text, str):
            raise ValueError(f"paragraphs[{position}].text must be a string.")
        metadata = {k: v for k, v in raw.items() if k not in {"index", "text"}}
        paragraphs.append(Paragraph(index=position, text=text, metadata=metadata))
    return DocumentModel(full_text=full_text, paragraphs=paragraphs)
