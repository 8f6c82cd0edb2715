from __future__ import annotations

from typing import Sequence

from .models import (
    SEVERITY_CRITICAL,
    SEVERITY_SUGGESTION,
    SEVERITY_WARNING,
    AnalysisResult,
    DocumentModel,
    Finding,
    ResultMeta,
    Summary,
    ValidationStats,
)


def summarize(survivors: Sequence[Finding], doc: DocumentModel) -> Summary:
    """Count findings per severity; unknown severities only count toward the total."""
    severities = [finding.severity for finding in survivors]
    return Summary(
        total_issues=len(survivors),
        critical=severities.count(SEVERITY_CRITICAL),
        warnings=severities.count(SEVERITY_WARNING),
        suggestions=severities.count(SEVERITY_SUGGESTION),
        document_length=len(doc.full_text),
    )


def aggregate(
    survivors: Sequence[Finding],
    doc: DocumentModel,
    rejected_by_bounds: int,
    rejected_by_text: int,
    meta: ResultMeta,
) -> AnalysisResult:
    """Build the final result from surviving findings, preserving their order."""
    stats = ValidationStats(
        original=len(survivors) + rejected_by_bounds + rejected_by_text,
        validated=len(survivors),
        rejected_by_bounds=rejected_by_bounds,
        rejected_by_text=rejected_by_text,
    )
    return AnalysisResult(
        summary=summarize(survivors, doc),
        issues=list(survivors),
        validation_stats=stats,
        meta=meta,
    )
