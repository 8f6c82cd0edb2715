from __future__ import annotations

import json
from typing import Any

from compliance_reconciler.models import DocumentModel, Paragraph

ANCHOR_PREFIX = "Prefix is "
ANCHOR_WORD = "wrongword"


def build_plain_document(length: int = 150) -> DocumentModel:
    """Return a plain document whose text holds ANCHOR_WORD at offset 10."""
    text = ANCHOR_PREFIX + ANCHOR_WORD + " in the audit report."
    while len(text) < length:
        text += " Filler sentence for padding."
    return DocumentModel(full_text=text[:length])


def build_structured_document() -> DocumentModel:
    """Return a three-paragraph document with formatting metadata."""
    texts = [
        "INTERNAL AUDIT REPORT",
        "Functional Head: aman malhotra",
        "The risk team should review the policy by May 20, 2025.",
    ]
    paragraphs = [
        Paragraph(index=i, text=text, metadata={"font": {"name": "Arial", "size": 11}})
        for i, text in enumerate(texts)
    ]
    return DocumentModel(full_text="\n".join(texts), paragraphs=paragraphs)


def offset_issue(
    start: int, end: int, exact_text: str, **overrides: Any
) -> dict[str, Any]:
    issue: dict[str, Any] = {
        "id": overrides.pop("id", f"offset_{start}_{end}"),
        "category": "Content",
        "title": "Wording",
        "description": "Word choice",
        "severity": "Warning",
        "location": {"startIndex": start, "endIndex": end, "exactText": exact_text},
        "expected": "correct word",
        "autoFixable": True,
    }
    issue.update(overrides)
    return issue


def paragraph_issue(
    paragraph_index: int, searchable_text: str, **overrides: Any
) -> dict[str, Any]:
    issue: dict[str, Any] = {
        "id": overrides.pop("id", f"para_{paragraph_index}"),
        "category": "Font",
        "title": "Incorrect Font Family",
        "description": "Font should be Calibri, found Arial",
        "severity": "Critical",
        "location": {
            "paragraphIndex": paragraph_index,
            "searchableText": searchable_text,
        },
        "expected": "Calibri font family",
        "autoFixable": True,
        "fix": {"action": "changeFontFamily", "newValue": "Calibri"},
    }
    issue.update(overrides)
    return issue


def model_reply(*issues: dict[str, Any], prose: bool = False) -> str:
    """Serialize issues the way the model would, optionally wrapped in prose."""
    body = json.dumps(
        {
            "summary": {"totalIssues": 99, "critical": 99, "warnings": 0, "suggestions": 0},
            "issues": list(issues),
        }
    )
    if prose:
        return f"Here is the result:\n{body}\nHope this helps!"
    return body


class FakeCompletionClient:
    """Records prompts and replies with canned text, or raises a canned error."""

    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.model = "fake-model"
        self.reply = reply
        self.error = error
        self.calls: list[dict[str, str]] = []

    def complete(self, *, system_prompt: str, user_prompt: str) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt})
        if self.error is not None:
            raise self.error
        return self.reply
