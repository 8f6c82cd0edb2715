import pytest

from compliance_reconciler.models import MIN_ENVELOPE_TEXT_LENGTH, document_from_dict

REPORT = "INTERNAL AUDIT REPORT. " * 6


def test_plain_and_legacy_bodies_decode():
    assert document_from_dict({"fullText": "abc"}).paragraphs is None
    legacy = document_from_dict({"documentText": REPORT, "analysisMode": "llm"})
    assert legacy.full_text == REPORT
    assert not legacy.has_paragraphs


def test_structured_body_keeps_formatting_metadata():
    doc = document_from_dict(
        {
            "fullText": "Title\nBody",
            "paragraphs": [
                {"index": 0, "text": "Title", "style": "Title", "font": {"size": 20}},
                {"text": "Body", "lineSpacing": 1.15},
            ],
        }
    )
    assert [p.index for p in doc.paragraphs] == [0, 1]
    assert doc.paragraphs[0].metadata == {"style": "Title", "font": {"size": 20}}
    assert doc.paragraph_text(1) == "Body"
    assert doc.paragraph_text(2) is None
    assert doc.to_payload()["paragraphs"][1] == {"index": 1, "text": "Body", "lineSpacing": 1.15}


def test_envelope_text_has_a_minimum_length():
    boundary = "x" * MIN_ENVELOPE_TEXT_LENGTH
    assert document_from_dict({"documentText": boundary}).full_text == boundary
    structured = document_from_dict(
        {"documentStructure": {"fullText": boundary, "paragraphs": [{"text": boundary}]}}
    )
    assert structured.paragraph_text(0) == boundary

    with pytest.raises(ValueError, match="too short"):
        document_from_dict({"documentText": boundary[:-1]})
    with pytest.raises(ValueError, match="too short"):
        document_from_dict(
            {"documentStructure": {"fullText": boundary[:-1], "paragraphs": []}}
        )


def test_request_options_are_checked():
    for mode in ("llm", "rules", "hybrid"):
        assert document_from_dict({"documentText": REPORT, "analysisMode": mode})
    assert document_from_dict({"documentText": REPORT, "userId": "u" * 100})

    with pytest.raises(ValueError, match="analysisMode"):
        document_from_dict({"documentText": REPORT, "analysisMode": "regex"})
    with pytest.raises(ValueError, match="userId"):
        document_from_dict({"documentText": REPORT, "userId": "u" * 101})
    with pytest.raises(ValueError, match="userId"):
        document_from_dict({"fullText": "abc", "userId": 42})


@pytest.mark.parametrize(
    "body",
    [
        {"fullText": 12},
        {"fullText": "x", "paragraphs": "nope"},
        {"fullText": "x", "paragraphs": [{"index": 3, "text": "x"}]},
        {"fullText": "x", "paragraphs": [{"index": 0, "text": 5}]},
        {"documentStructure": {"fullText": "x"}},
        {"documentStructure": {"fullText": "", "paragraphs": []}},
        {"documentStructure": {"paragraphs": []}},
        {"documentStructure": "x"},
    ],
)
def test_invalid_bodies_raise_value_error(body):
    with pytest.raises(ValueError):
        document_from_dict(body)
