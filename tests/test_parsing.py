import json

import pytest

from compliance_reconciler.errors import MalformedResponse
from compliance_reconciler.models import OffsetLocation, ParagraphLocation
from compliance_reconciler.parsing import extract_json_text, parse_response
from tests.utils import model_reply, offset_issue, paragraph_issue


def test_parse_response_ignores_surrounding_prose():
    """Leading and trailing prose around the JSON object is discarded."""
    raw = model_reply(paragraph_issue(1, "aman malhotra"), prose=True)
    result = parse_response(raw)

    assert len(result.issues) == 1
    issue = result.issues[0]
    assert issue.id == "para_1"
    assert issue.location == ParagraphLocation(1, "aman malhotra")
    assert issue.fix is not None and issue.fix.action == "changeFontFamily"
    assert result.summary is not None and result.summary["totalIssues"] == 99


def test_truncated_json_raises_malformed_response():
    raw = model_reply(offset_issue(0, 4, "Pref"))[:-1]
    with pytest.raises(MalformedResponse) as excinfo:
        parse_response(raw)
    assert excinfo.value.raw_text == raw


def test_missing_braces_falls_back_to_full_text():
    assert extract_json_text("no json here") == "no json here"
    with pytest.raises(MalformedResponse):
        parse_response("no json here")


def test_non_object_json_is_rejected():
    with pytest.raises(MalformedResponse):
        parse_response("[1, 2, 3]")
    with pytest.raises(MalformedResponse):
        parse_response(json.dumps({"issues": {"not": "a list"}}))


def test_missing_issues_yields_empty_result():
    result = parse_response('{"summary": {"totalIssues": 3}}')
    assert result.issues == []


def test_malformed_issue_entries_decode_without_location():
    """Junk entries still decode so they can be counted as rejections later."""
    raw = json.dumps(
        {
            "issues": [
                "not an object",
                {"id": "x", "location": {"startIndex": "ten", "endIndex": 20}},
                {"id": 7, "location": {"startIndex": 10.0, "endIndex": 19}},
                {"id": "", "autoFixable": "yes", "location": "nowhere"},
            ]
        }
    )
    issues = parse_response(raw).issues

    assert len(issues) == 4
    assert issues[0].location is None
    assert issues[1].location is None
    assert issues[2].id == "7"
    assert issues[2].location == OffsetLocation(10, 19, "")
    assert issues[3].id is None
    assert issues[3].auto_fixable is None
    assert issues[3].location is None


def test_deeply_nested_reply_raises_malformed_response():
    raw = '{"issues": ' + "[" * 100_000 + "]" * 100_000 + "}"
    with pytest.raises(MalformedResponse) as excinfo:
        parse_response(raw)
    assert excinfo.value.raw_text == raw


def test_oversized_integer_literal_raises_malformed_response():
    raw = '{"issues": [{"location": {"startIndex": ' + "9" * 5000 + ', "endIndex": 3}}]}'
    with pytest.raises(MalformedResponse):
        parse_response(raw)
