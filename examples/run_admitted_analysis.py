"""Minimal example showing an admission check followed by an OpenAI-backed analysis."""

from __future__ import annotations

import json
import os

from compliance_reconciler import AnalysisEngine, InMemoryAdmissionController, load_config
from compliance_reconciler.errors import ReconcilerError, error_payload, http_status_for
from compliance_reconciler.llm import OpenAICompletionClient
from compliance_reconciler.models import document_from_dict

ENDPOINT = "/api/v1/analyze"


def main() -> None:
    config = load_config()
    api_key = (
        config.openai.api_key
        or os.environ.get(config.openai.api_key_env or "OPENAI_API_KEY")
        or ""
    )
    if not api_key:
        raise RuntimeError(
            "Set the OpenAI API key before running this example "
            f"({config.openai.api_key_env})."
        )

    admission = InMemoryAdmissionController(config)
    engine = AnalysisEngine(OpenAICompletionClient(config.openai, api_key=api_key), config)

    decision = admission.check_endpoint("127.0.0.1", ENDPOINT)
    if not decision.allowed:
        print(f"429 Too Many Requests, Retry-After: {decision.retry_after_seconds}")
        return

    document = document_from_dict(
        {
            "fullText": "INTERNAL AUDIT REPORT\nFunctional Head: Mr. aman malhotra",
            "paragraphs": [
                {"text": "INTERNAL AUDIT REPORT", "font": {"name": "Calibri", "size": 20}},
                {"text": "Functional Head: Mr. aman malhotra", "font": {"name": "Arial", "size": 11}},
            ],
        }
    )
    try:
        result = engine.analyze(document)
    except ReconcilerError as exc:
        print(http_status_for(exc), json.dumps(error_payload(exc)))
        return
    finally:
        admission.shutdown()
    print(json.dumps(result.to_dict(), indent=2))


if __name__ == "__main__":
    main()
