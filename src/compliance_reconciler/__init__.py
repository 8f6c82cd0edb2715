"""
compliance_reconciler turns a language model's compliance analysis of a
document into verified, precisely-located findings, and gates upstream
calls with per-key sliding-window admission control.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .admission import AdmissionController, AdmissionDecision, InMemoryAdmissionController
from .config import ReconcilerConfig, config_from_dict, config_from_yaml, load_config
from .engine import AnalysisEngine
from .errors import DocumentTooLarge, MalformedResponse, UpstreamError
from .models import AnalysisResult, DocumentModel, Finding, document_from_dict

__all__ = [
    "AdmissionController",
    "AdmissionDecision",
    "InMemoryAdmissionController",
    "ReconcilerConfig",
    "config_from_dict",
    "config_from_yaml",
    "load_config",
    "AnalysisEngine",
    "DocumentTooLarge",
    "MalformedResponse",
    "UpstreamError",
    "AnalysisResult",
    "DocumentModel",
    "Finding",
    "document_from_dict",
]
