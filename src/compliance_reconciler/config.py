from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping

import yaml

DEFAULT_TIER_KEY = "default"


@dataclass(slots=True)
class OpenAISettings:
    """Configuration block for the upstream OpenAI model."""

    model: str = "gpt-4.1-mini"
    api_key: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str | None = None
    organization: str | None = None
    temperature: float = 0.1
    max_output_tokens: int = 4000
    top_p: float = 1.0
    request_timeout: float = 30.0
    parallel_requests: int = 1
    max_attempts: int = 1


@dataclass(frozen=True, slots=True)
class AdmissionTier:
    """Sliding-window limits applied to one endpoint."""

    window_ms: int
    max_requests: int


def _default_tiers() -> Dict[str, AdmissionTier]:
    return {
        "/api/v1/analyze": AdmissionTier(window_ms=15 * 60 * 1000, max_requests=5),
        "/api/v1/health": AdmissionTier(window_ms=60 * 1000, max_requests=60),
        DEFAULT_TIER_KEY: AdmissionTier(window_ms=15 * 60 * 1000, max_requests=10),
    }


@dataclass(slots=True)
class ReconcilerConfig:
    """Policy knobs for reconciliation and admission control."""

    max_document_length: int = 200_000
    fuzzy_threshold: float = 0.8
    max_quote_length: int = 2_000
    processing_version: str = "2.0"
    admission_cleanup_probability: float = 0.01
    admission_tiers: Dict[str, AdmissionTier] = field(default_factory=_default_tiers)
    openai: OpenAISettings = field(default_factory=OpenAISettings)

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable dictionary representation of the configuration."""
        return dict(asdict(self))

    def tier_for(self, endpoint: str) -> AdmissionTier:
        """Return the tier configured for ``endpoint``, falling back to the default."""
        tier = self.admission_tiers.get(endpoint)
        if tier is not None:
            return tier
        return self.admission_tiers.get(DEFAULT_TIER_KEY) or _default_tiers()[
            DEFAULT_TIER_KEY
        ]


def _build_kwargs(data: Mapping[str, Any]) -> dict[str, Any]:
    allowed = {field.name for field in fields(ReconcilerConfig)}
    kwargs = {key: data[key] for key in data if key in allowed}
    if "openai" in data:
        openai_value = data["openai"]
        if isinstance(openai_value, OpenAISettings):
            kwargs["openai"] = openai_value
        elif isinstance(openai_value, Mapping):
            kwargs["openai"] = _build_openai_settings(openai_value)
    if "admission_tiers" in data:
        tiers_value = data["admission_tiers"]
        if not isinstance(tiers_value, Mapping):
            raise ValueError("admission_tiers must be a mapping of endpoint to tier.")
        kwargs["admission_tiers"] = _build_tiers(tiers_value)
    return kwargs


def _build_openai_settings(data: Mapping[str, Any]) -> OpenAISettings:
    openai_allowed = {field.name for field in fields(OpenAISettings)}
    filtered = {key: data[key] for key in data if key in openai_allowed}
    return OpenAISettings(**filtered)


def _build_tiers(data: Mapping[str, Any]) -> Dict[str, AdmissionTier]:
    tiers = _default_tiers()
    for endpoint, value in data.items():
        if isinstance(value, AdmissionTier):
            tiers[str(endpoint)] = value
        elif isinstance(value, Mapping) and {"window_ms", "max_requests"} <= set(value):
            tiers[str(endpoint)] = AdmissionTier(
                window_ms=int(value["window_ms"]),
                max_requests=int(value["max_requests"]),
            )
        else:
            raise ValueError(f"Invalid admission tier for '{endpoint}'.")
    return tiers


def config_from_dict(data: Mapping[str, Any] | None) -> ReconcilerConfig:
    """Build a ReconcilerConfig from a dictionary-like input."""
    if data is None:
        return ReconcilerConfig()
    return ReconcilerConfig(**_build_kwargs(data))


def config_from_yaml(path: str | Path) -> ReconcilerConfig:
    """Load configuration from a YAML file."""
    contents = Path(path).read_text(encoding="utf-8")
    parsed = yaml.safe_load(contents) or {}
    if not isinstance(parsed, MutableMapping):
        raise ValueError("Configuration YAML must define a mapping.")
    return config_from_dict(parsed)


def load_config(path: str | Path | None = None) -> ReconcilerConfig:
    """Load configuration from YAML when provided, otherwise return defaults."""
    if path is None:
        return ReconcilerConfig()
    return config_from_yaml(path)
