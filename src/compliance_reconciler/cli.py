from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import NoReturn

import typer
import yaml

from .config import OpenAISettings, ReconcilerConfig, load_config
from .engine import AnalysisEngine, health_status
from .errors import (
    ReconcilerError,
    UpstreamError,
    UpstreamErrorKind,
    error_payload,
    http_status_for,
)
from .llm import OpenAICompletionClient
from .models import DocumentModel, document_from_dict

app = typer.Typer(help="Compliance Reconciler CLI.", no_args_is_help=True)


class _SavedReplyClient:
    """Stand-in client for reconciling a reply that was captured earlier."""

    def __init__(self, model: str) -> None:
        self.model = model

    def complete(self, *, system_prompt: str, user_prompt: str) -> str:
        raise UpstreamError(
            UpstreamErrorKind.OTHER, "Saved replies are reconciled without a model call."
        )


@app.command()
def analyze(
    input_path: Path = typer.Option(
        ..., exists=True, readable=True, dir_okay=False, file_okay=True
    ),
    config: Path | None = typer.Option(None, "--config", "-c"),
    openai_model: str | None = typer.Option(
        None, "--openai-model", help="OpenAI model identifier (e.g., gpt-4.1-mini)."
    ),
    openai_api_key: str | None = typer.Option(
        None, "--openai-api-key", help="Explicit OpenAI API key (prefer env vars)."
    ),
    openai_api_key_env: str | None = typer.Option(
        None,
        "--openai-api-key-env",
        help="Environment variable to read the OpenAI API key from.",
    ),
    openai_base_url: str | None = typer.Option(
        None, "--openai-base-url", help="Custom OpenAI base URL (Azure, proxy, etc.)."
    ),
    openai_request_timeout: float | None = typer.Option(
        None, "--openai-request-timeout", help="Request timeout (seconds)."
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python log level."),
) -> None:
    """Analyze a document with the model and emit the reconciled result as JSON."""
    _configure_logging(log_level)
    cfg = load_config(config)
    _apply_openai_overrides(
        cfg.openai,
        openai_model,
        openai_api_key,
        openai_api_key_env,
        openai_base_url,
        openai_request_timeout,
    )
    document = _load_document(input_path)
    client = OpenAICompletionClient(
        cfg.openai, api_key=_resolve_openai_api_key(cfg.openai)
    )
    engine = AnalysisEngine(client, cfg)
    try:
        result = engine.analyze(document)
    except ReconcilerError as exc:
        _fail(exc)
    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


@app.command()
def reconcile(
    input_path: Path = typer.Option(
        ..., exists=True, readable=True, dir_okay=False, file_okay=True
    ),
    response_path: Path = typer.Option(
        ..., exists=True, readable=True, dir_okay=False, file_okay=True
    ),
    config: Path | None = typer.Option(None, "--config", "-c"),
    model: str = typer.Option("offline", "--model", help="Model name recorded in meta."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python log level."),
) -> None:
    """Reconcile a previously captured model reply against its document."""
    _configure_logging(log_level)
    cfg = load_config(config)
    document = _load_document(input_path)
    raw_text = response_path.read_text(encoding="utf-8")
    engine = AnalysisEngine(_SavedReplyClient(model), cfg)
    try:
        result = engine.reconcile(raw_text, document)
    except ReconcilerError as exc:
        _fail(exc)
    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


@app.command("print-config")
def print_config() -> None:
    """Print the default configuration as YAML."""
    cfg = ReconcilerConfig()
    typer.echo(yaml.safe_dump(cfg.to_dict(), sort_keys=False))


@app.command()
def health(config: Path | None = typer.Option(None, "--config", "-c")) -> None:
    """Report whether upstream credentials are configured."""
    cfg = load_config(config)
    status = health_status(cfg.openai)
    typer.echo(json.dumps(status, indent=2))
    if status["status"] != "healthy":
        raise typer.Exit(code=1)


def main() -> None:
    app()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(exc: ReconcilerError) -> NoReturn:
    """Report an engine failure the way the transport layer would and exit."""
    payload = error_payload(exc)
    payload["status"] = http_status_for(exc)
    typer.echo(json.dumps(payload), err=True)
    raise typer.Exit(code=1)


def _apply_openai_overrides(
    settings: OpenAISettings,
    openai_model: str | None,
    openai_api_key: str | None,
    openai_api_key_env: str | None,
    openai_base_url: str | None,
    openai_request_timeout: float | None,
) -> None:
    """Override OpenAI settings from CLI flags."""
    if openai_model:
        settings.model = openai_model
    if openai_api_key:
        settings.api_key = openai_api_key
    if openai_api_key_env:
        settings.api_key_env = openai_api_key_env
    if openai_base_url:
        settings.base_url = openai_base_url
    if openai_request_timeout is not None:
        settings.request_timeout = openai_request_timeout


def _load_document(input_path: Path) -> DocumentModel:
    """Read a plain-text document or a JSON request body from disk."""
    contents = input_path.read_text(encoding="utf-8")
    if input_path.suffix.lower() != ".json":
        return DocumentModel(full_text=contents)
    try:
        return document_from_dict(json.loads(contents))
    except (json.JSONDecodeError, ValueError) as exc:
        raise typer.BadParameter(f"{input_path}: {exc}") from exc


def _resolve_openai_api_key(settings: OpenAISettings) -> str:
    """Resolve the API key from explicit config or the configured environment variable."""
    if settings.api_key:
        return settings.api_key
    env_name = settings.api_key_env or "OPENAI_API_KEY"
    if env_name in os.environ:
        return os.environ[env_name]
    raise RuntimeError(
        "OpenAI API key not provided. Use --openai-api-key or set the configured environment variable."
    )


if __name__ == "__main__":
    main()
