"""imapnode command-line interface.

What:
  Provide a Typer entry point that drives :class:`~imapnode.node.ImapNode`
  outside a workflow host: ``run`` executes a job file, ``describe`` prints the
  node description, ``mailboxes`` serves the mailbox picker, and
  ``test-credentials`` checks an account.

Why:
  Operators need to try an operation against a real account, and host
  integrators need the description JSON, without standing up a workflow
  engine.

How:
  Load the runtime configuration (its ``credentials`` section acts as the
  host's credential store), build an :class:`ExecutionContext` from the job
  document, and print results as JSON on stdout. Structured node logs go to
  stderr.

Interfaces:
  ``app`` (Typer application), ``run``, ``describe``, ``mailboxes``,
  ``test_credentials``, ``main``.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - Credentials are never echoed.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from .config.loader import ConfigLoadError, load_document, load_runtime_config
from .config.schema import RuntimeConfig
from .credentials import (
    CREDENTIAL_NAMES,
    CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT,
    CREDENTIALS_TYPE_THIS_NODE,
    IMAP_API_CREDENTIALS,
)
from .host.context import ExecutionContext, NodeItem
from .host.errors import NodeApiError
from .node import ImapNode
from .utils.logging import get_logger

app = typer.Typer(help="IMAP workflow node runner")

LOGGER = logging.getLogger("imapnode.cli")


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _load_runtime(config_path: Optional[Path]) -> RuntimeConfig:
    try:
        return load_runtime_config(config_path, reload=config_path is not None)
    except ConfigLoadError as exc:
        LOGGER.error("runtime_load_failed: %s", exc)
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _build_context(
    runtime: RuntimeConfig,
    *,
    parameters: Optional[Dict[str, Any]] = None,
    items: Optional[List[NodeItem]] = None,
    credentials: Optional[Dict[str, Dict[str, Any]]] = None,
) -> ExecutionContext:
    store = {name: dict(values) for name, values in runtime.credentials.items()}
    store.update(credentials or {})
    logger = get_logger(runtime.logging.component, level=runtime.logging.level)
    return ExecutionContext(parameters, items=items, credentials=store, logger=logger)


def _fail(exc: NodeApiError) -> None:
    typer.echo(json.dumps({"error": exc.to_dict()}, ensure_ascii=False), err=True)
    raise typer.Exit(code=1) from exc


def _items_from_job(job: Dict[str, Any]) -> Optional[List[NodeItem]]:
    raw_items = job.get("items")
    if raw_items is None:
        return None
    if not isinstance(raw_items, list) or not all(isinstance(item, dict) for item in raw_items):
        raise ConfigLoadError("job items must be a list of mappings")
    return [NodeItem.from_dict(item) for item in raw_items]


ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.yaml")


@app.command("run")
def run(
    job_path: Path = typer.Argument(..., help="YAML or JSON job: parameters, items, credentials"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Execute one node run described by a job file and print the output items.

    The job document holds ``parameters`` (node parameters such as
    ``resource`` and ``operation``), optional ``items`` (input items, bare or
    ``{"json": ..., "binary": ...}``), and optional ``credentials`` merged over
    the configured credential store.
    """

    runtime = _load_runtime(config_path)
    try:
        job = load_document(job_path, name="job")
        parameters = job.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise ConfigLoadError("job parameters must be a mapping")
        items = _items_from_job(job)
    except ConfigLoadError as exc:
        typer.echo(f"Job error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    ctx = _build_context(runtime, parameters=parameters, items=items, credentials=job.get("credentials"))
    try:
        branches = ImapNode().execute(ctx)
    except NodeApiError as exc:
        LOGGER.error("run_failed operation=%s error=%s", parameters.get("operation"), exc.message)
        _fail(exc)
        return
    _echo_json([item.to_dict() for item in branches[0]])


@app.command("describe")
def describe(
    credentials: bool = typer.Option(False, "--credentials", help="Print the credential type instead"),
) -> None:
    """Print the node (or credential type) description as the host expects it."""

    if credentials:
        _echo_json(IMAP_API_CREDENTIALS.to_host())
        return
    _echo_json(ImapNode().description.to_host())


@app.command("mailboxes")
def mailboxes(
    filter_text: Optional[str] = typer.Option(None, "--filter", "-f", help="Case-insensitive path filter"),
    authentication: str = typer.Option(CREDENTIALS_TYPE_THIS_NODE, help="Credential source"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """List selectable mailboxes the way the host's mailbox picker shows them."""

    runtime = _load_runtime(config_path)
    ctx = _build_context(runtime, parameters={"authentication": authentication})
    node = ImapNode()
    try:
        result = node.methods["list_search"]["loadMailboxList"](ctx, filter_text)
    except NodeApiError as exc:
        _fail(exc)
        return
    _echo_json(result)


@app.command("test-credentials")
def test_credentials(
    credential_type: str = typer.Option(
        CREDENTIAL_NAMES[CREDENTIALS_TYPE_THIS_NODE],
        "--type",
        help="Credential type to read from the configured store",
    ),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Connect and log out with stored credentials."""

    runtime = _load_runtime(config_path)
    credential = runtime.credentials.get(credential_type)
    if credential is None:
        typer.echo(f'No credentials configured for "{credential_type}"', err=True)
        raise typer.Exit(code=1)
    if credential_type == CREDENTIAL_NAMES[CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT] and "secure" in credential:
        credential = {**credential, "tls": credential["secure"]}
    result = ImapNode().methods["credential_test"]["testImapCredentials"](credential)
    _echo_json({"status": result.status, "message": result.message})
    if not result.ok:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
