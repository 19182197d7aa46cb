"""Resolve the IMAP credentials an execution should use.

What:
  Map the node's ``authentication`` parameter onto one of three credential
  sources: this node's own credential type, the credentials of the host's core
  IMAP trigger node, or a field of the first upstream item.

Why:
  Each source stores the same information under slightly different shapes
  (``secure`` vs ``tls``, optional ports, loose JSON from upstream nodes). The
  rest of the node only ever sees :class:`ImapCredentialsData`.

Interfaces:
  Credential type constants, :data:`CREDENTIAL_NAMES`,
  :func:`get_imap_credentials`, :func:`get_credentials_from_input`,
  :func:`resolve_credentials`.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping

from pydantic import ValidationError

from ..config.loader import ConfigLoadError, get_runtime_config
from ..host.context import ExecutionContext
from ..host.errors import NodeApiError
from .schema import CoreImapCredentialsData, ImapCredentialsData

CREDENTIALS_TYPE_THIS_NODE = "imapThisNode"
CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT = "coreImapAccount"
CREDENTIALS_TYPE_FROM_INPUT = "fromInput"

CREDENTIAL_NAMES: Dict[str, str] = {
    CREDENTIALS_TYPE_THIS_NODE: "imapApi",
    CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT: "imap",
}

FIRST_ITEM_INDEX = 0


def _validation_message(exc: ValidationError) -> str:
    fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
    return f"Invalid IMAP credentials: {', '.join(fields)}"


def get_imap_credentials(ctx: ExecutionContext) -> ImapCredentialsData:
    """Load credentials from the host's credential store.

    Raises:
      NodeApiError: If the store has no entry for the selected type or the
        entry is incomplete.
    """

    authentication = ctx.get_node_parameter(
        "authentication", FIRST_ITEM_INDEX, CREDENTIALS_TYPE_THIS_NODE
    )
    try:
        if authentication == CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT:
            raw = ctx.get_credentials(CREDENTIAL_NAMES[CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT])
            _fill_default_port(ctx, raw)
            return CoreImapCredentialsData.model_validate(raw).to_imap_credentials()
        raw = ctx.get_credentials(CREDENTIAL_NAMES[CREDENTIALS_TYPE_THIS_NODE])
        _fill_default_port(ctx, raw)
        return ImapCredentialsData.model_validate(raw)
    except ValidationError as exc:
        raise NodeApiError(_validation_message(exc), node_name=ctx.node_name) from exc


def _default_port(ctx: ExecutionContext) -> int:
    """Port used when a credential leaves it unset (``imap.default_port``)."""

    try:
        return get_runtime_config().imap.default_port
    except ConfigLoadError as exc:
        raise NodeApiError(f"Invalid runtime configuration: {exc}", node_name=ctx.node_name) from exc


def _coerce_port(ctx: ExecutionContext, value: Any) -> int:
    if value in (None, "", 0):
        return _default_port(ctx)
    return int(value)


def _fill_default_port(ctx: ExecutionContext, raw: Dict[str, Any]) -> None:
    if raw.get("port") in (None, "", 0):
        raw["port"] = _default_port(ctx)


def get_credentials_from_input(ctx: ExecutionContext, credentials_field: str) -> ImapCredentialsData:
    """Read credentials from ``credentials_field`` of the first input item.

    What:
      Lets a workflow compute the account at runtime (e.g. from a database
      lookup) instead of storing it in the host.

    How:
      ``port`` defaults to the configured ``imap.default_port``, ``tls``
      stays on unless explicitly ``false``, and self-signed certificates are
      accepted only when explicitly ``true``.

    Raises:
      NodeApiError: When there is no input, the field is absent, or the
        mandatory ``host``/``user``/``password`` keys are missing.
    """

    items = ctx.get_input_data()
    if len(items) == 0:
        raise NodeApiError("No input items provided", node_name=ctx.node_name)

    input_credentials = items[FIRST_ITEM_INDEX].json.get(credentials_field)
    if not input_credentials:
        raise NodeApiError(
            f'No credentials found in field "{credentials_field}"', node_name=ctx.node_name
        )
    if not isinstance(input_credentials, Mapping) or not all(
        input_credentials.get(key) for key in ("host", "user", "password")
    ):
        raise NodeApiError(
            "Credentials must contain at least host, user, and password fields",
            node_name=ctx.node_name,
        )

    try:
        return ImapCredentialsData(
            host=str(input_credentials["host"]),
            port=_coerce_port(ctx, input_credentials.get("port")),
            user=str(input_credentials["user"]),
            password=str(input_credentials["password"]),
            tls=input_credentials.get("tls") is not False,
            allow_unauthorized_certs=input_credentials.get("allowUnauthorizedCerts") is True,
        )
    except (TypeError, ValueError) as exc:
        # pydantic.ValidationError subclasses ValueError.
        raise NodeApiError(
            f'Invalid credentials in field "{credentials_field}": {exc}', node_name=ctx.node_name
        ) from exc


def resolve_credentials(ctx: ExecutionContext) -> ImapCredentialsData:
    """Return credentials for the source selected by ``authentication``."""

    authentication = ctx.get_node_parameter(
        "authentication", FIRST_ITEM_INDEX, CREDENTIALS_TYPE_THIS_NODE
    )
    if authentication == CREDENTIALS_TYPE_FROM_INPUT:
        credentials_field = ctx.get_node_parameter("credentialsField", FIRST_ITEM_INDEX, "credentials")
        return get_credentials_from_input(ctx, credentials_field)
    return get_imap_credentials(ctx)
