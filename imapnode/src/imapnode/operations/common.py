"""Parameters and helpers shared by mailbox and email operations."""
from __future__ import annotations

from typing import Any, List, Mapping, Optional

from ..host.context import ExecutionContext
from ..host.errors import NodeApiError
from ..host.parameters import NodeProperty, ResourceLocatorMode
from ..imap.search import parse_uid_set

MAILBOX_LIST_SEARCH_METHOD = "loadMailboxList"


def mailbox_parameter(
    name: str = "mailboxPath",
    display_name: str = "Mailbox",
    *,
    default_path: str = "INBOX",
    description: Optional[str] = None,
    required: bool = True,
) -> NodeProperty:
    """Resource-locator parameter letting the user pick a mailbox or type its path."""

    return NodeProperty(
        display_name=display_name,
        name=name,
        type="resourceLocator",
        default={"mode": "list", "value": default_path},
        description=description or "Select the mailbox",
        required=required,
        modes=[
            ResourceLocatorMode(
                display_name="List",
                name="list",
                type="list",
                placeholder="Select a mailbox...",
                type_options={"searchListMethod": MAILBOX_LIST_SEARCH_METHOD, "searchable": True},
            ),
            ResourceLocatorMode(display_name="Path", name="path", type="string", placeholder=default_path),
        ],
    )


def email_uid_parameter(name: str = "emailUid") -> NodeProperty:
    return NodeProperty(
        display_name="Email UID",
        name=name,
        type="string",
        default="",
        required=True,
        placeholder="1,3:5",
        description="UID of the email, or a comma-separated list of UIDs and ranges",
    )


def locator_value(value: Any) -> str:
    """Return the plain string a resource-locator value points at."""

    if isinstance(value, Mapping):
        value = value.get("value")
    return "" if value is None else str(value).strip()


def get_mailbox_path(
    ctx: ExecutionContext,
    item_index: int,
    name: str = "mailboxPath",
    *,
    allow_empty: bool = False,
) -> str:
    """Read a mailbox parameter as a path.

    Raises:
      NodeApiError: If the mailbox is empty and ``allow_empty`` is false.
    """

    path = locator_value(ctx.get_node_parameter(name, item_index, ""))
    if not path and not allow_empty:
        raise NodeApiError(f'Parameter "{name}" must name a mailbox', node_name=ctx.node_name)
    return path


def get_uid_set(ctx: ExecutionContext, item_index: int, name: str = "emailUid") -> str:
    """Read and validate a UID sequence-set parameter.

    Raises:
      NodeApiError: If the value is not a valid UID set.
    """

    raw = ctx.get_node_parameter(name, item_index, "")
    try:
        return parse_uid_set(raw)
    except ValueError as exc:
        raise NodeApiError(f'Invalid value for "{name}": {exc}', node_name=ctx.node_name) from exc


def get_single_uid(ctx: ExecutionContext, item_index: int, name: str = "emailUid") -> int:
    raw = str(ctx.get_node_parameter(name, item_index, "")).strip()
    if not raw.isdigit() or int(raw) == 0:
        raise NodeApiError(
            f'Parameter "{name}" must be a single email UID, got "{raw}"', node_name=ctx.node_name
        )
    return int(raw)


def get_collection(ctx: ExecutionContext, item_index: int, name: str) -> dict:
    value = ctx.get_node_parameter(name, item_index, {})
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise NodeApiError(f'Parameter "{name}" must be a collection', node_name=ctx.node_name)
    return dict(value)


def get_multi_options(ctx: ExecutionContext, item_index: int, name: str) -> List[str]:
    value = ctx.get_node_parameter(name, item_index, [])
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(part) for part in value]


def split_list(value: Any) -> List[str]:
    """Split a comma-separated parameter into trimmed, non-empty entries."""

    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(part).strip() for part in value if str(part).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]
