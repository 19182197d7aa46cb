"""Mailbox listing: the *Get Many* operation and the mailbox list-search method.

What:
  Emit one item per mailbox, optionally with ``STATUS`` counters, and serve
  the host's mailbox picker.

How:
  ``LIST "" "*"`` through :meth:`ImapConnection.list_mailboxes`. Status
  counters are skipped for ``\\Noselect`` containers, which cannot answer
  ``STATUS``. ``specialUse`` is the first RFC 6154 attribute a mailbox
  carries.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...host.context import ExecutionContext, NodeItem
from ...host.parameters import NodeProperty, OperationDefinition, PropertyOption
from ...imap.client import ImapConnection, MailboxInfo
from ..common import get_multi_options
from .get_status import STATUS_FIELD_OPTIONS, query_status

SPECIAL_USE_FLAGS = (
    "\\All",
    "\\Archive",
    "\\Drafts",
    "\\Flagged",
    "\\Junk",
    "\\Sent",
    "\\Trash",
)


def special_use(mailbox: MailboxInfo) -> Optional[str]:
    lowered = {flag.lower() for flag in mailbox.flags}
    for flag in SPECIAL_USE_FLAGS:
        if flag.lower() in lowered:
            return flag
    if mailbox.path.upper() == "INBOX":
        return "\\Inbox"
    return None


def mailbox_to_json(mailbox: MailboxInfo) -> Dict[str, Any]:
    return {
        "path": mailbox.path,
        "name": mailbox.name,
        "delimiter": mailbox.delimiter,
        "flags": mailbox.flags,
        "specialUse": special_use(mailbox),
    }


PARAMETERS: List[NodeProperty] = [
    NodeProperty(
        display_name="Include Status Fields",
        name="includeStatusFields",
        type="multiOptions",
        default=[],
        options=STATUS_FIELD_OPTIONS,
        description="Status counters to fetch for every mailbox (one STATUS command per mailbox)",
    ),
]


def execute(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    status_fields = get_multi_options(ctx, item_index, "includeStatusFields")
    items: List[NodeItem] = []
    for mailbox in connection.list_mailboxes():
        payload = mailbox_to_json(mailbox)
        if status_fields and mailbox.selectable:
            payload["status"] = query_status(connection, mailbox.path, status_fields)
        items.append(NodeItem(json=payload))
    ctx.logger.debug("Listed mailboxes", count=len(items))
    return items


def load_mailbox_list(connection: ImapConnection, filter_text: Optional[str] = None) -> Dict[str, Any]:
    """List-search results for the mailbox picker.

    Returns:
      ``{"results": [{"name": path, "value": path}, ...]}`` sorted by path,
      filtered case-insensitively by ``filter_text``.
    """

    needle = (filter_text or "").strip().lower()
    results = [
        {"name": mailbox.path, "value": mailbox.path}
        for mailbox in connection.list_mailboxes()
        if mailbox.selectable and (not needle or needle in mailbox.path.lower())
    ]
    results.sort(key=lambda entry: entry["name"].lower())
    return {"results": results}


OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Get Many",
        value="getList",
        description="Get a list of mailboxes",
        action="Get many mailboxes",
    ),
    parameters=PARAMETERS,
    execute_imap_action=execute,
)
