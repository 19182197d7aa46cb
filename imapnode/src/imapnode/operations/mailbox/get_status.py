"""Mailbox *Get Status* operation and the ``STATUS`` helper it shares with *Get Many*."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ...host.context import ExecutionContext, NodeItem
from ...host.parameters import NodeProperty, OperationDefinition, PropertyOption
from ...imap.client import ImapConnection
from ..common import get_mailbox_path, mailbox_parameter

# Host field name -> IMAP STATUS data item.
STATUS_FIELDS: Dict[str, str] = {
    "messages": "MESSAGES",
    "recent": "RECENT",
    "unseen": "UNSEEN",
    "uidNext": "UIDNEXT",
    "uidValidity": "UIDVALIDITY",
    "highestModseq": "HIGHESTMODSEQ",
}

STATUS_FIELD_OPTIONS: List[PropertyOption] = [
    PropertyOption(name="Messages", value="messages", description="Number of messages"),
    PropertyOption(name="Recent", value="recent", description="Number of messages with the \\Recent flag"),
    PropertyOption(name="Unseen", value="unseen", description="Number of messages without the \\Seen flag"),
    PropertyOption(name="UID Next", value="uidNext", description="UID the next new message will get"),
    PropertyOption(name="UID Validity", value="uidValidity", description="UID validity value of the mailbox"),
    PropertyOption(
        name="Highest Modseq",
        value="highestModseq",
        description="Highest mod-sequence (servers with CONDSTORE only)",
    ),
]


def query_status(
    connection: ImapConnection,
    path: str,
    fields: Optional[Iterable[str]] = None,
) -> Dict[str, int]:
    """Issue ``STATUS`` for ``path`` and return the requested fields.

    ``highestModseq`` is silently dropped when the server lacks CONDSTORE,
    since asking for it would fail the whole command.
    """

    requested = list(fields) if fields is not None else list(STATUS_FIELDS)
    unknown = [name for name in requested if name not in STATUS_FIELDS]
    if unknown:
        raise ValueError(f"Unknown status field(s): {', '.join(unknown)}")
    if "highestModseq" in requested and not connection.has_capability("CONDSTORE"):
        requested.remove("highestModseq")
    if not requested:
        return {}
    response = connection.client.folder_status(path, [STATUS_FIELDS[name] for name in requested])
    result: Dict[str, int] = {}
    for name in requested:
        key = STATUS_FIELDS[name].encode("ascii")
        if key in response:
            result[name] = int(response[key])
    return result


PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(description="Mailbox to get the status of"),
]


def execute(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    ctx.logger.debug("Getting mailbox status", mailbox=path)
    status = query_status(connection, path)
    return [NodeItem(json={"path": path, **status})]


OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Get Status",
        value="getStatus",
        description="Get the message counters of a mailbox",
        action="Get mailbox status",
    ),
    parameters=PARAMETERS,
    execute_imap_action=execute,
)
