"""Email *Move* and *Copy* operations.

Move uses ``UID MOVE`` (RFC 6851) when advertised. Without it the messages
are copied, flagged ``\\Deleted`` and expunged; ``UID EXPUNGE`` keeps the
expunge scoped to the moved UIDs when the server has UIDPLUS.
"""
from __future__ import annotations

from typing import List

from ...host.context import ExecutionContext, NodeItem
from ...host.errors import NodeApiError
from ...host.parameters import NodeProperty, OperationDefinition, PropertyOption
from ...imap.client import ImapConnection
from ..common import email_uid_parameter, get_mailbox_path, get_uid_set, mailbox_parameter

PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(display_name="Source Mailbox", description="Mailbox holding the emails"),
    email_uid_parameter(),
    mailbox_parameter(
        "destinationMailbox",
        "Destination Mailbox",
        default_path="",
        description="Mailbox to put the emails in",
    ),
]


def _read(ctx: ExecutionContext, item_index: int):
    source = get_mailbox_path(ctx, item_index)
    uid_set = get_uid_set(ctx, item_index)
    destination = get_mailbox_path(ctx, item_index, "destinationMailbox")
    if destination == source:
        raise NodeApiError("Source and destination mailbox are the same", node_name=ctx.node_name)
    return source, uid_set, destination


def move(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    source, uid_set, destination = _read(ctx, item_index)
    with connection.session(source):
        if connection.has_capability("MOVE"):
            connection.client.move(uid_set, destination)
        else:
            ctx.logger.debug("Server lacks MOVE, falling back to COPY and EXPUNGE", mailbox=source)
            connection.client.copy(uid_set, destination)
            connection.client.delete_messages(uid_set)
            if connection.has_capability("UIDPLUS"):
                connection.client.expunge(uid_set)
            else:
                connection.client.expunge()
    ctx.logger.info("Moved emails", source=source, destination=destination, uids=uid_set)
    return [NodeItem(json={"uid": uid_set, "sourceMailbox": source, "destinationMailbox": destination, "moved": True})]


def copy(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    source, uid_set, destination = _read(ctx, item_index)
    with connection.session(source, readonly=True):
        connection.client.copy(uid_set, destination)
    ctx.logger.info("Copied emails", source=source, destination=destination, uids=uid_set)
    return [NodeItem(json={"uid": uid_set, "sourceMailbox": source, "destinationMailbox": destination, "copied": True})]


MOVE_OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Move",
        value="move",
        description="Move emails to another mailbox",
        action="Move emails",
    ),
    parameters=PARAMETERS,
    execute_imap_action=move,
)

COPY_OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Copy",
        value="copy",
        description="Copy emails to another mailbox",
        action="Copy emails",
    ),
    parameters=PARAMETERS,
    execute_imap_action=copy,
)
