"""Email *Set Flags* and *Delete* operations."""
from __future__ import annotations

from typing import Dict, List

from ...host.context import ExecutionContext, NodeItem
from ...host.errors import NodeApiError
from ...host.parameters import NodeProperty, OperationDefinition, PropertyOption
from ...imap.client import ImapConnection
from ..common import email_uid_parameter, get_collection, get_mailbox_path, get_uid_set, mailbox_parameter

SYSTEM_FLAGS: Dict[str, str] = {
    "answered": "\\Answered",
    "deleted": "\\Deleted",
    "draft": "\\Draft",
    "flagged": "\\Flagged",
    "seen": "\\Seen",
}

SET_FLAGS_PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(),
    email_uid_parameter(),
    NodeProperty(
        display_name="Flags",
        name="flags",
        type="collection",
        default={},
        placeholder="Add Flag",
        description="Enabled flags are added, disabled flags are removed",
        options=[
            NodeProperty(display_name="Answered", name="answered", type="boolean", default=False),
            NodeProperty(display_name="Deleted", name="deleted", type="boolean", default=False),
            NodeProperty(display_name="Draft", name="draft", type="boolean", default=False),
            NodeProperty(display_name="Flagged", name="flagged", type="boolean", default=False),
            NodeProperty(display_name="Seen", name="seen", type="boolean", default=False),
        ],
    ),
]


def set_flags(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    uid_set = get_uid_set(ctx, item_index)
    requested = get_collection(ctx, item_index, "flags")
    unknown = sorted(set(requested) - set(SYSTEM_FLAGS))
    if unknown:
        raise NodeApiError(f"Unsupported flag(s): {', '.join(unknown)}", node_name=ctx.node_name)

    to_add = [SYSTEM_FLAGS[key] for key, value in requested.items() if value is True]
    to_remove = [SYSTEM_FLAGS[key] for key, value in requested.items() if value is False]
    if not to_add and not to_remove:
        ctx.logger.warning("No flags to change", mailbox=path, uids=uid_set)
    with connection.session(path):
        if to_add:
            connection.client.add_flags(uid_set, to_add)
        if to_remove:
            connection.client.remove_flags(uid_set, to_remove)
    return [
        NodeItem(
            json={"uid": uid_set, "mailboxPath": path, "flagsAdded": to_add, "flagsRemoved": to_remove}
        )
    ]


DELETE_PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(),
    email_uid_parameter(),
    NodeProperty(
        display_name="Expunge",
        name="expunge",
        type="boolean",
        default=True,
        description="Whether to permanently remove the emails; otherwise they are only flagged \\Deleted",
    ),
]


def delete(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    uid_set = get_uid_set(ctx, item_index)
    expunge = bool(ctx.get_node_parameter("expunge", item_index, True))
    with connection.session(path):
        connection.client.delete_messages(uid_set)
        if expunge:
            # Plain EXPUNGE also removes other messages already flagged \Deleted.
            if connection.has_capability("UIDPLUS"):
                connection.client.expunge(uid_set)
            else:
                connection.client.expunge()
    ctx.logger.info("Deleted emails", mailbox=path, uids=uid_set, expunged=expunge)
    return [NodeItem(json={"uid": uid_set, "mailboxPath": path, "deleted": True, "expunged": expunge})]


SET_FLAGS_OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Set Flags",
        value="setFlags",
        description="Add or remove flags on emails",
        action="Set flags on emails",
    ),
    parameters=SET_FLAGS_PARAMETERS,
    execute_imap_action=set_flags,
)

DELETE_OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Delete",
        value="delete",
        description="Delete emails",
        action="Delete emails",
    ),
    parameters=DELETE_PARAMETERS,
    execute_imap_action=delete,
)
