"""Mailbox *Create*, *Rename* and *Delete* operations."""
from __future__ import annotations

from typing import List

from ...host.context import ExecutionContext, NodeItem
from ...host.errors import NodeApiError
from ...host.parameters import NodeProperty, OperationDefinition, PropertyOption
from ...imap.client import ImapConnection
from ..common import get_mailbox_path, mailbox_parameter

CREATE_PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(
        "parentMailbox",
        "Parent Mailbox",
        default_path="",
        description="Mailbox to create the new one in; leave empty to create it at the top level",
        required=False,
    ),
    NodeProperty(
        display_name="Mailbox Name",
        name="mailboxName",
        type="string",
        default="",
        required=True,
        placeholder="Invoices",
        description="Name of the new mailbox",
    ),
]


def create(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    parent = get_mailbox_path(ctx, item_index, "parentMailbox", allow_empty=True)
    name = str(ctx.get_node_parameter("mailboxName", item_index, "")).strip()
    if not name:
        raise NodeApiError('Parameter "mailboxName" must not be empty', node_name=ctx.node_name)
    path = connection.join_path(parent, name)
    ctx.logger.info("Creating mailbox", mailbox=path)
    connection.client.create_folder(path)
    return [NodeItem(json={"path": path, "created": True})]


RENAME_PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(description="Mailbox to rename"),
    NodeProperty(
        display_name="New Mailbox Path",
        name="newMailboxPath",
        type="string",
        default="",
        required=True,
        placeholder="Archive/2024",
        description="Full new path of the mailbox, using the server's hierarchy delimiter",
    ),
]


def rename(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    new_path = str(ctx.get_node_parameter("newMailboxPath", item_index, "")).strip()
    if not new_path:
        raise NodeApiError('Parameter "newMailboxPath" must not be empty', node_name=ctx.node_name)
    ctx.logger.info("Renaming mailbox", mailbox=path, new_path=new_path)
    connection.client.rename_folder(path, new_path)
    return [NodeItem(json={"path": path, "newPath": new_path, "renamed": True})]


DELETE_PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(default_path="", description="Mailbox to delete, including all its messages"),
]


def delete(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    if path.upper() == "INBOX":
        raise NodeApiError("The INBOX cannot be deleted", node_name=ctx.node_name)
    ctx.logger.info("Deleting mailbox", mailbox=path)
    connection.client.delete_folder(path)
    return [NodeItem(json={"path": path, "deleted": True})]


CREATE_OPERATION = OperationDefinition(
    operation=PropertyOption(name="Create", value="create", description="Create a mailbox", action="Create a mailbox"),
    parameters=CREATE_PARAMETERS,
    execute_imap_action=create,
)

RENAME_OPERATION = OperationDefinition(
    operation=PropertyOption(name="Rename", value="rename", description="Rename a mailbox", action="Rename a mailbox"),
    parameters=RENAME_PARAMETERS,
    execute_imap_action=rename,
)

DELETE_OPERATION = OperationDefinition(
    operation=PropertyOption(name="Delete", value="delete", description="Delete a mailbox", action="Delete a mailbox"),
    parameters=DELETE_PARAMETERS,
    execute_imap_action=delete,
)
