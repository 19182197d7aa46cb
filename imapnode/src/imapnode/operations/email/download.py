"""Email *Download EML* and *Download Attachment* operations."""
from __future__ import annotations

from typing import List

from ...host.context import BinaryData, ExecutionContext, NodeItem
from ...host.errors import NodeApiError
from ...host.parameters import DisplayOptions, NodeProperty, OperationDefinition, PropertyOption
from ...imap.client import ImapConnection
from ...imap.message import find_part, parse_message
from ..common import get_mailbox_path, get_single_uid, mailbox_parameter, split_list

EML_MIME_TYPE = "message/rfc822"


def _single_uid_parameter() -> NodeProperty:
    return NodeProperty(
        display_name="Email UID",
        name="emailUid",
        type="string",
        default="",
        required=True,
        description="UID of the email",
    )


def fetch_raw_message(ctx: ExecutionContext, connection: ImapConnection, path: str, uid: int) -> bytes:
    """Fetch the full message without setting ``\\Seen``.

    Raises:
      NodeApiError: If the mailbox holds no message with ``uid``.
    """

    with connection.session(path, readonly=True):
        response = connection.client.fetch([uid], ["BODY.PEEK[]"])
    raw = (response.get(uid) or {}).get(b"BODY[]")
    if not raw:
        raise NodeApiError(f'Email with UID {uid} not found in mailbox "{path}"', node_name=ctx.node_name)
    return raw


EML_PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(),
    _single_uid_parameter(),
    NodeProperty(
        display_name="Output to Binary Data",
        name="outputToBinary",
        type="boolean",
        default=True,
        description="Whether to put the message in a binary property instead of the JSON field emlContent",
    ),
    NodeProperty(
        display_name="Binary Property",
        name="binaryPropertyName",
        type="string",
        default="data",
        required=True,
        display_options=DisplayOptions(show={"outputToBinary": [True]}),
    ),
]


def download_eml(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    uid = get_single_uid(ctx, item_index)
    raw = fetch_raw_message(ctx, connection, path, uid)
    payload = {"uid": uid, "mailboxPath": path, "size": len(raw)}
    if not ctx.get_node_parameter("outputToBinary", item_index, True):
        payload["emlContent"] = raw.decode("utf-8", errors="replace")
        return [NodeItem(json=payload)]
    property_name = str(ctx.get_node_parameter("binaryPropertyName", item_index, "data")).strip() or "data"
    binary = BinaryData.from_bytes(raw, mime_type=EML_MIME_TYPE, file_name=f"{uid}.eml")
    return [NodeItem(json=payload, binary={property_name: binary})]


ATTACHMENT_PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(),
    _single_uid_parameter(),
    NodeProperty(
        display_name="Part IDs",
        name="partId",
        type="string",
        default="",
        required=True,
        placeholder="2,3.1",
        description="Comma-separated attachment part IDs, as reported by Get Many with Attachments Info",
    ),
    NodeProperty(
        display_name="Binary Property Prefix",
        name="binaryPropertyName",
        type="string",
        default="attachment",
        required=True,
        description="Attachments are stored as <prefix>_0, <prefix>_1, ...",
    ),
]


def download_attachment(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    uid = get_single_uid(ctx, item_index)
    part_ids = split_list(ctx.get_node_parameter("partId", item_index, ""))
    if not part_ids:
        raise NodeApiError('Parameter "partId" must list at least one part', node_name=ctx.node_name)
    prefix = str(ctx.get_node_parameter("binaryPropertyName", item_index, "attachment")).strip() or "attachment"

    message = parse_message(fetch_raw_message(ctx, connection, path, uid)).message
    attachments = []
    binary = {}
    for index, part_id in enumerate(part_ids):
        try:
            info, content = find_part(message, part_id)
        except KeyError:
            raise NodeApiError(
                f'Part "{part_id}" not found in email {uid}', node_name=ctx.node_name
            ) from None
        property_name = f"{prefix}_{index}"
        binary[property_name] = BinaryData.from_bytes(
            content,
            mime_type=info["contentType"],
            file_name=info["filename"] or f"{uid}-{part_id}",
        )
        attachments.append(dict(info, binaryProperty=property_name))
    return [NodeItem(json={"uid": uid, "mailboxPath": path, "attachments": attachments}, binary=binary)]


EML_OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Download as EML",
        value="downloadEml",
        description="Download the complete message as an EML file",
        action="Download an email as EML",
    ),
    parameters=EML_PARAMETERS,
    execute_imap_action=download_eml,
)

ATTACHMENT_OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Download Attachment",
        value="downloadAttachment",
        description="Download one or more attachments of an email",
        action="Download email attachments",
    ),
    parameters=ATTACHMENT_PARAMETERS,
    execute_imap_action=download_attachment,
)
