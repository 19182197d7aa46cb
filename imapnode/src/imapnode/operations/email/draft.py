"""Email *Create Draft*: compose a message and ``APPEND`` it with ``\\Draft``.

The server-assigned UID is read from the ``APPENDUID`` response code
(RFC 4315); servers without UIDPLUS yield ``uid: null``.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import format_datetime, make_msgid
from typing import Any, List, Optional

from ...host.context import ExecutionContext, NodeItem
from ...host.parameters import NodeProperty, OperationDefinition, PropertyOption
from ...imap.client import ImapConnection
from ..common import get_mailbox_path, mailbox_parameter

APPENDUID_PATTERN = re.compile(rb"\[APPENDUID (\d+) (\d+)\]", re.IGNORECASE)

PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(default_path="Drafts", description="Mailbox to store the draft in"),
    NodeProperty(display_name="Subject", name="subject", type="string", default=""),
    NodeProperty(
        display_name="From",
        name="from",
        type="string",
        default="",
        placeholder="Jane Doe <jane@example.com>",
    ),
    NodeProperty(
        display_name="To",
        name="to",
        type="string",
        default="",
        description="Comma-separated recipients",
    ),
    NodeProperty(display_name="CC", name="cc", type="string", default=""),
    NodeProperty(display_name="BCC", name="bcc", type="string", default=""),
    NodeProperty(
        display_name="Text",
        name="text",
        type="string",
        default="",
        type_options={"rows": 5},
    ),
    NodeProperty(
        display_name="HTML",
        name="html",
        type="string",
        default="",
        type_options={"rows": 5},
    ),
]


def parse_append_uid(response: Any) -> Optional[int]:
    if isinstance(response, str):
        response = response.encode("utf-8")
    if not isinstance(response, bytes):
        return None
    match = APPENDUID_PATTERN.search(response)
    return int(match.group(2)) if match else None


def build_draft(
    *,
    subject: str = "",
    sender: str = "",
    to: str = "",
    cc: str = "",
    bcc: str = "",
    text: str = "",
    html: str = "",
) -> EmailMessage:
    """Compose a draft; ``html`` becomes a ``multipart/alternative`` sibling of ``text``."""

    message = EmailMessage()
    for header, value in (("From", sender), ("To", to), ("Cc", cc), ("Bcc", bcc)):
        if value:
            message[header] = value
    message["Subject"] = subject
    message["Date"] = format_datetime(datetime.now(timezone.utc))
    message["Message-ID"] = make_msgid()
    message.set_content(text or "")
    if html:
        message.add_alternative(html, subtype="html")
    return message


def execute(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    values = {
        name: str(ctx.get_node_parameter(name, item_index, "") or "")
        for name in ("subject", "from", "to", "cc", "bcc", "text", "html")
    }
    message = build_draft(
        subject=values["subject"],
        sender=values["from"],
        to=values["to"],
        cc=values["cc"],
        bcc=values["bcc"],
        text=values["text"],
        html=values["html"],
    )
    response = connection.client.append(
        path,
        message.as_bytes(),
        flags=["\\Draft"],
        msg_time=datetime.now(timezone.utc),
    )
    uid = parse_append_uid(response)
    ctx.logger.info("Created draft", mailbox=path, uid=uid)
    return [
        NodeItem(
            json={
                "mailboxPath": path,
                "uid": uid,
                "messageId": message["Message-ID"],
                "subject": values["subject"],
            }
        )
    ]


OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Create Draft",
        value="createDraft",
        description="Create a draft email",
        action="Create a draft",
    ),
    parameters=PARAMETERS,
    execute_imap_action=execute,
)
