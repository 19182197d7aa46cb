"""Email *Get Many*: search a mailbox and return one item per message.

What:
  Runs ``UID SEARCH`` with the criteria built from the date range, flag, and
  text filters, then fetches envelope, flags, size, and (on request) the
  content parts of every match.

Why:
  This is the operation most workflows start with; its item shape is what
  downstream nodes read ``uid`` and ``mailboxPath`` from.

How:
  The mailbox is examined read-only so fetching never sets ``\\Seen``
  (``BODY.PEEK``). The full message is fetched only when text, HTML, or
  attachment info is requested; headers alone use ``BODY.PEEK[HEADER]``.
  ``limit`` keeps the highest UIDs, i.e. the newest messages.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from ...host.context import ExecutionContext, NodeItem
from ...host.errors import NodeApiError
from ...host.parameters import DisplayOptions, NodeProperty, OperationDefinition, PropertyOption
from ...imap.client import ImapConnection
from ...imap.message import envelope_to_dict, parse_message
from ...imap.search import build_search, search_charset
from ..common import get_collection, get_mailbox_path, get_multi_options, mailbox_parameter, split_list

PART_TEXT = "textContent"
PART_HTML = "htmlContent"
PART_ATTACHMENTS = "attachmentsInfo"
PART_HEADERS = "headers"
CONTENT_PARTS = {PART_TEXT, PART_HTML, PART_ATTACHMENTS}
ALL_PARTS = CONTENT_PARTS | {PART_HEADERS}

BASE_FETCH_ITEMS = ["ENVELOPE", "FLAGS", "RFC822.SIZE", "INTERNALDATE"]

PARAMETERS: List[NodeProperty] = [
    mailbox_parameter(description="Mailbox to search"),
    NodeProperty(
        display_name="Date Range",
        name="emailDateRange",
        type="collection",
        default={},
        placeholder="Add Date",
        options=[
            NodeProperty(
                display_name="Since",
                name="since",
                type="dateTime",
                default="",
                description="Messages received on or after this date",
            ),
            NodeProperty(
                display_name="Before",
                name="before",
                type="dateTime",
                default="",
                description="Messages received before this date",
            ),
        ],
    ),
    NodeProperty(
        display_name="Flags",
        name="emailFlags",
        type="collection",
        default={},
        placeholder="Add Flag",
        description="Match messages that have (true) or lack (false) a flag",
        options=[
            NodeProperty(display_name="Is Answered", name="answered", type="boolean", default=False),
            NodeProperty(display_name="Is Deleted", name="deleted", type="boolean", default=False),
            NodeProperty(display_name="Is Draft", name="draft", type="boolean", default=False),
            NodeProperty(display_name="Is Flagged", name="flagged", type="boolean", default=False),
            NodeProperty(display_name="Is Recent", name="recent", type="boolean", default=False),
            NodeProperty(display_name="Is Seen", name="seen", type="boolean", default=False),
        ],
    ),
    NodeProperty(
        display_name="Search Filters",
        name="emailSearchFilters",
        type="collection",
        default={},
        placeholder="Add Filter",
        options=[
            NodeProperty(display_name="From", name="from", type="string", default=""),
            NodeProperty(display_name="To", name="to", type="string", default=""),
            NodeProperty(display_name="CC", name="cc", type="string", default=""),
            NodeProperty(display_name="BCC", name="bcc", type="string", default=""),
            NodeProperty(display_name="Subject", name="subject", type="string", default=""),
            NodeProperty(
                display_name="Text",
                name="text",
                type="string",
                default="",
                description="Search headers and body",
            ),
            NodeProperty(display_name="Body", name="body", type="string", default=""),
            NodeProperty(
                display_name="UID",
                name="uid",
                type="string",
                default="",
                placeholder="1:100",
                description="Comma-separated UIDs and ranges",
            ),
        ],
    ),
    NodeProperty(
        display_name="Include Message Parts",
        name="includeParts",
        type="multiOptions",
        default=[],
        options=[
            PropertyOption(name="Text Content", value=PART_TEXT),
            PropertyOption(name="HTML Content", value=PART_HTML),
            PropertyOption(name="Attachments Info", value=PART_ATTACHMENTS),
            PropertyOption(name="Headers", value=PART_HEADERS),
        ],
    ),
    NodeProperty(
        display_name="Include All Headers",
        name="includeAllHeaders",
        type="boolean",
        default=True,
        display_options=DisplayOptions(show={"includeParts": [PART_HEADERS]}),
    ),
    NodeProperty(
        display_name="Headers to Include",
        name="headersToInclude",
        type="string",
        default="",
        placeholder="received,authentication-results,return-path",
        description="Comma-separated list of header names",
        display_options=DisplayOptions(
            show={"includeParts": [PART_HEADERS], "includeAllHeaders": [False]}
        ),
    ),
    NodeProperty(
        display_name="Limit",
        name="limit",
        type="number",
        default=0,
        type_options={"minValue": 0},
        description="Maximum number of newest messages to return; 0 returns all matches",
    ),
]


def _flags(values: Any) -> List[str]:
    return [flag.decode("utf-8", errors="replace") if isinstance(flag, bytes) else str(flag) for flag in values or ()]


def message_to_json(uid: int, mailbox_path: str, data: Dict[bytes, Any]) -> Dict[str, Any]:
    internal_date = data.get(b"INTERNALDATE")
    return {
        "uid": uid,
        "mailboxPath": mailbox_path,
        "envelope": envelope_to_dict(data.get(b"ENVELOPE")),
        "labels": _flags(data.get(b"FLAGS")),
        "size": data.get(b"RFC822.SIZE"),
        "internalDate": internal_date.isoformat() if isinstance(internal_date, datetime) else None,
    }


def execute(ctx: ExecutionContext, item_index: int, connection: ImapConnection) -> List[NodeItem]:
    path = get_mailbox_path(ctx, item_index)
    try:
        criteria = build_search(
            get_collection(ctx, item_index, "emailDateRange"),
            get_collection(ctx, item_index, "emailFlags"),
            get_collection(ctx, item_index, "emailSearchFilters"),
        )
    except ValueError as exc:
        raise NodeApiError(f"Invalid search parameters: {exc}", node_name=ctx.node_name) from exc

    parts = set(get_multi_options(ctx, item_index, "includeParts"))
    unknown = sorted(parts - ALL_PARTS)
    if unknown:
        raise NodeApiError(f"Unknown message part(s): {', '.join(unknown)}", node_name=ctx.node_name)
    include_all_headers = bool(ctx.get_node_parameter("includeAllHeaders", item_index, True))
    headers_to_include = split_list(ctx.get_node_parameter("headersToInclude", item_index, ""))
    limit = int(ctx.get_node_parameter("limit", item_index, 0) or 0)

    fetch_items = list(BASE_FETCH_ITEMS)
    body_key = None
    if parts & CONTENT_PARTS:
        fetch_items.append("BODY.PEEK[]")
        body_key = b"BODY[]"
    elif PART_HEADERS in parts:
        fetch_items.append("BODY.PEEK[HEADER]")
        body_key = b"BODY[HEADER]"

    items: List[NodeItem] = []
    with connection.session(path, readonly=True):
        ctx.logger.debug("Searching mailbox", mailbox=path, criteria=[str(value) for value in criteria])
        uids = sorted(connection.client.search(criteria, charset=search_charset(criteria)))
        if limit > 0:
            uids = uids[-limit:]
        if not uids:
            return items
        response = connection.client.fetch(uids, fetch_items)

    for uid in uids:
        data = response.get(uid)
        if data is None:
            # Expunged between SEARCH and FETCH.
            continue
        payload = message_to_json(uid, path, data)
        raw = data.get(body_key) if body_key is not None else None
        if raw:
            parsed = parse_message(raw)
            if PART_TEXT in parts:
                payload[PART_TEXT] = parsed.text
            if PART_HTML in parts:
                payload[PART_HTML] = parsed.html
            if PART_ATTACHMENTS in parts:
                payload[PART_ATTACHMENTS] = parsed.attachments
            if PART_HEADERS in parts:
                payload[PART_HEADERS] = (
                    parsed.headers if include_all_headers else parsed.select_headers(headers_to_include)
                )
        items.append(NodeItem(json=payload))
    ctx.logger.debug("Fetched messages", mailbox=path, count=len(items))
    return items


OPERATION = OperationDefinition(
    operation=PropertyOption(
        name="Get Many",
        value="getList",
        description="Search a mailbox and get the matching emails",
        action="Get many emails",
    ),
    parameters=PARAMETERS,
    execute_imap_action=execute,
)
