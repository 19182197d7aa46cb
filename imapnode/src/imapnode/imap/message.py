"""Shape fetched IMAP data into JSON-friendly item fields.

What:
  Convert ``ENVELOPE`` structures into plain dictionaries and parse full
  RFC822 payloads (via ``mail-parser``) into text, HTML, headers, and
  attachment descriptors whose ``partId`` follows IMAP body-part numbering.

Why:
  Workflow items must be JSON. The attachment ``partId`` reported by
  *Get Many* is the same identifier *Download Attachment* accepts, so both
  operations must number parts identically.

How:
  Envelope fields are decoded from bytes and RFC 2047 encoded-words. Parsing
  is delegated to :func:`mailparser.parse_from_bytes`; the resulting
  ``email.message.Message`` tree is walked with :func:`iter_body_parts`.

Interfaces:
  :func:`envelope_to_dict`, :func:`decode_header_value`, :class:`ParsedMessage`,
  :func:`parse_message`, :func:`iter_body_parts`, :func:`find_part`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from email.header import decode_header, make_header
from email.message import Message
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import mailparser


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def decode_header_value(value: Any) -> str:
    """Decode RFC 2047 encoded-words in a header value."""

    text = _text(value)
    if "=?" not in text:
        return text
    try:
        return str(make_header(decode_header(text)))
    except (LookupError, UnicodeDecodeError, ValueError):
        return text


def _addresses(addresses: Optional[Iterable[Any]]) -> List[Dict[str, str]]:
    result: List[Dict[str, str]] = []
    for address in addresses or ():
        mailbox = _text(address.mailbox)
        host = _text(address.host)
        result.append(
            {
                "name": decode_header_value(address.name),
                "address": f"{mailbox}@{host}" if mailbox and host else mailbox,
            }
        )
    return result


def envelope_to_dict(envelope: Any) -> Dict[str, Any]:
    """Return the JSON form of an ``imapclient`` ``Envelope``."""

    if envelope is None:
        return {}
    envelope_date = envelope.date
    return {
        "date": envelope_date.isoformat() if isinstance(envelope_date, datetime) else None,
        "subject": decode_header_value(envelope.subject),
        "from": _addresses(envelope.from_),
        "sender": _addresses(envelope.sender),
        "replyTo": _addresses(envelope.reply_to),
        "to": _addresses(envelope.to),
        "cc": _addresses(envelope.cc),
        "bcc": _addresses(envelope.bcc),
        "inReplyTo": _text(envelope.in_reply_to) or None,
        "messageId": _text(envelope.message_id) or None,
    }


def iter_body_parts(message: Message) -> Iterator[Tuple[str, Message]]:
    """Yield ``(part_id, part)`` for every leaf body part in IMAP numbering.

    A non-multipart message is part ``"1"``. Children of a multipart are
    numbered from 1 and nested multiparts extend their parent's id
    (``"1.2"``). Embedded ``message/rfc822`` parts are leaves.
    """

    if message.get_content_maintype() != "multipart":
        yield "1", message
        return
    yield from _walk_multipart(message, "")


def _walk_multipart(message: Message, prefix: str) -> Iterator[Tuple[str, Message]]:
    for index, part in enumerate(message.get_payload(), start=1):
        part_id = f"{prefix}.{index}" if prefix else str(index)
        if part.get_content_maintype() == "multipart":
            yield from _walk_multipart(part, part_id)
        else:
            yield part_id, part


def _part_payload(part: Message) -> bytes:
    if part.get_content_type() == "message/rfc822":
        inner = part.get_payload()
        if isinstance(inner, list) and inner:
            return inner[0].as_bytes()
    payload = part.get_payload(decode=True)
    return payload if isinstance(payload, bytes) else b""


def _is_attachment(part: Message) -> bool:
    disposition = part.get_content_disposition()
    if disposition == "attachment":
        return True
    return part.get_filename() is not None


def attachment_info(part_id: str, part: Message) -> Dict[str, Any]:
    content_id = part.get("Content-ID")
    return {
        "partId": part_id,
        "filename": decode_header_value(part.get_filename()) or None,
        "contentType": part.get_content_type(),
        "size": len(_part_payload(part)),
        "disposition": part.get_content_disposition(),
        "contentId": content_id.strip().strip("<>") if content_id else None,
    }


@dataclass
class ParsedMessage:
    """Content extracted from a full RFC822 message."""

    message: Message
    text: Optional[str] = None
    html: Optional[str] = None
    headers: Dict[str, Any] = field(default_factory=dict)
    attachments: List[Dict[str, Any]] = field(default_factory=list)

    def select_headers(self, names: Iterable[str]) -> Dict[str, Any]:
        """Return only ``names`` (case-insensitive), keyed as the message spells them."""

        wanted = {name.strip().lower() for name in names if name and name.strip()}
        return {key: value for key, value in self.headers.items() if key.lower() in wanted}


def parse_message(raw: bytes) -> ParsedMessage:
    """Parse a raw RFC822 payload.

    What:
      Returns decoded plain text and HTML bodies (parts joined with a blank
      line), the header mapping, and descriptors for every attachment.

    Raises:
      ValueError: If ``raw`` is empty.
    """

    if not raw:
        raise ValueError("Empty message payload")
    parsed = mailparser.parse_from_bytes(raw)
    message = parsed.message
    attachments = [
        attachment_info(part_id, part)
        for part_id, part in iter_body_parts(message)
        if _is_attachment(part)
    ]
    return ParsedMessage(
        message=message,
        text="\n\n".join(parsed.text_plain) if parsed.text_plain else None,
        html="\n\n".join(parsed.text_html) if parsed.text_html else None,
        headers=dict(parsed.headers),
        attachments=attachments,
    )


def find_part(message: Message, part_id: str) -> Tuple[Dict[str, Any], bytes]:
    """Return ``(info, decoded_payload)`` for ``part_id``.

    Raises:
      KeyError: If the message has no such part.
    """

    wanted = part_id.strip()
    for candidate_id, part in iter_body_parts(message):
        if candidate_id == wanted:
            return attachment_info(candidate_id, part), _part_payload(part)
    raise KeyError(part_id)
