"""In-memory IMAP backend used by unit tests.

What:
  Provide a drop-in replacement for :class:`imapclient.IMAPClient` that stores
  messages per mailbox and exposes the subset of the IMAP API the node calls.

Why:
  Operation handlers and the dispatch loop must be exercised without
  contacting real servers. The fake keeps UIDs, flags and capabilities
  deterministic and records every call for assertions.

How:
  Mailboxes map UIDs to :class:`_StoredMessage` records. Responses use the
  same shapes ``imapclient`` returns (bytes keys, ``Envelope`` named tuples,
  ``(flags, delimiter, name)`` listings). ``fail`` makes the next call of a
  method log a warning on the ``imapclient`` logger and raise.

Interfaces:
  :class:`FakeImapBackend`, :func:`build_message`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from imapclient.exceptions import IMAPClientError
from imapclient.response_types import Address, Envelope


def build_message(
    subject: str = "Hello",
    sender: str = "Alice <alice@example.com>",
    to: str = "bob@example.com",
    text: str = "Plain body",
    html: Optional[str] = None,
    attachments: Iterable[Tuple[str, str, bytes]] = (),
    date: str = "Mon, 02 Sep 2024 10:00:00 +0000",
) -> bytes:
    """Return RFC822 bytes; ``attachments`` holds ``(filename, mime, payload)``."""

    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message["Date"] = date
    message["Message-ID"] = f"<{subject.replace(' ', '-').lower()}@example.com>"
    message["X-Custom"] = "custom value"
    message.set_content(text)
    if html is not None:
        message.add_alternative(html, subtype="html")
    for filename, mime_type, payload in attachments:
        maintype, subtype = mime_type.split("/", 1)
        message.add_attachment(payload, maintype=maintype, subtype=subtype, filename=filename)
    return message.as_bytes()


def _addresses(value: Optional[str]) -> Optional[Tuple[Address, ...]]:
    if not value:
        return None
    result = []
    for name, address in getaddresses([value]):
        mailbox, _, host = address.partition("@")
        result.append(Address(name.encode() or None, None, mailbox.encode(), host.encode()))
    return tuple(result)


@dataclass
class _StoredMessage:
    uid: int
    raw: bytes
    flags: Set[bytes] = field(default_factory=set)
    internaldate: datetime = field(default_factory=lambda: datetime(2024, 9, 2, 10, 0, tzinfo=timezone.utc))

    @property
    def parsed(self) -> EmailMessage:
        return BytesParser(policy=policy.default).parsebytes(self.raw)

    @property
    def header_bytes(self) -> bytes:
        head, _, _ = self.raw.partition(b"\n\n")
        return head + b"\n\n"

    def envelope(self) -> Envelope:
        message = self.parsed
        date = parsedate_to_datetime(message["Date"]) if message["Date"] else None
        sender = _addresses(message["From"])
        return Envelope(
            date,
            str(message["Subject"]).encode() if message["Subject"] else None,
            sender,
            sender,
            sender,
            _addresses(message["To"]),
            _addresses(message["Cc"]),
            None,
            None,
            str(message["Message-ID"]).encode() if message["Message-ID"] else None,
        )


class FakeImapBackend:
    """Minimal IMAP backend satisfying the subset the node relies upon.

    Args:
      capabilities: Capabilities advertised to ``has_capability``.
    """

    DEFAULT_CAPABILITIES = ("IMAP4REV1", "MOVE", "UIDPLUS", "CONDSTORE")

    def __init__(self, capabilities: Iterable[str] = DEFAULT_CAPABILITIES) -> None:
        self.capabilities = {capability.upper() for capability in capabilities}
        self.mailboxes: Dict[str, Dict[int, _StoredMessage]] = {"INBOX": {}, "Drafts": {}, "Archive": {}}
        self.folder_flags: Dict[str, Tuple[bytes, ...]] = {
            "INBOX": (b"\\HasNoChildren",),
            "Drafts": (b"\\HasNoChildren", b"\\Drafts"),
            "Archive": (b"\\HasChildren", b"\\Archive"),
        }
        self.uid_next: Dict[str, int] = {name: 1 for name in self.mailboxes}
        self.selected: Optional[str] = None
        self.readonly = False
        self.logged_in_as: Optional[str] = None
        self.logged_out = False
        self.starttls_called = False
        self.init_kwargs: Dict[str, Any] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.search_charsets: List[Optional[str]] = []
        self._failures: Dict[str, Tuple[Exception, Optional[str]]] = {}

    # Test helpers -------------------------------------------------------
    def add_message(
        self,
        mailbox: str,
        raw: bytes,
        flags: Iterable[bytes] = (),
        internaldate: Optional[datetime] = None,
    ) -> int:
        self.mailboxes.setdefault(mailbox, {})
        self.uid_next.setdefault(mailbox, 1)
        uid = self.uid_next[mailbox]
        self.uid_next[mailbox] += 1
        record = _StoredMessage(uid=uid, raw=raw, flags=set(flags))
        if internaldate is not None:
            record.internaldate = internaldate
        self.mailboxes[mailbox][uid] = record
        return uid

    def add_noselect_folder(self, name: str) -> None:
        self.folder_flags[name] = (b"\\Noselect", b"\\HasChildren")

    def fail(self, method: str, exc: Exception, log_message: Optional[str] = None) -> None:
        """Make the next call of ``method`` log ``log_message`` and raise ``exc``."""

        self._failures[method] = (exc, log_message)

    def flags_of(self, mailbox: str, uid: int) -> Set[bytes]:
        return self.mailboxes[mailbox][uid].flags

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        failure = self._failures.pop(method, None)
        if failure is not None:
            exc, log_message = failure
            if log_message:
                logging.getLogger("imapclient.imapclient").warning(log_message)
            raise exc

    def _uids(self, messages: Any) -> List[int]:
        existing = sorted(self.mailboxes[self.selected])
        highest = existing[-1] if existing else 0
        if isinstance(messages, int):
            tokens = [str(messages)]
        elif isinstance(messages, (str, bytes)):
            text = messages.decode() if isinstance(messages, bytes) else messages
            tokens = text.split(",")
        else:
            tokens = [str(message) for message in messages]
        wanted: Set[int] = set()
        for token in tokens:
            start, _, end = token.partition(":")
            low = highest if start == "*" else int(start)
            high = low if not end else (highest if end == "*" else int(end))
            low, high = min(low, high), max(low, high)
            wanted.update(uid for uid in existing if low <= uid <= high)
        return sorted(wanted)

    # Session management -------------------------------------------------
    def has_capability(self, capability: str) -> bool:
        return capability.upper() in self.capabilities

    def starttls(self, ssl_context: Any = None) -> None:
        self.starttls_called = True

    def login(self, username: str, password: str) -> bytes:
        self._record("login", username)
        self.logged_in_as = username
        return b"LOGIN completed"

    def logout(self) -> bytes:
        self._record("logout")
        self.logged_out = True
        return b"LOGOUT completed"

    def shutdown(self) -> None:
        self.calls.append(("shutdown", ()))

    # Mailboxes ----------------------------------------------------------
    def list_folders(self, directory: str = "", pattern: str = "*"):
        self._record("list_folders", directory, pattern)
        if pattern == "":
            return [((b"\\Noselect",), b"/", "")]
        names = sorted(set(self.mailboxes) | set(self.folder_flags))
        return [(self.folder_flags.get(name, (b"\\HasNoChildren",)), b"/", name) for name in names]

    def folder_status(self, folder: str, what: Iterable[str]):
        self._record("folder_status", folder, tuple(what))
        messages = self.mailboxes[folder]
        values = {
            b"MESSAGES": len(messages),
            b"RECENT": 0,
            b"UNSEEN": sum(1 for record in messages.values() if b"\\Seen" not in record.flags),
            b"UIDNEXT": self.uid_next[folder],
            b"UIDVALIDITY": 1700000000,
            b"HIGHESTMODSEQ": 42,
        }
        return {item.encode(): values[item.encode()] for item in what}

    def create_folder(self, folder: str) -> bytes:
        self._record("create_folder", folder)
        if folder in self.mailboxes:
            raise IMAPClientError("create failed: [ALREADYEXISTS] Mailbox exists")
        self.mailboxes[folder] = {}
        self.uid_next[folder] = 1
        return b"CREATE completed"

    def rename_folder(self, old_name: str, new_name: str) -> bytes:
        self._record("rename_folder", old_name, new_name)
        self.mailboxes[new_name] = self.mailboxes.pop(old_name)
        self.uid_next[new_name] = self.uid_next.pop(old_name)
        self.folder_flags.pop(old_name, None)
        return b"RENAME completed"

    def delete_folder(self, folder: str) -> bytes:
        self._record("delete_folder", folder)
        if folder not in self.mailboxes:
            raise IMAPClientError("delete failed: [NONEXISTENT] Mailbox doesn't exist")
        del self.mailboxes[folder]
        self.folder_flags.pop(folder, None)
        return b"DELETE completed"

    def select_folder(self, folder: str, readonly: bool = False):
        self._record("select_folder", folder, readonly)
        if folder not in self.mailboxes:
            raise IMAPClientError(f"select failed: [NONEXISTENT] Mailbox doesn't exist: {folder}")
        self.selected = folder
        self.readonly = readonly
        return {b"EXISTS": len(self.mailboxes[folder]), b"UIDVALIDITY": 1700000000}

    # Messages -----------------------------------------------------------
    def search(self, criteria: List[Any], charset: Optional[str] = None) -> List[int]:
        self._record("search", tuple(criteria))
        self.search_charsets.append(charset)
        # imapclient encodes str criteria with the charset, US-ASCII when unset.
        for item in criteria:
            if isinstance(item, str):
                item.encode(charset or "us-ascii")
        matches = []
        for uid, record in sorted(self.mailboxes[self.selected].items()):
            if self._matches(uid, record, list(criteria)):
                matches.append(uid)
        return matches

    def _matches(self, uid: int, record: _StoredMessage, criteria: List[Any]) -> bool:
        message = record.parsed
        index = 0
        while index < len(criteria):
            key = str(criteria[index]).upper()
            index += 1
            if key == "ALL":
                continue
            if key in ("SEEN", "FLAGGED", "ANSWERED", "DELETED", "DRAFT"):
                if f"\\{key.title()}".encode() not in record.flags:
                    return False
            elif key in ("UNSEEN", "UNFLAGGED", "UNANSWERED", "UNDELETED", "UNDRAFT"):
                if f"\\{key[2:].title()}".encode() in record.flags:
                    return False
            elif key in ("SUBJECT", "FROM", "TO"):
                value = str(criteria[index]).lower()
                index += 1
                if value not in str(message[key.title()] or "").lower():
                    return False
            elif key == "UID":
                allowed = self._uids(criteria[index])
                index += 1
                if uid not in allowed:
                    return False
            elif key == "SINCE":
                if record.internaldate.date() < criteria[index]:
                    return False
                index += 1
            elif key == "BEFORE":
                if record.internaldate.date() >= criteria[index]:
                    return False
                index += 1
            else:
                raise IMAPClientError(f"search failed: unsupported criterion {key}")
        return True

    def fetch(self, messages: Any, data: Iterable[str]):
        items = [item.upper() for item in data]
        self._record("fetch", tuple(messages) if isinstance(messages, list) else messages, tuple(items))
        response: Dict[int, Dict[bytes, Any]] = {}
        for uid in self._uids(messages):
            record = self.mailboxes[self.selected][uid]
            payload: Dict[bytes, Any] = {b"SEQ": uid}
            for item in items:
                if item == "ENVELOPE":
                    payload[b"ENVELOPE"] = record.envelope()
                elif item == "FLAGS":
                    payload[b"FLAGS"] = tuple(sorted(record.flags))
                elif item == "RFC822.SIZE":
                    payload[b"RFC822.SIZE"] = len(record.raw)
                elif item == "INTERNALDATE":
                    payload[b"INTERNALDATE"] = record.internaldate
                elif item in ("BODY[]", "BODY.PEEK[]"):
                    payload[b"BODY[]"] = record.raw
                elif item in ("BODY[HEADER]", "BODY.PEEK[HEADER]"):
                    payload[b"BODY[HEADER]"] = record.header_bytes
            if not self.readonly and not any(item.startswith("BODY.PEEK") for item in items):
                record.flags.add(b"\\Seen")
            response[uid] = payload
        return response

    def append(self, folder: str, msg: bytes, flags: Iterable[str] = (), msg_time: Optional[datetime] = None):
        self._record("append", folder, tuple(flags))
        if folder not in self.mailboxes:
            raise IMAPClientError(f"append failed: [TRYCREATE] Mailbox doesn't exist: {folder}")
        uid = self.add_message(folder, msg, flags=[flag.encode() for flag in flags], internaldate=msg_time)
        if "UIDPLUS" in self.capabilities:
            return f"[APPENDUID 1700000000 {uid}] APPEND completed".encode()
        return b"APPEND completed"

    def copy(self, messages: Any, folder: str) -> bytes:
        self._record("copy", messages, folder)
        if folder not in self.mailboxes:
            raise IMAPClientError(f"copy failed: [TRYCREATE] Mailbox doesn't exist: {folder}")
        for uid in self._uids(messages):
            record = self.mailboxes[self.selected][uid]
            self.add_message(folder, record.raw, flags=set(record.flags), internaldate=record.internaldate)
        return b"COPY completed"

    def move(self, messages: Any, folder: str) -> bytes:
        self._record("move", messages, folder)
        if folder not in self.mailboxes:
            raise IMAPClientError(f"move failed: [TRYCREATE] Mailbox doesn't exist: {folder}")
        for uid in self._uids(messages):
            record = self.mailboxes[self.selected].pop(uid)
            self.add_message(folder, record.raw, flags=set(record.flags), internaldate=record.internaldate)
        return b"MOVE completed"

    def add_flags(self, messages: Any, flags: Iterable[str]):
        flags = tuple(flags)
        self._record("add_flags", messages, flags)
        result = {}
        for uid in self._uids(messages):
            record = self.mailboxes[self.selected][uid]
            record.flags.update(flag.encode() for flag in flags)
            result[uid] = tuple(sorted(record.flags))
        return result

    def remove_flags(self, messages: Any, flags: Iterable[str]):
        flags = tuple(flags)
        self._record("remove_flags", messages, flags)
        result = {}
        for uid in self._uids(messages):
            record = self.mailboxes[self.selected][uid]
            record.flags.difference_update(flag.encode() for flag in flags)
            result[uid] = tuple(sorted(record.flags))
        return result

    def delete_messages(self, messages: Any):
        return self.add_flags(messages, ["\\Deleted"])

    def expunge(self, messages: Any = None):
        self._record("expunge", messages)
        scope = set(self._uids(messages)) if messages is not None else set(self.mailboxes[self.selected])
        for uid in sorted(scope):
            if b"\\Deleted" in self.mailboxes[self.selected][uid].flags:
                del self.mailboxes[self.selected][uid]
        return b"EXPUNGE completed"
