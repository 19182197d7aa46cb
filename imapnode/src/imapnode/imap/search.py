"""Translate node search parameters into ``imapclient`` search criteria.

What:
  Deterministic mapping from the ``emailDateRange``, ``emailFlags`` and
  ``emailSearchFilters`` collections of the *Get Many* operation to the flat
  criteria list ``IMAPClient.search`` accepts, plus UID sequence-set
  validation shared by every per-message operation.

Why:
  IMAP search syntax is positional and picky about argument formats. Keeping
  the translation in one place makes the tricky parts (dates, negated flags,
  sequence sets) unit-testable without a server.

How:
  Each collection is walked in a fixed key order; unset (``None``/empty)
  values are skipped. An empty result becomes ``["ALL"]``.

Interfaces:
  :func:`build_search`, :func:`search_charset`, :func:`parse_uid_set`,
  :func:`parse_date`.

Invariants & Safety:
  - Only whitelisted keys are translated; unknown keys raise ``ValueError``
    instead of being passed to the server.
  - Boolean flag filters emit the positive keyword for ``True`` and the
    negated keyword for ``False``.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

_FLAG_KEYWORDS: Dict[str, Tuple[str, str]] = {
    "answered": ("ANSWERED", "UNANSWERED"),
    "deleted": ("DELETED", "UNDELETED"),
    "draft": ("DRAFT", "UNDRAFT"),
    "flagged": ("FLAGGED", "UNFLAGGED"),
    "recent": ("RECENT", "OLD"),
    "seen": ("SEEN", "UNSEEN"),
}

_TEXT_KEYWORDS: Dict[str, str] = {
    "from": "FROM",
    "to": "TO",
    "cc": "CC",
    "bcc": "BCC",
    "subject": "SUBJECT",
    "text": "TEXT",
    "body": "BODY",
}

_DATE_KEYWORDS: Dict[str, str] = {
    "since": "SINCE",
    "before": "BEFORE",
}

_SEQUENCE_TOKEN = re.compile(r"^(\d+|\*)(?::(\d+|\*))?$")


def parse_date(value: Any) -> date:
    """Return the calendar date of ``value`` (``date``, ``datetime`` or ISO string)."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            raise ValueError(f"Invalid date {value!r}, expected ISO 8601") from None
    raise ValueError(f"Invalid date {value!r}, expected ISO 8601")


def parse_uid_set(text: Any) -> str:
    """Validate and normalise an IMAP UID sequence set such as ``1,3:5,9:*``.

    Raises:
      ValueError: If ``text`` is empty or contains anything but UIDs, ranges,
        and ``*``.
    """

    if isinstance(text, int) and not isinstance(text, bool):
        text = str(text)
    if not isinstance(text, str):
        raise ValueError(f"Invalid UID set {text!r}")
    tokens = [token.strip() for token in text.split(",") if token.strip()]
    if not tokens:
        raise ValueError("UID set must not be empty")
    for token in tokens:
        match = _SEQUENCE_TOKEN.match(token)
        if match is None:
            raise ValueError(f"Invalid UID set token {token!r}")
        for bound in match.groups():
            if bound is not None and bound != "*" and int(bound) == 0:
                raise ValueError("UIDs start at 1")
    return ",".join(tokens)


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _check_keys(name: str, values: Mapping[str, Any], allowed: Mapping[str, Any]) -> None:
    unknown = sorted(set(values) - set(allowed))
    if unknown:
        raise ValueError(f"Unsupported {name} option(s): {', '.join(unknown)}")


def build_search(
    date_range: Optional[Mapping[str, Any]] = None,
    flags: Optional[Mapping[str, Any]] = None,
    filters: Optional[Mapping[str, Any]] = None,
) -> List[Any]:
    """Convert *Get Many* search parameters into IMAP criteria.

    Args:
      date_range: ``{"since": ..., "before": ...}``.
      flags: ``{"seen": True, "flagged": False, ...}``.
      filters: ``{"from": ..., "subject": ..., "uid": "1:10", ...}``.

    Returns:
      Flat criteria list for ``IMAPClient.search``.

    Raises:
      ValueError: On unknown keys, malformed dates, or malformed UID sets.
    """

    criteria: List[Any] = []
    date_range = date_range or {}
    flags = flags or {}
    filters = filters or {}
    _check_keys("date range", date_range, _DATE_KEYWORDS)
    _check_keys("flag", flags, _FLAG_KEYWORDS)
    _check_keys("search filter", filters, {**_TEXT_KEYWORDS, "uid": None})

    for key, keyword in _DATE_KEYWORDS.items():
        value = date_range.get(key)
        if _is_set(value):
            criteria.extend([keyword, parse_date(value)])

    for key, (positive, negative) in _FLAG_KEYWORDS.items():
        value = flags.get(key)
        if isinstance(value, bool):
            criteria.append(positive if value else negative)

    for key, keyword in _TEXT_KEYWORDS.items():
        value = filters.get(key)
        if _is_set(value):
            criteria.extend([keyword, str(value)])

    uid_value = filters.get("uid")
    if _is_set(uid_value):
        criteria.extend(["UID", parse_uid_set(uid_value)])

    return criteria or ["ALL"]


def search_charset(criteria: List[Any]) -> Optional[str]:
    """Return ``"UTF-8"`` when any text criterion is non-ASCII, else ``None``.

    ``IMAPClient.search`` encodes criteria as US-ASCII unless a charset is
    given, so the ``CHARSET`` argument is only sent when it is needed.
    """

    for item in criteria:
        if isinstance(item, str) and not item.isascii():
            return "UTF-8"
    return None
