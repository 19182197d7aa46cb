"""Structured JSON logging for node executions.

What:
  Offer a tiny facade over Python streams so every imapnode component can emit
  JSON log lines with consistent fields, a severity threshold, and automatic
  removal of credentials and message content.

Why:
  The node runs inside a host that collects stdout/stderr from many workflow
  executions. A structured layout keeps the lines greppable, and workflow items
  routinely carry passwords (``fromInput`` credentials) and mail bodies that
  must never reach shared log storage.

How:
  Provide a :class:`JsonLogger` dataclass that accepts a target stream, a
  component tag, and a minimum level. ``extra`` dictionaries are scrubbed via a
  recursive redaction helper before being serialised with ``json.dump``.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`, :data:`LEVELS`.

Invariants & Safety:
  - Every payload includes an ISO8601 timestamp, severity, and component name.
  - Sensitive keys (``password``, ``textContent``, ``htmlContent``,
    ``emlContent``) are replaced with ``[redacted]`` even inside nested
    dictionaries and lists.
  - Streams are flushed after every write.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "textContent", "htmlContent", "emlContent"})
LEVELS: Dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def _normalise_level(level: str) -> str:
    upper = level.upper()
    if upper == "WARNING":
        return "WARN"
    if upper not in LEVELS:
        raise ValueError(f"Unknown log level {level!r}")
    return upper


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction.

    What:
      Emits single-line JSON log entries that include timestamps, severity, a
      component tag, and optional supplemental fields.

    Why:
      Centralising structured logging avoids duplicating the redaction logic and
      guarantees a uniform schema for the host's log collectors and for test
      assertions.

    How:
      Stores the destination stream, component label, and threshold, then
      exposes :meth:`debug`, :meth:`info`, :meth:`warning`, and :meth:`error`
      helpers that merge a canonical payload with redacted extras.
    """

    stream: Any = field(default_factory=lambda: sys.stdout)
    component: str = "imapnode"
    level: str = "INFO"

    def __post_init__(self) -> None:
        self.level = _normalise_level(self.level)

    def is_enabled_for(self, level: str) -> bool:
        """Return ``True`` when ``level`` passes the configured threshold."""

        return LEVELS[_normalise_level(level)] >= LEVELS[self.level]

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit a structured JSON log entry.

        Args:
          level: Human-readable severity (e.g., ``"info"`` or ``"error"``).
          message: Core log message.
          extra: Optional context dictionary that will be redacted recursively.
        """

        if not self.is_enabled_for(level):
            return
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": _normalise_level(level),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        json.dump(payload, self.stream, separators=(",", ":"), default=str)
        self.stream.write("\n")
        self.stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Any) -> Any:
        """Mask sensitive keys in ``data`` recursively.

        What:
          Produces a copy of ``data`` where keys from :data:`SENSITIVE_KEYS` are
          replaced with :data:`REDACTED`.

        Why:
          Input items may embed credentials and operation results embed mail
          content; neither belongs in logs.

        How:
          Walks dictionaries and lists, applying the sentinel to known keys and
          recursing into nested containers while preserving structure.
        """

        if isinstance(data, dict):
            result: Dict[str, Any] = {}
            for key, value in data.items():
                if key in SENSITIVE_KEYS:
                    result[key] = REDACTED
                else:
                    result[key] = JsonLogger._redact(value)
            return result
        if isinstance(data, list):
            return [JsonLogger._redact(item) for item in data]
        return data


def get_logger(component: str, *, level: str = "INFO", stream: Any = None) -> JsonLogger:
    """Construct a :class:`JsonLogger` for the requested component.

    Args:
      component: Logical subsystem name to include in log payloads.
      level: Minimum severity to emit.
      stream: Destination stream; defaults to ``stderr`` so that command
        output on ``stdout`` stays machine-readable.

    Returns:
      Configured :class:`JsonLogger` instance.
    """

    return JsonLogger(stream=stream if stream is not None else sys.stderr, component=component, level=level)
