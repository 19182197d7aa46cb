"""Recover IMAP error text that the client library only logs.

What:
  A process-wide :class:`logging.Handler` attached to the ``imapclient``
  logger hierarchy that records warning and error messages while catching is
  active, plus a helper that turns library exceptions into readable text.

Why:
  Some server responses (``NO``/``BAD`` details, untagged alerts, failed
  capability probes) reach only the library's logger, while the exception that
  eventually surfaces carries little or no message. The node merges the
  captured lines into the error it reports to the host.

How:
  :meth:`ImapErrorCatcher.get_instance` lazily creates the singleton and
  installs it on the library logger exactly once. ``start_error_catching``
  clears the buffer and enables capture for one item;
  ``stop_and_get_errors`` disables capture and hands back the buffer.

Interfaces:
  :class:`ImapErrorCatcher`, :func:`error_text`, :data:`IMAP_LIBRARY_LOGGER`.

Invariants & Safety:
  - Records are captured only between ``start`` and ``stop``.
  - The handler never changes the library logger's level or propagation.
"""
from __future__ import annotations

import imaplib
import logging
import threading
from typing import List, Optional

IMAP_LIBRARY_LOGGER = "imapclient"


class ImapErrorCatcher(logging.Handler):
    """Singleton collector for errors reported through the library logger."""

    _instance: Optional["ImapErrorCatcher"] = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self._errors: List[str] = []
        self._catching = False

    @classmethod
    def get_instance(cls) -> "ImapErrorCatcher":
        with cls._instance_lock:
            if cls._instance is None:
                instance = cls()
                logging.getLogger(IMAP_LIBRARY_LOGGER).addHandler(instance)
                cls._instance = instance
            return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Detach and drop the singleton."""

        with cls._instance_lock:
            if cls._instance is not None:
                logging.getLogger(IMAP_LIBRARY_LOGGER).removeHandler(cls._instance)
                cls._instance = None

    @property
    def catching(self) -> bool:
        return self._catching

    def start_error_catching(self) -> None:
        self._errors = []
        self._catching = True

    def stop_and_get_errors(self) -> List[str]:
        self._catching = False
        errors, self._errors = self._errors, []
        return errors

    def on_imap_error(self, message: str) -> None:
        if self._catching and message:
            self._errors.append(message)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover - malformed third-party record
            self.handleError(record)
            return
        self.on_imap_error(message)


def error_text(exc: BaseException) -> Optional[str]:
    """Return the most useful human-readable text carried by ``exc``.

    What:
      For ``imaplib``/``imapclient`` errors prefer the server's response text,
      carried as the first argument and sometimes as bytes. Any other
      exception is rendered with ``str(exc)``, since its first argument need
      not be a message (codec errors carry the codec name there).

    Returns:
      The message, or ``None`` when the exception carries nothing printable.
    """

    if isinstance(exc, imaplib.IMAP4.error) and exc.args:
        first = exc.args[0]
        if isinstance(first, bytes):
            first = first.decode("utf-8", errors="replace")
        if isinstance(first, str) and first.strip():
            return first.strip()
    text = str(exc).strip()
    return text or None
