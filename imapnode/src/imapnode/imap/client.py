"""Connection lifecycle around the third-party ``imapclient`` library.

What:
  Wrap :class:`imapclient.IMAPClient` with credential handling, TLS policy,
  timeouts from the runtime configuration, optional protocol debug logging,
  and mailbox-selection context managers used by every operation.

Why:
  Operations should only express *what* to ask the server. Connecting (implicit
  TLS vs. STARTTLS, self-signed certificates), remembering the hierarchy
  delimiter, and restoring the previous selection are shared concerns that
  would otherwise be repeated in each handler.

How:
  :func:`create_imap_client` builds an unconnected :class:`ImapConnection`.
  :meth:`ImapConnection.connect` instantiates ``IMAPClient`` and logs in;
  :meth:`ImapConnection.logout` is safe to call at any time. While debug
  logging is enabled a small handler forwards ``imapclient`` records to the
  node logger.

Interfaces:
  :class:`MailboxInfo`, :class:`ImapConnection`, :func:`create_imap_client`,
  :func:`build_ssl_context`.

Invariants & Safety:
  - All message operations run in UID mode (``IMAPClient`` default).
  - One connection per execution; ``logout`` never raises.
  - Credentials are never written to the log.
"""
from __future__ import annotations

import contextlib
import logging
import ssl
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from ..config.loader import get_runtime_config
from ..credentials.schema import ImapCredentialsData
from ..utils.logging import JsonLogger
from .errors import IMAP_LIBRARY_LOGGER

DEFAULT_DELIMITER = "/"


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return "" if value is None else str(value)


@dataclass
class MailboxInfo:
    """One row of a ``LIST`` response."""

    path: str
    delimiter: str
    flags: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        if self.delimiter and self.delimiter in self.path:
            return self.path.rsplit(self.delimiter, 1)[1]
        return self.path

    @property
    def selectable(self) -> bool:
        return not any(flag.lower() in ("\\noselect", "\\nonexistent") for flag in self.flags)


class _DebugLogBridge(logging.Handler):
    """Forward ``imapclient`` records to the node's structured logger."""

    def __init__(self, logger: JsonLogger) -> None:
        super().__init__(level=logging.DEBUG)
        self._logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover - malformed third-party record
            self.handleError(record)
            return
        self._logger.debug(message, source=record.name)


def build_ssl_context(credentials: ImapCredentialsData) -> ssl.SSLContext:
    """Return the TLS context for ``credentials``.

    Self-signed or otherwise unverifiable certificates are accepted only when
    ``allowUnauthorizedCerts`` is set.
    """

    context = ssl.create_default_context()
    if credentials.allow_unauthorized_certs:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class ImapConnection:
    """A single IMAP session owned by one node execution.

    What:
      Owns one ``IMAPClient`` connection and mediates login, mailbox listing,
      and mailbox selection.

    Why:
      Gives operation handlers a connected client plus a few helpers while
      keeping the connection policy in one place.

    How:
      Construction is cheap; network activity starts in :meth:`connect` (also
      invoked by ``__enter__``).

    Args:
      credentials: Account and TLS settings.
      logger: Structured logger for connection events.
      enable_debug_logging: Forward protocol-level library logs to ``logger``.
      timeout: Socket timeout in seconds; defaults to the runtime
        configuration's ``imap.timeout``.
    """

    def __init__(
        self,
        credentials: ImapCredentialsData,
        *,
        logger: Optional[JsonLogger] = None,
        enable_debug_logging: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        self._credentials = credentials
        self._logger = logger
        self._enable_debug_logging = enable_debug_logging
        self._timeout = timeout
        self._client: Optional[IMAPClient] = None
        self._delimiter: Optional[str] = None
        self._selected: Optional[Tuple[str, bool]] = None
        self._debug_bridge: Optional[_DebugLogBridge] = None
        self._previous_library_level: Optional[int] = None

    def __enter__(self) -> "ImapConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.logout()

    @property
    def client(self) -> IMAPClient:
        """Expose the connected ``IMAPClient``.

        Raises:
          RuntimeError: If accessed before :meth:`connect`.
        """

        if self._client is None:
            raise RuntimeError("IMAP client not connected")
        return self._client

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def credentials(self) -> ImapCredentialsData:
        return self._credentials

    def connect(self) -> None:
        """Open the connection and authenticate.

        What:
          Connects with implicit TLS when ``tls`` is set; otherwise connects in
          plain text and upgrades with STARTTLS when the server offers it.

        Raises:
          IMAPClientError, OSError, ssl.SSLError: Propagated unchanged so the
            caller can surface the server's message.
        """

        if self._client is not None:
            return
        credentials = self._credentials
        timeout = self._timeout if self._timeout is not None else get_runtime_config().imap.timeout
        context = build_ssl_context(credentials)
        self._install_debug_bridge()
        client: Optional[IMAPClient] = None
        try:
            if credentials.tls:
                client = IMAPClient(
                    credentials.host,
                    port=credentials.port,
                    ssl=True,
                    ssl_context=context,
                    timeout=timeout,
                )
            else:
                client = IMAPClient(credentials.host, port=credentials.port, ssl=False, timeout=timeout)
            if not credentials.tls and client.has_capability("STARTTLS"):
                client.starttls(ssl_context=context)
            client.login(credentials.user, credentials.password)
        except Exception:
            if client is not None:
                self._shutdown(client)
            self._remove_debug_bridge()
            raise
        self._client = client
        self._log("debug", "IMAP connection established", host=credentials.host, port=credentials.port)

    def logout(self) -> None:
        """Log out and release the socket; a no-op when not connected."""

        client, self._client = self._client, None
        self._selected = None
        try:
            if client is not None:
                self._shutdown(client)
        finally:
            self._remove_debug_bridge()

    def has_capability(self, capability: str) -> bool:
        return bool(self.client.has_capability(capability))

    def list_mailboxes(self, directory: str = "", pattern: str = "*") -> List[MailboxInfo]:
        """Return every mailbox visible to the account and remember the delimiter."""

        mailboxes: List[MailboxInfo] = []
        for flags, delimiter, name in self.client.list_folders(directory, pattern):
            decoded_delimiter = _decode(delimiter)
            if decoded_delimiter:
                self._delimiter = decoded_delimiter
            mailboxes.append(
                MailboxInfo(
                    path=_decode(name),
                    delimiter=decoded_delimiter,
                    flags=[_decode(flag) for flag in flags],
                )
            )
        return mailboxes

    @property
    def delimiter(self) -> str:
        """Server hierarchy delimiter, discovered with a ``LIST "" ""`` probe."""

        if self._delimiter is None:
            listing = self.client.list_folders("", "")
            for _flags, delimiter, _name in listing:
                decoded = _decode(delimiter)
                if decoded:
                    self._delimiter = decoded
                    break
            else:
                self._delimiter = DEFAULT_DELIMITER
        return self._delimiter

    def join_path(self, *parts: Optional[str]) -> str:
        """Join mailbox path segments with the server delimiter, skipping empties."""

        delimiter = self.delimiter
        segments = [part.strip().strip(delimiter) for part in parts if part and part.strip()]
        return delimiter.join(segment for segment in segments if segment)

    def select(self, mailbox: str, *, readonly: bool = False) -> Dict[bytes, Any]:
        response = self.client.select_folder(mailbox, readonly=readonly)
        self._selected = (mailbox, readonly)
        return response

    @contextlib.contextmanager
    def session(self, mailbox: str, *, readonly: bool = False) -> Iterator[Dict[bytes, Any]]:
        """Select ``mailbox`` for the duration of the block.

        Yields:
          The ``SELECT``/``EXAMINE`` response.

        The previously selected mailbox, if any, is re-selected on exit. When
        the block raised, a failing re-select is logged and the block's
        exception propagates.
        """

        previous = self._selected
        response = self.select(mailbox, readonly=readonly)
        failed = False
        try:
            yield response
        except BaseException:
            failed = True
            raise
        finally:
            if previous and previous != (mailbox, readonly) and self._client is not None:
                try:
                    self.select(previous[0], readonly=previous[1])
                except (IMAPClientError, OSError) as exc:
                    if not failed:
                        raise
                    self._log("warning", "Restoring previous mailbox failed", mailbox=previous[0], error=str(exc))

    def _shutdown(self, client: IMAPClient) -> None:
        try:
            client.logout()
        except (IMAPClientError, OSError) as exc:
            self._log("warning", "IMAP logout failed", error=str(exc))
            try:
                client.shutdown()
            except OSError as shutdown_exc:  # pragma: no cover - socket already gone
                self._log("debug", "IMAP socket shutdown failed", error=str(shutdown_exc))

    def _install_debug_bridge(self) -> None:
        if not self._enable_debug_logging or self._logger is None or self._debug_bridge is not None:
            return
        library_logger = logging.getLogger(IMAP_LIBRARY_LOGGER)
        self._debug_bridge = _DebugLogBridge(self._logger)
        self._previous_library_level = library_logger.level
        library_logger.setLevel(logging.DEBUG)
        library_logger.addHandler(self._debug_bridge)

    def _remove_debug_bridge(self) -> None:
        if self._debug_bridge is None:
            return
        library_logger = logging.getLogger(IMAP_LIBRARY_LOGGER)
        library_logger.removeHandler(self._debug_bridge)
        if self._previous_library_level is not None:
            library_logger.setLevel(self._previous_library_level)
        self._debug_bridge = None
        self._previous_library_level = None

    def _log(self, level: str, message: str, **extra: Any) -> None:
        if self._logger is not None:
            self._logger.log(level, message, extra=extra)


def create_imap_client(
    credentials: ImapCredentialsData,
    logger: Optional[JsonLogger] = None,
    enable_debug_logging: bool = False,
) -> ImapConnection:
    """Build an unconnected :class:`ImapConnection` for ``credentials``."""

    return ImapConnection(credentials, logger=logger, enable_debug_logging=enable_debug_logging)
