"""Pytest fixtures for unit tests requiring the IMAP fake.

What:
  Make ``tests/unit`` importable and expose an ``imap_backend`` fixture that
  replaces ``IMAPClient`` inside :mod:`imapnode.imap.client`, plus a factory
  for execution contexts.

Why:
  Operations and the node talk to ``imapclient`` only through
  :class:`ImapConnection`; patching the constructor there keeps every test off
  the network.

Interfaces:
  :func:`imap_backend`, :func:`connection`, :func:`make_ctx`,
  :data:`STORE_CREDENTIALS`.
"""

import io
import sys
from pathlib import Path

import pytest

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend

from imapnode.credentials import ImapCredentialsData
from imapnode.host.context import ExecutionContext
from imapnode.imap.client import ImapConnection
from imapnode.utils.logging import JsonLogger

STORE_CREDENTIALS = {
    "imapApi": {
        "host": "imap.example.com",
        "port": 993,
        "user": "alice@example.com",
        "password": "secret",
        "tls": True,
        "allowUnauthorizedCerts": False,
    }
}


@pytest.fixture
def imap_backend(monkeypatch: pytest.MonkeyPatch) -> FakeImapBackend:
    """Install a fresh :class:`FakeImapBackend` as the ``IMAPClient`` constructor."""

    backend = FakeImapBackend()

    def _factory(host, port=None, ssl=True, ssl_context=None, timeout=None):
        backend.init_kwargs = {"host": host, "port": port, "ssl": ssl, "timeout": timeout}
        return backend

    monkeypatch.setattr("imapnode.imap.client.IMAPClient", _factory)
    return backend


@pytest.fixture
def connection(imap_backend: FakeImapBackend):
    """Yield a connected :class:`ImapConnection` backed by the fake."""

    credentials = ImapCredentialsData(host="imap.example.com", user="alice@example.com", password="secret")
    with ImapConnection(credentials) as conn:
        yield conn


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_ctx(log_stream: io.StringIO):
    """Return a factory building :class:`ExecutionContext` objects with a captured logger."""

    def _make(parameters=None, *, items=None, credentials=STORE_CREDENTIALS, level="DEBUG"):
        logger = JsonLogger(stream=log_stream, component="test", level=level)
        return ExecutionContext(parameters, items=items, credentials=credentials, logger=logger)

    return _make
