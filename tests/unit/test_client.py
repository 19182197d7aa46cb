"""Connection lifecycle of :class:`ImapConnection` against the fake backend."""

import logging

import pytest
from imapclient.exceptions import IMAPClientError, LoginError

from imapnode.credentials import ImapCredentialsData
from imapnode.imap.client import ImapConnection, _DebugLogBridge, build_ssl_context, create_imap_client
from imapnode.utils.logging import JsonLogger


def _credentials(**overrides):
    values = {"host": "imap.example.com", "user": "alice", "password": "secret"}
    values.update(overrides)
    return ImapCredentialsData(**values)


def test_connect_uses_implicit_tls_and_configured_timeout(imap_backend):
    connection = create_imap_client(_credentials())
    connection.connect()
    assert imap_backend.init_kwargs == {"host": "imap.example.com", "port": 993, "ssl": True, "timeout": 5.0}
    assert imap_backend.logged_in_as == "alice"
    assert not imap_backend.starttls_called
    connection.logout()
    assert imap_backend.logged_out
    assert not connection.connected


def test_plain_connection_upgrades_with_starttls(imap_backend):
    imap_backend.capabilities.add("STARTTLS")
    with ImapConnection(_credentials(tls=False, port=143)):
        pass
    assert imap_backend.init_kwargs["ssl"] is False
    assert imap_backend.starttls_called


def test_login_failure_shuts_down_and_propagates(imap_backend):
    imap_backend.fail("login", LoginError("[AUTHENTICATIONFAILED] Invalid credentials"))
    connection = create_imap_client(_credentials())
    with pytest.raises(LoginError):
        connection.connect()
    assert imap_backend.logged_out
    assert not connection.connected


def test_logout_never_raises(imap_backend):
    connection = create_imap_client(_credentials())
    connection.connect()
    imap_backend.fail("logout", IMAPClientError("socket closed"))
    connection.logout()
    assert ("shutdown", ()) in imap_backend.calls
    connection.logout()


def test_unverified_certificates_only_when_allowed():
    import ssl

    assert build_ssl_context(_credentials()).verify_mode == ssl.CERT_REQUIRED
    relaxed = build_ssl_context(_credentials(allow_unauthorized_certs=True))
    assert relaxed.verify_mode == ssl.CERT_NONE
    assert relaxed.check_hostname is False


def test_delimiter_probe_and_join_path(connection):
    assert connection.delimiter == "/"
    assert connection.join_path("Archive/", "", "2024") == "Archive/2024"
    assert connection.join_path(None, "Top") == "Top"


def test_list_mailboxes_decodes_flags(connection, imap_backend):
    imap_backend.add_noselect_folder("Shared")
    mailboxes = {mailbox.path: mailbox for mailbox in connection.list_mailboxes()}
    assert mailboxes["Drafts"].flags == ["\\HasNoChildren", "\\Drafts"]
    assert mailboxes["INBOX"].selectable
    assert not mailboxes["Shared"].selectable


def test_session_restores_previous_selection(connection, imap_backend):
    connection.select("INBOX")
    with connection.session("Archive", readonly=True):
        assert imap_backend.selected == "Archive"
        assert imap_backend.readonly
    assert imap_backend.selected == "INBOX"
    assert imap_backend.readonly is False


def test_client_requires_connection():
    with pytest.raises(RuntimeError):
        create_imap_client(_credentials()).client


def test_failed_connect_removes_debug_bridge(monkeypatch, log_stream):
    def _refuse(*args, **kwargs):
        raise ConnectionRefusedError(111, "Connection refused")

    monkeypatch.setattr("imapnode.imap.client.IMAPClient", _refuse)
    library_logger = logging.getLogger("imapclient")
    level_before = library_logger.level
    logger = JsonLogger(stream=log_stream, component="test", level="DEBUG")

    for _ in range(3):
        connection = create_imap_client(_credentials(), logger, enable_debug_logging=True)
        with pytest.raises(ConnectionRefusedError):
            connection.connect()

    assert not any(isinstance(handler, _DebugLogBridge) for handler in library_logger.handlers)
    assert library_logger.level == level_before


def test_session_keeps_block_error_when_restore_fails(connection, imap_backend):
    connection.select("INBOX")
    with pytest.raises(ValueError, match="block failed"):
        with connection.session("Archive"):
            imap_backend.fail("select_folder", IMAPClientError("BYE server shutting down"))
            raise ValueError("block failed")
    assert imap_backend.selected == "Archive"


def test_session_restore_failure_propagates_after_clean_block(connection, imap_backend):
    connection.select("INBOX")
    with pytest.raises(IMAPClientError, match="BYE"):
        with connection.session("Archive"):
            imap_backend.fail("select_folder", IMAPClientError("BYE server shutting down"))
