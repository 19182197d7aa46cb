"""The singleton that collects errors ``imapclient`` only logs."""

import logging

from imapclient.exceptions import IMAPClientError

from imapnode.imap.errors import ImapErrorCatcher, error_text


def test_singleton_installs_one_handler():
    first = ImapErrorCatcher.get_instance()
    second = ImapErrorCatcher.get_instance()
    assert first is second
    handlers = [h for h in logging.getLogger("imapclient").handlers if isinstance(h, ImapErrorCatcher)]
    assert handlers == [first]


def test_captures_only_while_catching():
    catcher = ImapErrorCatcher.get_instance()
    library_logger = logging.getLogger("imapclient.imapclient")

    library_logger.warning("ignored before start")
    catcher.start_error_catching()
    assert catcher.catching
    library_logger.warning("NO [ALERT] quota exceeded")
    library_logger.info("below threshold")
    library_logger.error("BAD command")
    assert catcher.stop_and_get_errors() == ["NO [ALERT] quota exceeded", "BAD command"]
    assert not catcher.catching

    library_logger.warning("ignored after stop")
    catcher.start_error_catching()
    assert catcher.stop_and_get_errors() == []


def test_start_clears_previous_buffer():
    catcher = ImapErrorCatcher.get_instance()
    catcher.start_error_catching()
    catcher.on_imap_error("stale")
    catcher.start_error_catching()
    assert catcher.stop_and_get_errors() == []


def test_error_text_prefers_server_text():
    assert error_text(IMAPClientError(b"[AUTHENTICATIONFAILED] Invalid credentials")) == (
        "[AUTHENTICATIONFAILED] Invalid credentials"
    )
    assert error_text(OSError("connection refused")) == "connection refused"
    assert error_text(RuntimeError()) is None


def test_error_text_uses_str_for_non_imap_errors():
    try:
        "Müller".encode("ascii")
    except UnicodeEncodeError as exc:
        text = error_text(exc)
    assert text != "ascii"
    assert "can't encode character" in text
