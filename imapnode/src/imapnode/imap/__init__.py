"""Facade for the IMAP integration layer.

What:
  Surface :class:`~imapnode.imap.client.ImapConnection`, its factory, and the
  error-interception singleton used by the node's dispatch loop.

Invariants & Safety:
  - All IMAP operations go through :class:`ImapConnection` and run in UID
    mode.
"""

from .client import ImapConnection, MailboxInfo, create_imap_client
from .errors import ImapErrorCatcher, error_text

__all__ = [
    "ImapConnection",
    "ImapErrorCatcher",
    "MailboxInfo",
    "create_imap_client",
    "error_text",
]
