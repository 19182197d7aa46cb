"""
Module: imapnode.__init__

What:
  Package root for the IMAP workflow node: mailbox and email operations over a
  single ``imapclient`` connection, exposed to a workflow host through
  :class:`imapnode.node.ImapNode` and to operators through :mod:`imapnode.cli`.

Interfaces:
  - config: Runtime configuration loader and schema.
  - credentials: Credential records and source selection.
  - host: Execution context, items, parameter schema, ``NodeApiError``.
  - imap: Connection wrapper, search criteria, message shaping.
  - operations: The ``mailbox`` and ``email`` resources.
  - node: The node description and dispatch loop.
  - utils: Structured logging.
"""

__all__ = [
    "config",
    "credentials",
    "host",
    "imap",
    "node",
    "operations",
    "utils",
]
