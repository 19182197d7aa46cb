"""Errors surfaced to the workflow host."""
from __future__ import annotations

from typing import Any, Dict, Optional


class NodeApiError(Exception):
    """Failure reported to the host with a message/description pair.

    What:
      The only exception type that leaves :meth:`imapnode.node.ImapNode.execute`.
      ``message`` is the headline shown on the failed node; ``description``
      carries supplementary detail such as errors the IMAP server reported
      alongside the failure.

    How:
      ``node_name`` records which node raised the error so the host can
      attribute it inside a workflow graph.
    """

    def __init__(
        self,
        message: str,
        *,
        description: Optional[str] = None,
        node_name: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.description = description
        self.node_name = node_name

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": self.message}
        if self.description:
            payload["description"] = self.description
        if self.node_name:
            payload["node"] = self.node_name
        return payload
