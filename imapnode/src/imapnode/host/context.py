"""Execution-time objects exchanged with the workflow host.

What:
  Model the host's item-list data format (:class:`NodeItem`,
  :class:`BinaryData`) and the execution context handed to the node
  (:class:`ExecutionContext`), plus the credential-test result type.

Why:
  The node logic is written against these carriers only. A host adapter (or
  the bundled command-line runner, or a test) fills them in; nothing here
  evaluates workflows or schedules nodes.

How:
  Plain dataclasses. Parameter values may be callables, which are invoked with
  the current :class:`NodeItem` so a host can plug in per-item expression
  evaluation without the node knowing about it.

Interfaces:
  :class:`BinaryData`, :class:`NodeItem`, :class:`ExecutionContext`,
  :class:`CredentialTestResult`.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..utils.logging import JsonLogger, get_logger
from .errors import NodeApiError

_MISSING = object()


@dataclass
class BinaryData:
    """Binary attachment of an item, base64 encoded as the host stores it."""

    data: str
    mime_type: str
    file_name: Optional[str] = None
    file_extension: Optional[str] = None

    @classmethod
    def from_bytes(
        cls,
        payload: bytes,
        *,
        mime_type: str,
        file_name: Optional[str] = None,
    ) -> "BinaryData":
        extension = None
        if file_name and "." in file_name:
            extension = file_name.rsplit(".", 1)[1].lower()
        return cls(
            data=base64.b64encode(payload).decode("ascii"),
            mime_type=mime_type,
            file_name=file_name,
            file_extension=extension,
        )

    def content(self) -> bytes:
        return base64.b64decode(self.data)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"data": self.data, "mimeType": self.mime_type}
        if self.file_name is not None:
            payload["fileName"] = self.file_name
        if self.file_extension is not None:
            payload["fileExtension"] = self.file_extension
        return payload


@dataclass
class NodeItem:
    """One record flowing between workflow nodes."""

    json: Dict[str, Any] = field(default_factory=dict)
    binary: Dict[str, BinaryData] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NodeItem":
        """Build an item from either ``{"json": ..., "binary": ...}`` or a bare mapping."""

        if "json" in payload and isinstance(payload["json"], Mapping):
            binary = {
                name: BinaryData(
                    data=value["data"],
                    mime_type=value.get("mimeType", "application/octet-stream"),
                    file_name=value.get("fileName"),
                    file_extension=value.get("fileExtension"),
                )
                for name, value in (payload.get("binary") or {}).items()
            }
            return cls(json=dict(payload["json"]), binary=binary)
        return cls(json=dict(payload))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"json": self.json}
        if self.binary:
            payload["binary"] = {name: value.to_dict() for name, value in self.binary.items()}
        return payload


@dataclass
class CredentialTestResult:
    """Outcome returned by a credential test hook."""

    status: str
    message: str

    @property
    def ok(self) -> bool:
        return self.status == "OK"


class ExecutionContext:
    """State the host provides for a single node execution.

    What:
      Holds input items, node parameters, decrypted credentials keyed by
      credential type, and the logger.

    Why:
      Operation handlers need a narrow, host-agnostic surface to read
      parameters per item and to resolve credentials.

    Args:
      parameters: Node parameter values. A callable value is evaluated with the
        item at the requested index.
      items: Input items; defaults to a single empty item, which is what a host
        feeds a node placed first in a workflow.
      credentials: Credential store keyed by credential type name.
      logger: Structured logger; a default ``stderr`` logger is created when
        omitted.
      node_name: Display name used when attributing errors.
    """

    def __init__(
        self,
        parameters: Optional[Mapping[str, Any]] = None,
        *,
        items: Optional[List[NodeItem]] = None,
        credentials: Optional[Mapping[str, Mapping[str, Any]]] = None,
        logger: Optional[JsonLogger] = None,
        node_name: str = "IMAP",
    ) -> None:
        self._parameters: Dict[str, Any] = dict(parameters or {})
        self._items: List[NodeItem] = list(items) if items is not None else [NodeItem()]
        self._credentials: Dict[str, Dict[str, Any]] = {
            name: dict(values) for name, values in (credentials or {}).items()
        }
        self.logger = logger if logger is not None else get_logger("imapnode.node")
        self.node_name = node_name

    def get_input_data(self) -> List[NodeItem]:
        return self._items

    def get_node_parameter(self, name: str, item_index: int, default: Any = _MISSING) -> Any:
        """Return parameter ``name`` as seen by the item at ``item_index``.

        Raises:
          NodeApiError: If the parameter is unset and no ``default`` is given.
        """

        if name not in self._parameters:
            if default is _MISSING:
                raise NodeApiError(
                    f'Could not get parameter "{name}"', node_name=self.node_name
                )
            return default
        value = self._parameters[name]
        if callable(value):
            item = self._items[item_index] if item_index < len(self._items) else NodeItem()
            return value(item)
        return value

    def get_credentials(self, credential_type: str) -> Dict[str, Any]:
        try:
            return dict(self._credentials[credential_type])
        except KeyError:
            raise NodeApiError(
                f'Node does not have any credentials set for "{credential_type}"',
                node_name=self.node_name,
            ) from None

