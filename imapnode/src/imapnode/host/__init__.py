"""Facade for the workflow-host contract.

What:
  Surface the carriers the node exchanges with its host: execution context,
  items, the host error type, and the parameter-schema models.

Invariants & Safety:
  - Only :class:`NodeApiError` is raised across this boundary.
  - Nothing here schedules or evaluates workflows; a host adapter fills the
    context in.
"""

from .context import BinaryData, CredentialTestResult, ExecutionContext, NodeItem
from .errors import NodeApiError
from .parameters import (
    CredentialSlot,
    DisplayOptions,
    NodeProperty,
    NodeTypeDescription,
    OperationDefinition,
    PropertyOption,
    ResourceDefinition,
    ResourceLocatorMode,
    get_all_resource_node_parameters,
)

__all__ = [
    "BinaryData",
    "CredentialSlot",
    "CredentialTestResult",
    "DisplayOptions",
    "ExecutionContext",
    "NodeApiError",
    "NodeItem",
    "NodeProperty",
    "NodeTypeDescription",
    "OperationDefinition",
    "PropertyOption",
    "ResourceDefinition",
    "ResourceLocatorMode",
    "get_all_resource_node_parameters",
]
