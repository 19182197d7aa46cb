"""Parameter schema models shared with the workflow host.

What:
  Pydantic models for the node description the host renders (properties,
  options, display rules, credential slots) and the resource/operation table
  that binds each operation to its parameters and handler.

Why:
  The host validates and renders the schema as camelCase JSON. Modelling it
  with pydantic keeps the Python side snake_case while
  ``model_dump(by_alias=True)`` produces exactly what the host expects.

How:
  Every model uses :func:`pydantic.alias_generators.to_camel`.
  :func:`get_all_resource_node_parameters` flattens one
  :class:`ResourceDefinition` into the host's flat property list, gating each
  parameter with ``displayOptions.show`` on ``resource`` and ``operation``.

Interfaces:
  :class:`PropertyOption`, :class:`DisplayOptions`, :class:`NodeProperty`,
  :class:`CredentialSlot`, :class:`NodeTypeDescription`,
  :class:`OperationDefinition`, :class:`ResourceDefinition`,
  :func:`get_all_resource_node_parameters`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:  # pragma: no cover
    from ..imap.client import ImapConnection
    from .context import ExecutionContext, NodeItem


PropertyType = Literal[
    "string",
    "number",
    "boolean",
    "options",
    "multiOptions",
    "collection",
    "resourceLocator",
    "dateTime",
]


class _HostModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_host(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PropertyOption(_HostModel):
    """One selectable value of an ``options``/``multiOptions`` property."""

    name: str
    value: Any
    description: Optional[str] = None
    action: Optional[str] = None


class DisplayOptions(_HostModel):
    """Visibility rule: show the property only when every listed parameter matches."""

    show: Dict[str, List[Any]] = Field(default_factory=dict)


class ResourceLocatorMode(_HostModel):
    """A way of entering a resource locator value (pick from list, type a path)."""

    display_name: str
    name: str
    type: Literal["list", "string"]
    placeholder: Optional[str] = None
    type_options: Optional[Dict[str, Any]] = None


class NodeProperty(_HostModel):
    """A parameter rendered by the host."""

    display_name: str
    name: str
    type: PropertyType
    default: Any = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    hint: Optional[str] = None
    required: Optional[bool] = None
    no_data_expression: Optional[bool] = None
    options: Optional[List[Union[PropertyOption, "NodeProperty"]]] = None
    modes: Optional[List[ResourceLocatorMode]] = None
    type_options: Optional[Dict[str, Any]] = None
    display_options: Optional[DisplayOptions] = None

    def shown_for(self, **conditions: List[Any]) -> "NodeProperty":
        """Return a copy whose ``displayOptions.show`` also requires ``conditions``."""

        show = dict(self.display_options.show) if self.display_options else {}
        show.update(conditions)
        return self.model_copy(update={"display_options": DisplayOptions(show=show)})


class CredentialSlot(_HostModel):
    """A credential type the node may request from the host's store."""

    name: str
    required: bool = True
    display_options: Optional[DisplayOptions] = None


class NodeTypeDescription(_HostModel):
    """Complete node description registered with the host."""

    display_name: str
    name: str
    icon: Optional[str] = None
    group: List[str] = Field(default_factory=lambda: ["transform"])
    version: int = 1
    subtitle: Optional[str] = None
    description: str
    defaults: Dict[str, Any] = Field(default_factory=dict)
    inputs: List[str] = Field(default_factory=lambda: ["main"])
    outputs: List[str] = Field(default_factory=lambda: ["main"])
    credentials: List[CredentialSlot] = Field(default_factory=list)
    properties: List[NodeProperty] = Field(default_factory=list)

    def get_property(self, name: str) -> NodeProperty:
        for prop in self.properties:
            if prop.name == name:
                return prop
        raise KeyError(name)


ImapAction = Callable[["ExecutionContext", int, "ImapConnection"], Optional[List["NodeItem"]]]


@dataclass
class OperationDefinition:
    """An operation of a resource: its selector entry, parameters, and handler."""

    operation: PropertyOption
    parameters: List[NodeProperty]
    execute_imap_action: ImapAction


@dataclass
class ResourceDefinition:
    """A resource (``mailbox``, ``email``) and its operations."""

    resource: PropertyOption
    operation_defs: List[OperationDefinition] = field(default_factory=list)

    def find_operation(self, value: str) -> Optional[OperationDefinition]:
        for operation_def in self.operation_defs:
            if operation_def.operation.value == value:
                return operation_def
        return None


def get_all_resource_node_parameters(resource_def: ResourceDefinition) -> List[NodeProperty]:
    """Flatten ``resource_def`` into host properties.

    What:
      Emits the ``operation`` selector for the resource followed by every
      operation parameter.

    How:
      The selector is shown only for this resource. Each parameter is copied
      with ``resource`` and ``operation`` conditions merged into whatever
      display rule it already carries, so two operations may reuse the same
      parameter name without clashing.
    """

    resource_value = resource_def.resource.value
    operation_selector = NodeProperty(
        display_name="Operation",
        name="operation",
        type="options",
        no_data_expression=True,
        display_options=DisplayOptions(show={"resource": [resource_value]}),
        options=[operation_def.operation for operation_def in resource_def.operation_defs],
        default=resource_def.operation_defs[0].operation.value if resource_def.operation_defs else "",
    )
    properties: List[NodeProperty] = [operation_selector]
    for operation_def in resource_def.operation_defs:
        for parameter in operation_def.parameters:
            properties.append(
                parameter.shown_for(
                    resource=[resource_value],
                    operation=[operation_def.operation.value],
                )
            )
    return properties


NodeProperty.model_rebuild()
