"""Host parameter schema and execution context."""

import pytest

from imapnode.host.context import BinaryData, ExecutionContext, NodeItem
from imapnode.host.errors import NodeApiError
from imapnode.host.parameters import (
    DisplayOptions,
    NodeProperty,
    OperationDefinition,
    PropertyOption,
    ResourceDefinition,
    get_all_resource_node_parameters,
)


def _noop(ctx, item_index, connection):
    return []


def test_resource_parameters_are_gated_by_resource_and_operation():
    shared = NodeProperty(
        display_name="Limit",
        name="limit",
        type="number",
        default=0,
        display_options=DisplayOptions(show={"mode": ["advanced"]}),
    )
    resource = ResourceDefinition(
        resource=PropertyOption(name="Thing", value="thing"),
        operation_defs=[
            OperationDefinition(PropertyOption(name="List", value="list"), [shared], _noop),
            OperationDefinition(PropertyOption(name="Get", value="get"), [], _noop),
        ],
    )
    selector, limit = [prop.to_host() for prop in get_all_resource_node_parameters(resource)]
    assert selector["name"] == "operation"
    assert selector["default"] == "list"
    assert selector["noDataExpression"] is True
    assert selector["displayOptions"] == {"show": {"resource": ["thing"]}}
    assert limit["displayOptions"] == {
        "show": {"mode": ["advanced"], "resource": ["thing"], "operation": ["list"]}
    }
    assert shared.display_options.show == {"mode": ["advanced"]}
    assert resource.find_operation("get").operation.name == "Get"
    assert resource.find_operation("missing") is None


def test_context_parameters_and_credentials():
    ctx = ExecutionContext(
        {"static": "value", "dynamic": lambda item: item.json["n"] * 2},
        items=[NodeItem(json={"n": 1}), NodeItem(json={"n": 5})],
        credentials={"imapApi": {"host": "h"}},
    )
    assert ctx.get_node_parameter("static", 0) == "value"
    assert ctx.get_node_parameter("dynamic", 1) == 10
    assert ctx.get_node_parameter("absent", 0, "fallback") == "fallback"
    with pytest.raises(NodeApiError, match='Could not get parameter "absent"'):
        ctx.get_node_parameter("absent", 0)
    assert ctx.get_credentials("imapApi") == {"host": "h"}
    with pytest.raises(NodeApiError):
        ctx.get_credentials("oauth")


def test_default_context_has_one_empty_item():
    assert [item.json for item in ExecutionContext().get_input_data()] == [{}]


def test_node_item_round_trips_wrapped_and_bare_forms():
    bare = NodeItem.from_dict({"uid": 4})
    assert bare.json == {"uid": 4}
    binary = BinaryData.from_bytes(b"abc", mime_type="text/plain", file_name="a.TXT")
    wrapped = NodeItem.from_dict(NodeItem(json={"uid": 5}, binary={"data": binary}).to_dict())
    assert wrapped.binary["data"].content() == b"abc"
    assert wrapped.binary["data"].file_extension == "txt"
