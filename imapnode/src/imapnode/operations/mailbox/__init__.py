"""The ``mailbox`` resource."""

from ...host.parameters import PropertyOption, ResourceDefinition
from . import get_list, get_status, manage
from .get_list import load_mailbox_list

MAILBOX_RESOURCE = ResourceDefinition(
    resource=PropertyOption(name="Mailbox", value="mailbox"),
    operation_defs=[
        get_list.OPERATION,
        get_status.OPERATION,
        manage.CREATE_OPERATION,
        manage.RENAME_OPERATION,
        manage.DELETE_OPERATION,
    ],
)

__all__ = ["MAILBOX_RESOURCE", "load_mailbox_list"]
