"""The ``email`` resource."""

from ...host.parameters import PropertyOption, ResourceDefinition
from . import download, draft, flags, get_list, transfer

EMAIL_RESOURCE = ResourceDefinition(
    resource=PropertyOption(name="Email", value="email"),
    operation_defs=[
        get_list.OPERATION,
        download.EML_OPERATION,
        download.ATTACHMENT_OPERATION,
        transfer.MOVE_OPERATION,
        transfer.COPY_OPERATION,
        flags.SET_FLAGS_OPERATION,
        draft.OPERATION,
        flags.DELETE_OPERATION,
    ],
)

__all__ = ["EMAIL_RESOURCE"]
