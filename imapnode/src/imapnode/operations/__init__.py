"""Resources and operations exposed by the IMAP node."""

from typing import List

from ..host.parameters import ResourceDefinition
from .email import EMAIL_RESOURCE
from .mailbox import MAILBOX_RESOURCE, load_mailbox_list

ALL_RESOURCE_DEFINITIONS: List[ResourceDefinition] = [MAILBOX_RESOURCE, EMAIL_RESOURCE]

__all__ = ["ALL_RESOURCE_DEFINITIONS", "EMAIL_RESOURCE", "MAILBOX_RESOURCE", "load_mailbox_list"]
