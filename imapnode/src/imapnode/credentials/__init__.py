"""Credential records and source selection for the IMAP node."""

from .schema import (
    DEFAULT_IMAP_PORT,
    IMAP_API_CREDENTIALS,
    CoreImapCredentialsData,
    CredentialType,
    ImapCredentialsData,
)
from .selector import (
    CREDENTIAL_NAMES,
    CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT,
    CREDENTIALS_TYPE_FROM_INPUT,
    CREDENTIALS_TYPE_THIS_NODE,
    get_credentials_from_input,
    get_imap_credentials,
    resolve_credentials,
)

__all__ = [
    "CREDENTIAL_NAMES",
    "CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT",
    "CREDENTIALS_TYPE_FROM_INPUT",
    "CREDENTIALS_TYPE_THIS_NODE",
    "DEFAULT_IMAP_PORT",
    "IMAP_API_CREDENTIALS",
    "CoreImapCredentialsData",
    "CredentialType",
    "ImapCredentialsData",
    "get_credentials_from_input",
    "get_imap_credentials",
    "resolve_credentials",
]
