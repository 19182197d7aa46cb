"""Credential records and the credential type descriptions offered to the host."""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..host.parameters import NodeProperty

DEFAULT_IMAP_PORT = 993


class ImapCredentialsData(BaseModel):
    """Connection settings for one IMAP account."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    host: str = Field(min_length=1)
    port: int = Field(default=DEFAULT_IMAP_PORT, gt=0, lt=65536)
    user: str = Field(min_length=1)
    password: str
    tls: bool = True
    allow_unauthorized_certs: bool = False

    def to_host(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class CoreImapCredentialsData(BaseModel):
    """Credentials stored for the host's built-in IMAP trigger node."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    host: str = Field(min_length=1)
    port: int = Field(default=DEFAULT_IMAP_PORT, gt=0, lt=65536)
    user: str = Field(min_length=1)
    password: str
    secure: bool = True
    allow_unauthorized_certs: bool = False

    def to_imap_credentials(self) -> ImapCredentialsData:
        return ImapCredentialsData(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            tls=self.secure,
            allow_unauthorized_certs=self.allow_unauthorized_certs,
        )


class CredentialType(BaseModel):
    """Credential type description registered with the host."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    display_name: str
    documentation_url: str = ""
    properties: List[NodeProperty]

    def to_host(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


IMAP_API_CREDENTIALS = CredentialType(
    name="imapApi",
    display_name="IMAP",
    properties=[
        NodeProperty(display_name="Host", name="host", type="string", default="", required=True),
        NodeProperty(display_name="Port", name="port", type="number", default=DEFAULT_IMAP_PORT),
        NodeProperty(display_name="User", name="user", type="string", default="", required=True),
        NodeProperty(
            display_name="Password",
            name="password",
            type="string",
            default="",
            type_options={"password": True},
            required=True,
        ),
        NodeProperty(display_name="Use SSL/TLS", name="tls", type="boolean", default=True),
        NodeProperty(
            display_name="Allow Self-Signed Certificates",
            name="allowUnauthorizedCerts",
            type="boolean",
            default=False,
            description="Whether to connect even if SSL certificate validation is not possible",
        ),
    ],
)
