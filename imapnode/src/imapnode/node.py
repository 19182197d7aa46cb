"""The IMAP workflow node.

What:
  Declare the node description the host renders and run one execution: resolve
  credentials, connect once, dispatch every input item to the selected
  operation, and close the connection whatever happens.

Why:
  Operation handlers only express IMAP work. Turning library failures into
  :class:`NodeApiError` (with any server text the library merely logged) and
  guaranteeing logout belong in one place.

How:
  ``resource`` and ``operation`` are read once at item 0 and looked up in
  :data:`ALL_RESOURCE_DEFINITIONS`. Each item runs between
  ``start_error_catching`` and ``stop_and_get_errors`` of the
  :class:`ImapErrorCatcher` singleton. The first failing item aborts the
  execution.

Interfaces:
  :class:`ImapNode`, :func:`build_description`.

Invariants & Safety:
  - Exactly one connection per execution; ``logout`` runs on success and on
    failure.
  - Only :class:`NodeApiError` leaves :meth:`ImapNode.execute`.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError

from .config.loader import ConfigLoadError, get_runtime_config
from .credentials import (
    CREDENTIAL_NAMES,
    CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT,
    CREDENTIALS_TYPE_FROM_INPUT,
    CREDENTIALS_TYPE_THIS_NODE,
    ImapCredentialsData,
    get_imap_credentials,
    resolve_credentials,
)
from .host.context import CredentialTestResult, ExecutionContext, NodeItem
from .host.errors import NodeApiError
from .host.parameters import (
    CredentialSlot,
    DisplayOptions,
    NodeProperty,
    NodeTypeDescription,
    PropertyOption,
    get_all_resource_node_parameters,
)
from .imap.client import ImapConnection, create_imap_client
from .imap.errors import ImapErrorCatcher, error_text
from .operations import ALL_RESOURCE_DEFINITIONS, load_mailbox_list

FIRST_ITEM_INDEX = 0
UNKNOWN_ERROR = "Unknown error"
IMAP_SERVER_ERRORS_PREFIX = "The following errors were reported by the IMAP server: \n"


def build_description() -> NodeTypeDescription:
    """Assemble the node description from the resource table."""

    properties: List[NodeProperty] = [
        NodeProperty(
            display_name="Credential Type",
            name="authentication",
            type="options",
            default=CREDENTIALS_TYPE_THIS_NODE,
            options=[
                PropertyOption(
                    name="IMAP",
                    value=CREDENTIALS_TYPE_THIS_NODE,
                    description="Use credentials from this node",
                ),
                PropertyOption(
                    name="N8N IMAP Trigger Node",
                    value=CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT,
                    description="Use existing credentials from N8N IMAP Trigger node",
                ),
                PropertyOption(
                    name="From Input",
                    value=CREDENTIALS_TYPE_FROM_INPUT,
                    description="Use credentials from previous node input",
                ),
            ],
        ),
        NodeProperty(
            display_name="Input Field for Credentials",
            name="credentialsField",
            type="string",
            default="credentials",
            placeholder="credentials",
            description="The field in the input data that contains the credentials",
            display_options=DisplayOptions(show={"authentication": [CREDENTIALS_TYPE_FROM_INPUT]}),
        ),
        NodeProperty(
            display_name="Resource",
            name="resource",
            type="options",
            no_data_expression=True,
            options=[resource_def.resource for resource_def in ALL_RESOURCE_DEFINITIONS],
            default=ALL_RESOURCE_DEFINITIONS[0].resource.value,
        ),
    ]
    for resource_def in ALL_RESOURCE_DEFINITIONS:
        properties.extend(get_all_resource_node_parameters(resource_def))

    return NodeTypeDescription(
        display_name="IMAP",
        name="imap",
        icon="file:node-imap-icon.svg",
        version=1,
        subtitle='={{ $parameter["operation"] + ": " + $parameter["resource"] }}',
        description="Retrieve emails via IMAP",
        defaults={"name": "IMAP"},
        credentials=[
            CredentialSlot(
                name=CREDENTIAL_NAMES[CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT],
                display_options=DisplayOptions(show={"authentication": [CREDENTIALS_TYPE_CORE_IMAP_ACCOUNT]}),
            ),
            CredentialSlot(
                name=CREDENTIAL_NAMES[CREDENTIALS_TYPE_THIS_NODE],
                display_options=DisplayOptions(show={"authentication": [CREDENTIALS_TYPE_THIS_NODE]}),
            ),
        ],
        properties=properties,
    )


class ImapNode:
    """Entry points the host calls: :meth:`execute` and :attr:`methods`."""

    def __init__(self) -> None:
        self.description = build_description()
        self.methods: Dict[str, Dict[str, Callable[..., Any]]] = {
            "list_search": {"loadMailboxList": self.load_mailbox_list},
            "credential_test": {"testImapCredentials": self.test_imap_credentials},
        }

    def execute(self, ctx: ExecutionContext) -> List[List[NodeItem]]:
        """Run the selected operation for every input item.

        Returns:
          A single output branch holding the items produced by every call.

        Raises:
          NodeApiError: For credential, connection, and operation failures.
        """

        logger = ctx.logger
        try:
            enable_debug_logging = get_runtime_config().logging.debug_enabled
        except ConfigLoadError as exc:
            logger.error(f"Invalid runtime configuration: {exc}")
            raise NodeApiError(f"Invalid runtime configuration: {exc}", node_name=ctx.node_name) from exc
        credentials = resolve_credentials(ctx)
        connection = create_imap_client(credentials, logger, enable_debug_logging)

        try:
            connection.connect()
        except Exception as exc:
            message = error_text(exc) or UNKNOWN_ERROR
            logger.error(f"Connection failed: {message}")
            raise NodeApiError(message, node_name=ctx.node_name) from exc

        try:
            result_items = self._run_items(ctx, connection)
        except Exception as exc:
            connection.logout()
            logger.error(f"IMAP connection closed. Error: {error_text(exc) or UNKNOWN_ERROR}")
            if isinstance(exc, NodeApiError):
                raise
            raise NodeApiError(error_text(exc) or UNKNOWN_ERROR, node_name=ctx.node_name) from exc

        connection.logout()
        logger.info("IMAP connection closed")
        return [result_items]

    def _run_items(self, ctx: ExecutionContext, connection: ImapConnection) -> List[NodeItem]:
        logger = ctx.logger
        resource = ctx.get_node_parameter("resource", FIRST_ITEM_INDEX)
        operation = ctx.get_node_parameter("operation", FIRST_ITEM_INDEX)

        handler = None
        for resource_def in ALL_RESOURCE_DEFINITIONS:
            if resource_def.resource.value == resource:
                handler = resource_def.find_operation(operation)
                break
        if handler is None:
            message = f'Unknown operation "{operation}" for resource "{resource}"'
            logger.error(message)
            raise NodeApiError(message, node_name=ctx.node_name)

        catcher = ImapErrorCatcher.get_instance()
        result_items: List[NodeItem] = []
        for item_index in range(len(ctx.get_input_data())):
            catcher.start_error_catching()
            try:
                result = handler.execute_imap_action(ctx, item_index, connection)
            except Exception as exc:
                internal_errors = catcher.stop_and_get_errors()
                internal_message = ", \n".join(internal_errors)
                if internal_errors:
                    logger.error(f"IMAP server reported errors: {internal_message}")
                if isinstance(exc, NodeApiError):
                    raise
                message = error_text(exc) or internal_message or UNKNOWN_ERROR
                logger.error(
                    f'Operation "{operation}" for resource "{resource}" failed: {message}',
                    error_type=type(exc).__name__,
                    item_index=item_index,
                )
                raise NodeApiError(
                    message,
                    description=IMAP_SERVER_ERRORS_PREFIX + internal_message if internal_message else None,
                    node_name=ctx.node_name,
                ) from exc
            catcher.stop_and_get_errors()
            if result is not None:
                result_items.extend(result)
            else:
                logger.warning(f'Operation "{operation}" for resource "{resource}" returned no data')
        return result_items

    def load_mailbox_list(self, ctx: ExecutionContext, filter_text: Optional[str] = None) -> Dict[str, Any]:
        """List-search method backing the mailbox picker.

        Uses the credential store even in ``fromInput`` mode, since no items
        exist while the host renders parameters.
        """

        connection = create_imap_client(get_imap_credentials(ctx), ctx.logger)
        try:
            connection.connect()
        except Exception as exc:
            raise NodeApiError(error_text(exc) or UNKNOWN_ERROR, node_name=ctx.node_name) from exc
        try:
            return load_mailbox_list(connection, filter_text)
        finally:
            connection.logout()

    def test_imap_credentials(self, credential: Mapping[str, Any]) -> CredentialTestResult:
        """Connect and log out with ``credential``; never raises."""

        try:
            credentials = ImapCredentialsData.model_validate(dict(credential))
            connection = create_imap_client(credentials)
            connection.connect()
            connection.logout()
        except ValidationError as exc:
            return CredentialTestResult(status="Error", message=f"Invalid credentials: {exc.error_count()} error(s)")
        except Exception as exc:
            return CredentialTestResult(status="Error", message=error_text(exc) or UNKNOWN_ERROR)
        return CredentialTestResult(status="OK", message="Success")
