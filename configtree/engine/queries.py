"""
Single-request queries against the configuration server

Each helper issues exactly one request and maps the response to a plain
Python result. A remote ERROR (or an unexpected response type) is a normal
"nothing there" answer and never raises.
"""
from typing import List, Optional

import structlog

from configtree.engine.client import ProtocolClient
from configtree.exceptions import UnknownValueTypeError
from configtree.models import Action, Request, Response, ValueType

logger = structlog.get_logger()


def execute_lenient(client: ProtocolClient, request: Request) -> Optional[Response]:
    """Execute, turning an undecodable type byte into a failed lookup."""
    try:
        return client.execute(request)
    except UnknownValueTypeError as e:
        logger.warning(
            "response_type_unknown",
            action=request.action.name,
            node_path=request.node_path,
            key=request.key,
            type_code=e.code,
        )
        return None


def _names(client: ProtocolClient, request: Request) -> List[str]:
    response = execute_lenient(client, request)
    if response is None or response.is_error or response.type is not ValueType.STRING:
        return []
    return response.names()


def list_attributes(client: ProtocolClient, node_path: str) -> List[str]:
    """Attribute keys of a node, in server order."""
    return _names(client, Request(Action.GET_ATTRIBUTES, node_path=node_path))


def list_types(client: ProtocolClient, node_path: str, key: str) -> List[str]:
    """Type names advertised for one attribute key."""
    return _names(client, Request(Action.GET_TYPES, node_path=node_path, key=key))


def list_children(client: ProtocolClient, node_path: str) -> List[str]:
    """Child node names, in server order."""
    return _names(client, Request(Action.GET_CHILDREN, node_path=node_path))


def get_value(
    client: ProtocolClient, node_path: str, key: str, value_type: ValueType
) -> Optional[str]:
    """Current value text, or None when the server declines."""
    response = execute_lenient(
        client, Request(Action.GET, node_path=node_path, key=key, type=value_type)
    )
    if response is None or response.is_error or response.type is ValueType.UNKNOWN:
        return None
    return response.message


def _boolean_answer(response: Optional[Response]) -> bool:
    if response is None or response.is_error:
        return False
    return response.message == "true"


def node_exists(client: ProtocolClient, node_path: str) -> bool:
    return _boolean_answer(
        execute_lenient(client, Request(Action.NODE_EXISTS, node_path=node_path))
    )


def attribute_exists(
    client: ProtocolClient, node_path: str, key: str, value_type: ValueType
) -> bool:
    return _boolean_answer(
        execute_lenient(
            client,
            Request(Action.ATTR_EXISTS, node_path=node_path, key=key, type=value_type),
        )
    )
