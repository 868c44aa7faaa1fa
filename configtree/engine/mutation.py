"""
Mutation Path - Writes one attribute value with PUT

The server is authoritative on types and ranges; the only local work is
producing the textual form of the value. A remote ERROR is a failed write,
reported to the caller without touching the connection. Writing does not
refresh any discovered tree.
"""
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from configtree.engine.client import ProtocolClient
from configtree.engine.queries import execute_lenient
from configtree.models import Action, Request, Response, ValueType, normalize_node_path
from configtree.values import format_value

logger = structlog.get_logger()


@dataclass(frozen=True)
class MutationResult:
    """Outcome of one PUT"""

    success: bool
    node_path: str
    key: str
    type: ValueType
    value: str
    message: str = ""
    response: Optional[Response] = None

    def __bool__(self) -> bool:
        return self.success


def set_value(
    client: ProtocolClient,
    node_path: str,
    key: str,
    value_type: ValueType,
    new_value: Any,
) -> MutationResult:
    """
    Write new_value to node_path/key as value_type.

    new_value may already be wire text or a Python value (bool, int, float,
    str) that is formatted for value_type.

    Raises:
        ValueFormatError: No textual form for new_value as value_type
        ConnectionError: The connection failed
    """
    node_path = normalize_node_path(node_path)
    text = format_value(value_type, new_value)

    response = execute_lenient(
        client,
        Request(Action.PUT, node_path=node_path, key=key, type=value_type, value=text),
    )

    success = response is not None and not response.is_error
    result = MutationResult(
        success=success,
        node_path=node_path,
        key=key,
        type=value_type,
        value=text,
        message=response.message if response is not None else "",
        response=response,
    )

    if success:
        logger.info("put_applied", node_path=node_path, key=key, type=value_type.name, value=text)
    else:
        logger.warning(
            "put_rejected",
            node_path=node_path,
            key=key,
            type=value_type.name,
            value=text,
            message=result.message,
        )
    return result
