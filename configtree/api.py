"""
Collaborator interface

The four calls a presentation layer needs: connect, discover, set_value and
disconnect. Host, port and deadlines default to the values in settings.
"""
from typing import Any, Optional, Union

from configtree.config import settings
from configtree.engine.client import ProtocolClient
from configtree.engine.discovery import discover as _discover
from configtree.engine.mutation import MutationResult, set_value as _set_value
from configtree.exceptions import ConfigurationError
from configtree.models import ConfigNode, ValueType


def connect(
    host: Optional[str] = None,
    port: Optional[int] = None,
    connect_timeout_ms: Optional[int] = None,
    io_timeout_ms: Optional[int] = None,
) -> ProtocolClient:
    """Open a client connection; raises ConnectionError on failure."""
    host = host or settings.default_host
    port = settings.default_port if port is None else port
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port {port} out of range", {"port": port})

    return ProtocolClient.connect(
        host,
        port,
        connect_timeout_ms=settings.connect_timeout_ms if connect_timeout_ms is None else connect_timeout_ms,
        io_timeout_ms=settings.io_timeout_ms if io_timeout_ms is None else io_timeout_ms,
    )


def discover(client: ProtocolClient, root_path: str = "/") -> ConfigNode:
    return _discover(client, root_path)


def set_value(
    client: ProtocolClient,
    node_path: str,
    key: str,
    value_type: Union[ValueType, str],
    value: Any,
) -> MutationResult:
    """Write one attribute; value_type may be a ValueType or a type name."""
    if isinstance(value_type, str):
        value_type = ValueType.from_name(value_type)
    return _set_value(client, node_path, key, value_type, value)


def disconnect(client: Optional[ProtocolClient]) -> None:
    """Close the client's connection. Idempotent, accepts None."""
    if client is not None:
        client.close()
