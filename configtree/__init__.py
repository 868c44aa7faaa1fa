"""
configtree - client for a remote hierarchical configuration store

Speaks a compact binary request/response protocol over TCP and mirrors the
remote tree of nodes and typed attributes in memory.
"""

__version__ = "0.1.0"

from configtree.api import connect, disconnect, discover, set_value
from configtree.engine.client import ProtocolClient
from configtree.engine.discovery import TreeDiscovery
from configtree.engine.mutation import MutationResult
from configtree.models import Action, Attribute, ConfigNode, Request, Response, ValueType

__all__ = [
    "connect",
    "disconnect",
    "discover",
    "set_value",
    "ProtocolClient",
    "TreeDiscovery",
    "MutationResult",
    "Action",
    "Attribute",
    "ConfigNode",
    "Request",
    "Response",
    "ValueType",
]
