"""
Tree Discovery Engine - Builds a complete mirror of the remote tree

For every node, in order:
1. GET_ATTRIBUTES lists the attribute keys
2. GET_TYPES per key lists its advertised type names
3. GET per (key, type) fetches the current value text
4. GET_CHILDREN lists the child nodes, which are then visited depth-first

Traversal uses an explicit work stack instead of recursion, so deep trees do
not grow the call stack. Children are pushed in reverse so they pop in
server order, which reproduces the recursive request sequence exactly.

Round trips per node: 2 + (one GET per advertised type) + one GET_TYPES per
key. Requests are strictly serial; visiting independent children in
parallel would need one connection per worker and would no longer match
the server's ordering.
"""
from dataclasses import dataclass
from typing import List, Tuple

import structlog

from configtree.engine.client import ProtocolClient
from configtree.engine.queries import get_value, list_attributes, list_children, list_types
from configtree.exceptions import ConnectionError, ProtocolError
from configtree.models import Attribute, ConfigNode, ValueType, normalize_node_path

logger = structlog.get_logger()


@dataclass
class DiscoveryStats:
    """Counters for one discovery pass"""

    nodes: int = 0
    attributes: int = 0
    skipped_values: int = 0
    round_trips: int = 0


class TreeDiscovery:
    """
    Walks the remote configuration tree through a ProtocolClient.

    One instance performs one pass; the returned tree is built from scratch
    and never patched afterwards.
    """

    def __init__(self, client: ProtocolClient):
        self.client = client
        self.stats = DiscoveryStats()

    def run(self, root_path: str = "/") -> ConfigNode:
        """
        Discover the subtree rooted at root_path.

        Raises:
            ConnectionError: The connection failed; the partial tree is dropped
            ProtocolError: The stream became unreadable; the partial tree is dropped
        """
        root = ConfigNode(path=normalize_node_path(root_path))
        start_count = self.client.request_count

        logger.info("discovery_started", root_path=root.path)

        stack: List[Tuple[str, ConfigNode]] = [(root.path, root)]
        try:
            while stack:
                path, node = stack.pop()
                self._resolve_attributes(path, node)

                names = list_children(self.client, path)
                children = [node.add_child(name) for name in names]
                for child in reversed(children):
                    stack.append((child.path, child))

                self.stats.nodes += 1
                logger.debug(
                    "discovery_node_visited",
                    node_path=path,
                    attributes=len(node.attributes),
                    children=len(names),
                )
        except (ConnectionError, ProtocolError) as e:
            logger.error(
                "discovery_aborted",
                root_path=root.path,
                nodes_visited=self.stats.nodes,
                error=e.message,
            )
            raise

        self.stats.round_trips = self.client.request_count - start_count
        logger.info(
            "discovery_completed",
            root_path=root.path,
            nodes=self.stats.nodes,
            attributes=self.stats.attributes,
            skipped_values=self.stats.skipped_values,
            round_trips=self.stats.round_trips,
        )
        return root

    def _resolve_attributes(self, path: str, node: ConfigNode) -> None:
        for key in list_attributes(self.client, path):
            for type_name in list_types(self.client, path, key):
                value_type = ValueType.from_name(type_name)
                if value_type is ValueType.UNKNOWN:
                    self.stats.skipped_values += 1
                    logger.warning(
                        "attribute_type_unknown",
                        node_path=path,
                        key=key,
                        type_name=type_name,
                    )
                    continue

                value = get_value(self.client, path, key, value_type)
                if value is None:
                    self.stats.skipped_values += 1
                    logger.debug(
                        "attribute_value_skipped",
                        node_path=path,
                        key=key,
                        type_name=type_name,
                    )
                    continue

                node.attributes.append(Attribute(key=key, type=value_type, value=value))
                self.stats.attributes += 1


def discover(client: ProtocolClient, root_path: str = "/") -> ConfigNode:
    """Full synchronous snapshot of the remote tree below root_path."""
    return TreeDiscovery(client).run(root_path)
