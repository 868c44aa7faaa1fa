"""
Core data models

Action and ValueType are closed enumerations; their numeric codes only
matter at the wire codec boundary. Request and Response are immutable
frames. Attribute and ConfigNode form the discovered tree mirror.
"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Iterator, List, Optional

from pydantic import BaseModel, Field

from configtree.exceptions import ConfigurationError


class Action(IntEnum):
    """Request/response operation code"""

    NODE_EXISTS = 0
    ATTR_EXISTS = 1
    GET = 2
    PUT = 3
    ERROR = 4  # responses only
    GET_CHILDREN = 5
    GET_ATTRIBUTES = 6
    GET_TYPES = 7


class ValueType(IntEnum):
    """Attribute value type"""

    UNKNOWN = -1
    BOOL = 0
    BYTE = 1
    SHORT = 2
    INT = 3
    LONG = 4
    FLOAT = 5
    DOUBLE = 6
    STRING = 7

    @property
    def type_name(self) -> Optional[str]:
        """Name used on the wire in GET_TYPES listings ("int", "string", ...)."""
        if self is ValueType.UNKNOWN:
            return None
        return self.name.lower()

    @classmethod
    def from_name(cls, name: Optional[str]) -> "ValueType":
        """Map a wire type name to a ValueType; unknown names give UNKNOWN."""
        if not name:
            return cls.UNKNOWN
        member = cls.__members__.get(name.strip().upper())
        if member is None or member is cls.UNKNOWN:
            return cls.UNKNOWN
        return member


@dataclass(frozen=True)
class Request:
    """
    One request frame.

    node_path is an absolute, slash-terminated path. value is always the
    textual form of the typed value. type=None means "no type" and is kept
    distinct from ValueType.BOOL even though both are 0 on the wire.
    """

    action: Action
    node_path: Optional[str] = None
    key: Optional[str] = None
    type: Optional[ValueType] = None
    value: Optional[str] = None


@dataclass(frozen=True)
class Response:
    """One decoded response frame."""

    action: Action
    type: ValueType
    message: str = ""

    @property
    def is_error(self) -> bool:
        return self.action is Action.ERROR

    def names(self) -> List[str]:
        """Split a NUL-separated listing; an empty message gives no names."""
        if not self.message:
            return []
        return self.message.split("\0")


def normalize_node_path(path: str) -> str:
    """Return path with exactly one leading and one trailing slash."""
    if path is None:
        raise ConfigurationError("Node path must not be None")
    path = path.strip()
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path += "/"
    if "//" in path:
        raise ConfigurationError(f"Node path has an empty segment: {path!r}", {"path": path})
    return path


def child_path(parent: str, name: str) -> str:
    return parent + name + "/"


class Attribute(BaseModel):
    """Typed, named value stored at a node"""

    key: str
    type: ValueType
    value: str

    @property
    def type_name(self) -> Optional[str]:
        return self.type.type_name

    @property
    def typed_value(self) -> Any:
        """Value parsed according to type; raises ValueFormatError."""
        from configtree.values import parse_value

        return parse_value(self.type, self.value)


class ConfigNode(BaseModel):
    """
    One node of a discovered configuration tree.

    children keeps the server's order and any duplicate names it returned.
    """

    path: str
    attributes: List[Attribute] = Field(default_factory=list)
    children: List["ConfigNode"] = Field(default_factory=list)

    @property
    def name(self) -> str:
        """Last path segment; empty for the root."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    def add_child(self, name: str) -> "ConfigNode":
        node = ConfigNode(path=child_path(self.path, name))
        self.children.append(node)
        return node

    def get_child(self, name: str) -> Optional["ConfigNode"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def child_names(self) -> List[str]:
        return [child.name for child in self.children]

    def get_attribute(self, key: str, type: Optional[ValueType] = None) -> Optional[Attribute]:
        for attribute in self.attributes:
            if attribute.key == key and (type is None or attribute.type is type):
                return attribute
        return None

    def find(self, path: str) -> Optional["ConfigNode"]:
        """Look up a descendant (or self) by absolute path."""
        path = normalize_node_path(path)
        if not path.startswith(self.path):
            return None

        node: Optional[ConfigNode] = self
        for segment in path[len(self.path):].split("/"):
            if not segment:
                continue
            node = node.get_child(segment)
            if node is None:
                return None
        return node

    def walk(self) -> Iterator["ConfigNode"]:
        """Pre-order iteration over this node and all descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


ConfigNode.model_rebuild()
