"""
Configuration tree control shell

Line-oriented client for the configuration server:
1. Connects to host:port
2. Runs one command from the command line, or reads commands from stdin
3. Prints each raw response or listing
4. Exits non-zero when the connection is lost
"""
import argparse
import logging
import shlex
import sys
from typing import Callable, Dict, List, Optional, TextIO, Tuple

import structlog

from configtree.api import connect, disconnect
from configtree.config import settings
from configtree.engine.client import ProtocolClient
from configtree.engine.discovery import discover
from configtree.engine.queries import list_attributes, list_children, list_types
from configtree.exceptions import ConfigTreeError, ConnectionError
from configtree.logging import setup_logging
from configtree.models import Action, ConfigNode, Request, Response, ValueType, normalize_node_path

logger = structlog.get_logger()


class CommandError(ConfigTreeError):
    """Malformed shell command; reported and the shell continues."""
    pass


def format_response(response: Response) -> str:
    action = "error" if response.is_error else response.action.name.lower()
    type_name = response.type.type_name or "unknown"
    return (
        f"Result: action={action}, type={type_name}, "
        f"msgLength={len(response.message) + 1}, msg='{response.message}'."
    )


def render_tree(node: ConfigNode, indent: str = "  ") -> List[str]:
    """Indented text rendering: one line per node and per attribute."""
    lines: List[str] = []
    root_depth = node.path.count("/")
    for current in node.walk():
        depth = current.path.count("/") - root_depth
        label = current.path if depth == 0 else current.name + "/"
        lines.append(indent * depth + label)
        for attribute in current.attributes:
            lines.append(
                f"{indent * (depth + 1)}{attribute.key} ({attribute.type_name}) = {attribute.value}"
            )
    return lines


def _parse_type(name: str) -> ValueType:
    value_type = ValueType.from_name(name)
    if value_type is ValueType.UNKNOWN:
        raise CommandError(f"invalid type parameter '{name}'.")
    return value_type


def _require(args: List[str], names: Tuple[str, ...], optional: int = 0) -> None:
    for index, name in enumerate(names[: len(names) - optional]):
        if index >= len(args):
            raise CommandError(f"missing {name} parameter.")
    if len(args) > len(names):
        raise CommandError("too many parameters for command.")


class CommandShell:
    """Parses and runs shell commands against one client."""

    def __init__(self, client: ProtocolClient, out: Optional[TextIO] = None, err: Optional[TextIO] = None):
        self.client = client
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.commands: Dict[str, Tuple[Callable[[List[str]], None], str]] = {
            "node_exists": (self._node_exists, "node_exists NODE"),
            "attr_exists": (self._attr_exists, "attr_exists NODE KEY TYPE"),
            "get": (self._get, "get NODE KEY TYPE"),
            "put": (self._put, "put NODE KEY TYPE VALUE"),
            "children": (self._children, "children NODE"),
            "attributes": (self._attributes, "attributes NODE"),
            "types": (self._types, "types NODE KEY"),
            "dump": (self._dump, "dump [NODE] [--json]"),
            "help": (self._help, "help"),
        }

    def handle_line(self, line: str) -> bool:
        """
        Run one command line.

        Returns:
            False when the shell should exit, True otherwise

        Raises:
            ConnectionError: The connection is gone
        """
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self._error(f"cannot parse command ({e}).")
            return True

        if not parts:
            self._error("empty command.")
            return True

        name, args = parts[0], parts[1:]
        if name in ("quit", "exit"):
            return False

        entry = self.commands.get(name)
        if entry is None:
            self._error(f"unknown command '{name}'.")
            return True

        handler, _ = entry
        try:
            handler(args)
        except ConnectionError:
            raise
        except ConfigTreeError as e:
            self._error(e.message)
        return True

    def _error(self, message: str) -> None:
        print(f"Error: {message}", file=self.err)

    def _print(self, text: str) -> None:
        print(text, file=self.out)

    def _node(self, path: str) -> str:
        return normalize_node_path(path)

    def _raw(self, request: Request) -> None:
        self._print(format_response(self.client.execute(request)))

    def _node_exists(self, args: List[str]) -> None:
        _require(args, ("node",))
        self._raw(Request(Action.NODE_EXISTS, node_path=self._node(args[0])))

    def _attr_exists(self, args: List[str]) -> None:
        _require(args, ("node", "key", "type"))
        self._raw(
            Request(
                Action.ATTR_EXISTS,
                node_path=self._node(args[0]),
                key=args[1],
                type=_parse_type(args[2]),
            )
        )

    def _get(self, args: List[str]) -> None:
        _require(args, ("node", "key", "type"))
        self._raw(
            Request(Action.GET, node_path=self._node(args[0]), key=args[1], type=_parse_type(args[2]))
        )

    def _put(self, args: List[str]) -> None:
        _require(args, ("node", "key", "type", "value"))
        value_type = _parse_type(args[2])
        self._raw(
            Request(
                Action.PUT,
                node_path=self._node(args[0]),
                key=args[1],
                type=value_type,
                value=args[3],
            )
        )

    def _children(self, args: List[str]) -> None:
        _require(args, ("node",))
        for name in list_children(self.client, self._node(args[0])):
            self._print(name)

    def _attributes(self, args: List[str]) -> None:
        _require(args, ("node",))
        for key in list_attributes(self.client, self._node(args[0])):
            self._print(key)

    def _types(self, args: List[str]) -> None:
        _require(args, ("node", "key"))
        for type_name in list_types(self.client, self._node(args[0]), args[1]):
            self._print(type_name)

    def _dump(self, args: List[str]) -> None:
        as_json = "--json" in args
        args = [arg for arg in args if arg != "--json"]
        _require(args, ("node",), optional=1)
        tree = discover(self.client, self._node(args[0]) if args else "/")
        if as_json:
            self._print(tree.model_dump_json(indent=2))
        else:
            for line in render_tree(tree):
                self._print(line)

    def _help(self, args: List[str]) -> None:
        for _, usage in self.commands.values():
            self._print(usage)
        self._print("quit")


def run_shell(shell: CommandShell, stream: TextIO, prompt: Optional[str] = None) -> None:
    """Read and run commands until EOF or quit."""
    while True:
        if prompt:
            shell.out.write(prompt)
            shell.out.flush()
        line = stream.readline()
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        if not shell.handle_line(line):
            break


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Configuration tree control shell")
    parser.add_argument(
        "--host",
        default=settings.default_host,
        help="Configuration server IP address or hostname",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.default_port,
        help="Configuration server port",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=settings.io_timeout_ms,
        help="Read/write deadline in milliseconds (0 waits forever)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log protocol traffic",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run once; omit to read commands from stdin",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    setup_logging("ctl", logging.DEBUG if args.verbose else logging.WARNING)

    try:
        client = connect(args.host, args.port, io_timeout_ms=args.timeout_ms)
    except ConfigTreeError as e:
        print(f"Error: failed to connect to {args.host}:{args.port} ({e.message}).", file=sys.stderr)
        return 1

    shell = CommandShell(client)
    try:
        if args.command:
            shell.handle_line(shlex.join(args.command))
        else:
            prompt = f"configtree @ {args.host}:{args.port} >> " if sys.stdin.isatty() else None
            run_shell(shell, sys.stdin, prompt)
    except ConnectionError as e:
        logger.error("session_lost", host=args.host, port=args.port, error=e.message)
        print(f"Error: connection lost ({e.message}).", file=sys.stderr)
        return 1
    finally:
        disconnect(client)

    return 0


if __name__ == "__main__":
    sys.exit(main())
