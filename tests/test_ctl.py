"""
Tests for the control shell.

Tests cover:
- Raw request commands and their result lines
- Listings and tree dumps
- Argument errors reported without leaving the shell
- One-shot and interactive entry points
"""
import io
import json
import socket

import pytest

from configtree.config import settings
from configtree.engine.discovery import discover
from configtree.models import Action, Response, ValueType
from ctl.main import CommandShell, format_response, main, render_tree, run_shell


@pytest.fixture(autouse=True)
def log_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "log_dir", tmp_path)


@pytest.fixture
def shell(client):
    return CommandShell(client, io.StringIO(), io.StringIO())


def _run(shell, line):
    assert shell.handle_line(line) is True
    return shell.out.getvalue().splitlines(), shell.err.getvalue().splitlines()


def test_format_response():
    line = format_response(Response(Action.GET, ValueType.INT, "4040"))
    assert line == "Result: action=get, type=int, msgLength=5, msg='4040'."

    line = format_response(Response(Action.ERROR, ValueType.STRING, "Node has no children."))
    assert line.startswith("Result: action=error, type=string")


def test_get_command(shell):
    out, err = _run(shell, "get /server/ portNumber int")

    assert out == ["Result: action=get, type=int, msgLength=5, msg='4040'."]
    assert err == []


def test_put_then_get(shell):
    _run(shell, "put /server/ ipAddress string '10.0.0.1'")
    out, _ = _run(shell, "get server ipAddress string")

    assert out[0] == "Result: action=put, type=bool, msgLength=5, msg='true'."
    assert out[1].endswith("msg='10.0.0.1'.")


def test_existence_commands(shell):
    out, _ = _run(shell, "node_exists /camera/")
    assert out[-1].endswith("msg='true'.")

    out, _ = _run(shell, "attr_exists /sensor/ gain float")
    assert out[-1].endswith("msg='true'.")

    out, _ = _run(shell, "attr_exists /sensor/ gain int")
    assert out[-1].endswith("msg='false'.")


def test_listing_commands(shell):
    out, _ = _run(shell, "children /")
    assert out == ["server", "sensor", "camera"]

    shell.out = io.StringIO()
    out, _ = _run(shell, "attributes /sensor/")
    assert out == ["running", "biasCurrent", "gain"]

    shell.out = io.StringIO()
    out, _ = _run(shell, "types /sensor/ gain")
    assert out == ["float", "double"]


def test_dump_text(shell):
    out, _ = _run(shell, "dump /sensor/")

    assert out == [
        "/sensor/",
        "  running (bool) = true",
        "  biasCurrent (long) = 1200000",
        "  gain (float) = 1.5",
        "  gain (double) = 1.5",
        "  filter/",
        "    threshold (double) = 0.25",
    ]


def test_dump_json(shell):
    out, _ = _run(shell, "dump --json")

    data = json.loads("\n".join(out))
    assert data["path"] == "/"
    assert [child["path"] for child in data["children"]] == ["/server/", "/sensor/", "/camera/"]


@pytest.mark.parametrize(
    "line, message",
    [
        ("get /server/ portNumber", "Error: missing type parameter."),
        ("get /server/ portNumber matrix", "Error: invalid type parameter 'matrix'."),
        ("node_exists / extra", "Error: too many parameters for command."),
        ("frobnicate /", "Error: unknown command 'frobnicate'."),
        ("get /a//b/ key int", None),
    ],
)
def test_bad_commands_are_reported(shell, line, message):
    out, err = _run(shell, line)

    assert out == []
    assert len(err) == 1
    if message is not None:
        assert err[0] == message
    assert shell.client.connected


def test_quit_ends_shell(shell):
    assert shell.handle_line("quit") is False
    assert shell.handle_line("exit") is False


def test_run_shell_reads_until_quit(shell):
    run_shell(shell, io.StringIO("help\n\nchildren /sensor/\nquit\nchildren /\n"))

    out = shell.out.getvalue().splitlines()
    assert "put NODE KEY TYPE VALUE" in out
    assert out[-1] == "filter"


def test_render_tree_root_label(store_client):
    lines = render_tree(discover(store_client, "/camera/"))
    assert lines == ["/camera/"]


def test_main_one_shot(server, capsys):
    code = main(["--host", server.host, "--port", str(server.port), "children", "/"])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["server", "sensor", "camera"]


def test_main_reads_stdin(server, capsys, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("get / logLevel byte\n"))

    code = main(["--host", server.host, "--port", str(server.port)])

    assert code == 0
    assert capsys.readouterr().out.strip() == "Result: action=get, type=byte, msgLength=2, msg='5'."


def test_main_connect_failure(capsys):
    spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    spare.bind(("127.0.0.1", 0))
    port = spare.getsockname()[1]
    spare.close()

    code = main(["--host", "127.0.0.1", "--port", str(port), "children", "/"])

    assert code == 1
    assert "failed to connect" in capsys.readouterr().err


def test_main_connection_lost(server, capsys, monkeypatch):
    class HangUp(io.StringIO):
        """Answers one command, then hangs up the server side before the next."""

        lines = ["node_exists /\n", "children /\n"]

        def readline(self, *args):
            if not self.lines:
                return ""
            if len(self.lines) == 1:
                server.drop_clients()
            return self.lines.pop(0)

    monkeypatch.setattr("sys.stdin", HangUp())

    code = main(["--host", server.host, "--port", str(server.port)])

    assert code == 1
    assert "connection lost" in capsys.readouterr().err
