"""
End-to-end tests against the threaded in-memory server.

Tests cover:
- Discovery over a real socket, including short reads
- GET idempotence and PUT followed by GET
- Existence queries
- Connection loss and disconnect
"""
import pytest

from config_tree_server import ConfigTreeServer, StoreClient, build_sample_store
from configtree import api
from configtree.engine.queries import attribute_exists, get_value, list_children, node_exists
from configtree.exceptions import ConfigurationError, ConnectionError, NotConnectedError
from configtree.models import Action, Request, ValueType


def test_discovery_over_socket_matches_store(client, sample_store):
    root = api.discover(client)

    expected = api.discover(StoreClient(sample_store))
    assert root == expected
    assert root.child_names() == ["server", "sensor", "camera"]
    assert root.find("/server/").get_attribute("portNumber").typed_value == 4040


def test_discovery_with_trickled_responses():
    with ConfigTreeServer(build_sample_store(), chunk_size=1) as server:
        client = api.connect(server.host, server.port, connect_timeout_ms=2000, io_timeout_ms=2000)
        try:
            root = api.discover(client)
        finally:
            api.disconnect(client)

    assert [node.path for node in root.walk()] == [
        "/", "/server/", "/sensor/", "/sensor/filter/", "/camera/",
    ]
    assert root.find("/sensor/filter/").get_attribute("threshold").value == "0.25"


def test_get_is_idempotent(client):
    request = Request(Action.GET, node_path="/server/", key="ipAddress", type=ValueType.STRING)

    first = client.execute(request)
    second = client.execute(request)

    assert first == second
    assert first.message == "127.0.0.1"


def test_put_then_get(client):
    result = api.set_value(client, "/server/", "portNumber", "int", 5050)

    assert result.success
    assert result.response.type is ValueType.BOOL
    assert result.message == "true"
    assert get_value(client, "/server/", "portNumber", ValueType.INT) == "5050"


def test_rejected_put_keeps_connection(client):
    result = api.set_value(client, "/", "logLevel", ValueType.BYTE, 1000)

    assert not result.success
    assert client.connected
    assert get_value(client, "/", "logLevel", ValueType.BYTE) == "5"


def test_put_does_not_refresh_a_discovered_tree(client):
    tree = api.discover(client)

    api.set_value(client, "/sensor/", "running", ValueType.BOOL, False)

    assert tree.find("/sensor/").get_attribute("running").value == "true"
    assert api.discover(client).find("/sensor/").get_attribute("running").value == "false"


def test_existence_queries(client):
    assert node_exists(client, "/sensor/filter/")
    assert not node_exists(client, "/sensor/lens/")
    assert attribute_exists(client, "/sensor/", "gain", ValueType.DOUBLE)
    assert not attribute_exists(client, "/sensor/", "gain", ValueType.INT)
    assert list_children(client, "/camera/") == []
    assert get_value(client, "/camera/", "exposure", ValueType.INT) is None


def test_server_hangup_raises_connection_error(server, client):
    assert node_exists(client, "/")

    server.drop_clients()

    with pytest.raises(ConnectionError):
        api.discover(client)
    assert client.connected is False
    with pytest.raises(NotConnectedError):
        client.execute(Request(Action.NODE_EXISTS, node_path="/"))


def test_disconnect_is_idempotent(client):
    api.disconnect(client)
    api.disconnect(client)
    api.disconnect(None)

    assert client.connected is False


@pytest.mark.parametrize("port", [0, -1, 65536])
def test_connect_rejects_invalid_port(port):
    with pytest.raises(ConfigurationError):
        api.connect("127.0.0.1", port)


def test_connect_records_peer(server, client):
    assert client.host == server.host
    assert client.port == server.port
