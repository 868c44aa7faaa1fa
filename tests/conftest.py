"""Shared fixtures: in-memory store, threaded server, connected client."""
import pytest

from config_tree_server import ConfigTreeServer, MemoryConfigStore, StoreClient, build_sample_store
from configtree.api import connect, disconnect


@pytest.fixture
def sample_store() -> MemoryConfigStore:
    return build_sample_store()


@pytest.fixture
def store_client(sample_store) -> StoreClient:
    return StoreClient(sample_store)


@pytest.fixture
def server(sample_store):
    with ConfigTreeServer(sample_store) as running:
        yield running


@pytest.fixture
def client(server):
    connected = connect(server.host, server.port, connect_timeout_ms=2000, io_timeout_ms=2000)
    yield connected
    disconnect(connected)
