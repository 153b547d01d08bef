import socket

import pytest

from intent_harness.config import HarnessSettings
from intent_harness.core.session import SessionAddress, new_session_id
from intent_harness.preflight import check_endpoint_running
from intent_harness.service.grpc_server import SessionsServiceImpl, create_server

HOST = "localhost"


def _start(servicer):
    server, port = create_server(f"{HOST}:0", servicer)
    server.start()
    return server, port


@pytest.fixture(scope="module")
def mock_server():
    """In-process mock backend answering streams in request order."""
    server, port = _start(SessionsServiceImpl())
    yield port
    server.stop(grace=None)


@pytest.fixture(scope="module")
def reversing_server():
    """Mock backend that answers streams last-first."""
    server, port = _start(SessionsServiceImpl(reverse_stream=True))
    yield port
    server.stop(grace=None)


def make_settings(port):
    return HarnessSettings(host=HOST, port=port, _env_file=None)


@pytest.fixture
def settings(mock_server):
    settings = make_settings(mock_server)
    check_endpoint_running(settings.host, settings.port)
    return settings


@pytest.fixture
def session(settings):
    return SessionAddress.build(
        settings.project_id, settings.location_id, settings.agent_id, new_session_id()
    )


@pytest.fixture
def reversing_settings(reversing_server):
    return make_settings(reversing_server)


@pytest.fixture
def unused_port():
    """A port that was free a moment ago; nothing listens on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]
