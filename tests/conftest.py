import logging
import socket

import pytest

from conn_checker.config import ProbeConfig
from conn_checker.models import ServerRecord


@pytest.fixture
def listener():
    """A listening TCP socket on loopback, yields its port"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("127.0.0.1", 0))
    sock.listen(64)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def closed_port():
    """A loopback port with nothing listening on it"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def fast_config():
    return ProbeConfig(connect_timeout=1.0, retry_count=3, retry_delay=0.05,
                       concurrency_limit=4, show_colors=False)


@pytest.fixture
def make_record():
    def _make(port=80, host="127.0.0.1", server_id=1, app_name="app"):
        return ServerRecord(app_name=app_name, server_id=server_id,
                            server_host=host, server_port=port)
    return _make


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
