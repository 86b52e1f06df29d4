import socket

import pytest

from thermolink.netclient import ClientSocket, resolve

BAD_NAME = "a" * 64 + ".example.com"


@pytest.fixture
def listener():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(4)
    srv.settimeout(5)
    yield srv
    srv.close()


def _closed_port():
    tmp = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    tmp.bind(("127.0.0.1", 0))
    port = tmp.getsockname()[1]
    tmp.close()
    return port


def test_resolve_numeric_address():
    assert resolve("127.0.0.1") == "127.0.0.1"


def test_resolve_failure_raises():
    with pytest.raises(OSError):
        resolve(BAD_NAME)


@pytest.mark.parametrize("port", [0, -1, 65536, 70000])
def test_invalid_port_rejected(port):
    with pytest.raises(ValueError):
        ClientSocket("127.0.0.1", port)


def test_initial_state():
    sock = ClientSocket("127.0.0.1", 8900)
    assert sock.connected is False
    assert sock.port == 8900
    assert sock.domain == "127.0.0.1"
    assert sock.check_connected() is False


def test_connect_and_send(listener):
    port = listener.getsockname()[1]
    sock = ClientSocket("127.0.0.1", port)
    sock.connect()
    try:
        assert sock.connected is True
        assert sock.host == "127.0.0.1"
        assert sock.check_connected() is True
        conn, _ = listener.accept()
        with conn:
            conn.settimeout(5)
            sent = sock.send(b"hello")
            assert sent == 5
            assert conn.recv(16) == b"hello"
    finally:
        sock.close()


def test_send_str_is_encoded(listener):
    port = listener.getsockname()[1]
    sock = ClientSocket("127.0.0.1", port)
    sock.connect()
    try:
        conn, _ = listener.accept()
        with conn:
            conn.settimeout(5)
            message = '{"id":"x"}\n'
            assert sock.send(message) == len(message)
            assert conn.recv(64) == message.encode()
    finally:
        sock.close()


def test_close_resets_state(listener):
    port = listener.getsockname()[1]
    sock = ClientSocket("127.0.0.1", port)
    sock.connect()
    sock.close()
    assert sock.connected is False
    assert sock.check_connected() is False
    sock.close()
    assert sock.connected is False


def test_send_without_connection_raises():
    sock = ClientSocket("127.0.0.1", 8900)
    with pytest.raises(ConnectionError):
        sock.send(b"data")


def test_connect_refused_raises():
    sock = ClientSocket("127.0.0.1", _closed_port())
    with pytest.raises(OSError):
        sock.connect()
    assert sock.connected is False
    assert sock.check_connected() is False


def test_unresolvable_host_is_invalid_address():
    sock = ClientSocket(BAD_NAME, 8900)
    with pytest.raises(ValueError):
        sock.connect()
    assert sock.host == BAD_NAME[:63]
    assert sock.connected is False


def test_reconnect_replaces_connection(listener):
    port = listener.getsockname()[1]
    sock = ClientSocket("127.0.0.1", port)
    sock.connect()
    sock.connect()
    try:
        assert sock.check_connected() is True
    finally:
        sock.close()