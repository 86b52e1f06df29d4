import socket

import pytest

from thermolink.client import (
    DEFAULT_INTERVAL,
    main,
    parse_args,
    send_packet,
    upload_cached_packets,
)
from thermolink.logger import Logger, LogLevel
from thermolink.netclient import ClientSocket
from thermolink.packet import Packet, packet_to_json
from thermolink.storage import PacketStore

P1 = Packet("RPI@0001", "2025-01-01 10:00:00", 20.25)
P2 = Packet("RPI@0001", "2025-01-01 10:00:03", 18.5)
P3 = Packet("RPI@0001", "2025-01-01 10:00:06", -1.75)


@pytest.fixture
def link():
    with socket.create_server(("127.0.0.1", 0)) as listener:
        sock = ClientSocket("127.0.0.1", listener.getsockname()[1])
        sock.connect()
        conn, _ = listener.accept()
        conn.settimeout(5)
        yield sock, conn
        sock.close()
        conn.close()


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "client.log"


@pytest.fixture
def logger(log_path):
    log = Logger(log_path, LogLevel.DEBUG, 0, False)
    yield log
    log.close()


@pytest.fixture
def store(tmp_path):
    with PacketStore(tmp_path / "client.db") as packets:
        yield packets


def test_send_packet_writes_json_line(link, logger, log_path):
    sock, conn = link
    send_packet(sock, P1, logger)
    line = conn.makefile("rb").readline()
    assert line == packet_to_json(P1).encode()
    assert "send json:" in log_path.read_text()


def test_send_packet_unconnected_raises_and_closes(logger, log_path):
    sock = ClientSocket("127.0.0.1", 9)
    with pytest.raises(OSError):
        send_packet(sock, P1, logger)
    assert sock.check_connected() is False
    assert "send packet failed" in log_path.read_text()


def test_send_packet_too_long_raises(link, logger):
    sock, _ = link
    with pytest.raises(ValueError):
        send_packet(sock, Packet("x" * 300, P1.time, P1.temperature), logger)
    assert sock.connected is True


def test_upload_cached_packets_respects_limit_and_order(link, logger, store):
    sock, conn = link
    for packet in (P1, P2, P3):
        store.insert(packet)
    assert upload_cached_packets(store, sock, logger) == 2
    reader = conn.makefile("rb")
    assert [reader.readline(), reader.readline()] == [
        packet_to_json(P1).encode(),
        packet_to_json(P2).encode(),
    ]
    assert store.count() == 1
    assert store.pop() == P3


def test_upload_cached_packets_custom_limit(link, logger, store):
    sock, _ = link
    for packet in (P1, P2, P3):
        store.insert(packet)
    assert upload_cached_packets(store, sock, logger, 5) == 3
    assert store.count() == 0


def test_upload_failure_puts_packet_back(logger, store, log_path):
    sock = ClientSocket("127.0.0.1", 9)
    store.insert(P1)
    store.insert(P2)
    assert upload_cached_packets(store, sock, logger) == 0
    assert store.count() == 2
    assert [store.pop(), store.pop()] == [P2, P1]
    assert "reupload failed" in log_path.read_text()


def test_upload_empty_store_sends_nothing(link, logger, store):
    sock, _ = link
    assert upload_cached_packets(store, sock, logger) == 0
    assert store.count() == 0


def test_parse_args_defaults_interval():
    options = parse_args(["-i", "example.com", "-p", "8900"])
    assert (options.host, options.port, options.interval) == (
        "example.com",
        8900,
        DEFAULT_INTERVAL,
    )


def test_parse_args_long_options():
    options = parse_args(["--ipaddr=example.com", "--port", "8900", "--time=5"])
    assert (options.host, options.port, options.interval) == ("example.com", 8900, 5)


def test_parse_args_port_uses_leading_digits():
    options = parse_args(["-p", " 12abc", "-i", "example.com"])
    assert options.port == 12


@pytest.mark.parametrize(
    "argv",
    [
        ["-p", "8900"],
        ["-i", "example.com"],
        ["-i", "example.com", "-p", "abc"],
        ["-i", "example.com", "-p", "8900", "-t", "0"],
    ],
)
def test_parse_args_rejects_incomplete(argv):
    with pytest.raises(ValueError):
        parse_args(argv)


@pytest.mark.parametrize("argv", [["-h"], ["--help"], ["--bogus"], ["-i"]])
def test_parse_args_help_or_unknown(argv):
    assert parse_args(argv) is None


def test_main_help_returns_zero(capsys):
    assert main(["-h"]) == 0
    assert "--port <port>" in capsys.readouterr().out


def test_main_missing_server_returns_error(capsys):
    assert main(["-p", "8900"]) == -1
    assert "--ipaddr" in capsys.readouterr().out