"""Temperature client: samples the sensor, uploads packets and caches them while offline."""

from __future__ import annotations

import getopt
import re
import signal
import sys
import threading
from dataclasses import dataclass
from typing import Sequence

from thermolink.logger import Logger, LogLevel
from thermolink.netclient import ClientSocket
from thermolink.packet import Packet, packet_to_json, sample_packet
from thermolink.sensor import IntervalTimer, SensorError
from thermolink.storage import PacketStore, StorageError

DEFAULT_INTERVAL = 3
CLIENT_DB_FILE = "../etc/client.db"
JSON_BUF_SIZE = 256
REUPLOAD_INTERVAL = 1
MAX_REUPLOAD_ONCE = 2
_IDLE_SECONDS = 0.1

_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")


def _atoi(text: str) -> int:
    """Parse the leading integer of ``text``; 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class _Options:
    host: str
    port: int
    interval: int = DEFAULT_INTERVAL


def _print_usage(progname: str) -> None:
    print(f"{progname} usage:")
    print(" -i, --ipaddr <ip/domain>   server IP address or domain")
    print(" -p, --port <port>          server port")
    print(f" -t, --time <seconds>       sample interval, default {DEFAULT_INTERVAL}")
    print(" -h, --help                 show this help")


def send_packet(sock: ClientSocket, packet: Packet, logger: Logger) -> None:
    """Send one packet as a JSON line.

    Raises ValueError if the encoded packet is too long, and OSError if the
    send fails, in which case the connection is closed.
    """
    payload = packet_to_json(packet).encode()
    if len(payload) >= JSON_BUF_SIZE:
        logger.error(f"packet_to_json failed: {len(payload)} bytes\n")
        raise ValueError(f"encoded packet too long: {len(payload)} bytes")
    try:
        sock.send(payload)
    except OSError as exc:
        logger.warn(f"send packet failed: {exc}\n")
        sock.close()
        raise
    logger.info(f"send json: {payload.decode()}")


def upload_cached_packets(
    store: PacketStore,
    sock: ClientSocket,
    logger: Logger,
    limit: int = MAX_REUPLOAD_ONCE,
) -> int:
    """Send up to ``limit`` cached packets, oldest first; return how many were sent.

    A packet that cannot be sent is put back into the store and uploading stops.
    """
    uploaded = 0
    while uploaded < limit:
        try:
            if store.count() <= 0:
                break
            packet = store.pop()
        except StorageError:
            logger.warn("read cached packet failed\n")
            break

        try:
            send_packet(sock, packet, logger)
        except (OSError, ValueError):
            try:
                store.insert(packet)
            except StorageError as exc:
                logger.error(f"save packet again failed: {exc}\n")
            logger.warn("reupload failed, packet saved again\n")
            break

        uploaded += 1
        logger.info("cached packet reuploaded\n")
    return uploaded


def parse_args(argv: Sequence[str]) -> _Options | None:
    """Parse command-line options.

    Returns None when help is asked for or an option is not recognised;
    raises ValueError when the server, port or interval is missing or invalid.
    """
    try:
        opts, _ = getopt.gnu_getopt(
            list(argv), "i:p:t:h", ["ipaddr=", "port=", "time=", "help"]
        )
    except getopt.GetoptError:
        return None

    host: str | None = None
    port = 0
    interval = DEFAULT_INTERVAL
    for flag, value in opts:
        if flag in ("-i", "--ipaddr"):
            host = value
        elif flag in ("-p", "--port"):
            port = _atoi(value)
        elif flag in ("-t", "--time"):
            interval = _atoi(value)
        else:
            return None

    if not host or not port or interval <= 0:
        raise ValueError("server address, port and a positive interval are required")
    return _Options(host=host, port=port, interval=interval)


def _run(options: _Options, store: PacketStore, logger: Logger, stop: threading.Event) -> None:
    sock = ClientSocket(options.host, options.port)
    logger.info(
        f"client started, server={options.host}:{options.port} "
        f"interval={options.interval}\n"
    )
    sample_timer = IntervalTimer(options.interval)
    reupload_timer = IntervalTimer(REUPLOAD_INTERVAL)

    try:
        while not stop.is_set():
            connected = sock.check_connected()
            if not connected:
                try:
                    sock.connect()
                except (OSError, ValueError):
                    connected = False
                else:
                    connected = True
                    logger.info(f"connected to server {sock.host}:{sock.port}\n")

            if connected and reupload_timer.ready():
                upload_cached_packets(store, sock, logger)
                connected = sock.check_connected()

            if sample_timer.ready():
                try:
                    packet = sample_packet()
                except SensorError:
                    logger.warn("sample temperature failed\n")
                    continue

                if connected:
                    try:
                        send_packet(sock, packet, logger)
                        continue
                    except (OSError, ValueError):
                        pass

                try:
                    store.insert(packet)
                except StorageError as exc:
                    logger.error(f"save packet failed: {exc}\n")
                logger.warn("server offline, packet saved into sqlite\n")

            stop.wait(_IDLE_SECONDS)
    finally:
        sock.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the client until interrupted; return the process exit status."""
    progname = sys.argv[0] if sys.argv and sys.argv[0] else "thermolink-client"
    if argv is None:
        argv = sys.argv[1:]

    try:
        options = parse_args(argv)
    except ValueError:
        _print_usage(progname)
        return -1
    if options is None:
        _print_usage(progname)
        return 0
    if not 0 < options.port <= 65535:
        _print_usage(progname)
        return -1

    logger = Logger("console", LogLevel.DEBUG, 0, False)
    stop = threading.Event()

    def _handle_signal(signum: int, frame: object) -> None:
        stop.set()

    previous = {
        sig: signal.signal(sig, _handle_signal) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        try:
            store = PacketStore(CLIENT_DB_FILE)
        except StorageError:
            logger.error(f"open database {CLIENT_DB_FILE} failed\n")
            return -2
        with store:
            _run(options, store, logger, stop)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        logger.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())