"""Temperature collection server: accepts clients and stores the packets they send."""

from __future__ import annotations

import getopt
import os
import re
import selectors
import signal
import socket
import sys
import threading
from dataclasses import dataclass
from typing import Sequence

from thermolink.packet import PacketError, packet_from_json
from thermolink.storage import PacketStore, StorageError

SERVER_DB_FILE = "server.db"
LISTEN_BACKLOG = 13
RECV_SIZE = 1023
MAX_CLIENTS = 1023
_SELECT_TIMEOUT = 0.2

_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")


def _atoi(text: str) -> int:
    """Parse the leading integer of ``text``; 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class _Options:
    port: int
    daemon: bool = False


def _print_usage(progname: str) -> None:
    print(f"Usage: {progname} [OPTION]...")
    print(" -b, --daemon       run on background")
    print(" -p, --port <port>  socket server port")
    print(" -h, --help         show this help")
    print(f"\nExample: {progname} -b -p 8900")


def server_socket(listen_ip: str | None, listen_port: int) -> socket.socket:
    """Create a TCP socket listening on ``listen_ip:listen_port`` (all addresses if None).

    Raises ValueError for an address that is not dotted IPv4 and OSError if
    binding or listening fails.
    """
    if listen_ip is None:
        address = "0.0.0.0"
    else:
        try:
            socket.inet_pton(socket.AF_INET, listen_ip)
        except (OSError, ValueError) as exc:
            raise ValueError(f"invalid listen address {listen_ip!r}") from exc
        address = listen_ip

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((address, listen_port))
        sock.listen(LISTEN_BACKLOG)
    except (OSError, OverflowError):
        sock.close()
        raise
    return sock


def handle_client_data(store: PacketStore, conn: socket.socket) -> bool:
    """Read one packet from a client and store it.

    Returns False, after closing the connection, when the client has gone
    away; True otherwise, even if the data was not a valid packet.
    """
    try:
        raw = conn.recv(RECV_SIZE)
    except OSError:
        raw = b""
    if not raw:
        conn.close()
        return False

    text = raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")
    try:
        packet = packet_from_json(text)
    except PacketError:
        print(f"invalid json packet: {text}")
        return True

    print(f"recv: id={packet.id} time={packet.time} temp={packet.temperature:.2f}")
    try:
        store.insert(packet)
    except StorageError:
        print("write packet into database failed")
    return True


def _accept(listener: socket.socket, selector: selectors.BaseSelector,
            clients: set[socket.socket]) -> None:
    try:
        conn, _ = listener.accept()
    except OSError:
        return
    if len(clients) >= MAX_CLIENTS:
        print(f"client array full, refuse client[{conn.fileno()}]")
        conn.close()
        return
    print(f"accept new client[{conn.fileno()}]")
    selector.register(conn, selectors.EVENT_READ)
    clients.add(conn)


def serve(listener: socket.socket, store: PacketStore, stop_event: threading.Event) -> None:
    """Accept clients and store their packets until ``stop_event`` is set.

    Client connections are closed on return; the listener is left open.
    """
    clients: set[socket.socket] = set()
    with selectors.DefaultSelector() as selector:
        selector.register(listener, selectors.EVENT_READ)
        try:
            while not stop_event.is_set():
                for key, _ in selector.select(_SELECT_TIMEOUT):
                    if key.fileobj is listener:
                        _accept(listener, selector, clients)
                        continue
                    conn = key.fileobj
                    if not handle_client_data(store, conn):
                        try:
                            selector.unregister(conn)
                        except (KeyError, ValueError):
                            pass
                        clients.discard(conn)
        finally:
            for conn in clients:
                conn.close()


def parse_args(argv: Sequence[str]) -> _Options | None:
    """Parse command-line options.

    Returns None when help is asked for or an option is not recognised;
    raises ValueError when no port is given.
    """
    try:
        opts, _ = getopt.gnu_getopt(list(argv), "bp:h", ["daemon", "port=", "help"])
    except getopt.GetoptError:
        return None

    port = 0
    daemon = False
    for flag, value in opts:
        if flag in ("-b", "--daemon"):
            daemon = True
        elif flag in ("-p", "--port"):
            port = _atoi(value)
        else:
            return None

    if not port:
        raise ValueError("a server port is required")
    return _Options(port=port, daemon=daemon)


def _daemonize() -> None:
    """Detach into the background: fork, start a new session, drop stdio."""
    if os.fork() > 0:
        os._exit(0)
    os.setsid()
    os.chdir("/")
    devnull = os.open(os.devnull, os.O_RDWR)
    for fd in (0, 1, 2):
        os.dup2(devnull, fd)
    if devnull > 2:
        os.close(devnull)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server until interrupted; return the process exit status."""
    progname = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "thermolink-server"
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

    stop = threading.Event()

    def _handle_signal(signum: int, frame: object) -> None:
        stop.set()

    previous = {
        sig: signal.signal(sig, _handle_signal) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        try:
            listener = server_socket(None, options.port)
        except (OSError, OverflowError, ValueError):
            print(f"server listen on port {options.port} failure")
            return -2

        with listener:
            try:
                store = PacketStore(SERVER_DB_FILE)
            except StorageError:
                print(f"open database {SERVER_DB_FILE} failure")
                return -3
            with store:
                if options.daemon:
                    _daemonize()
                print(f"{progname} server listening on port {options.port}")
                serve(listener, store, stop)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return 0


if __name__ == "__main__":
    sys.exit(main())