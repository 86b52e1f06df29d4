"""TCP client that resolves its server once and checks the TCP state machine."""

from __future__ import annotations

import logging
import socket

_log = logging.getLogger(__name__)

TCP_ESTABLISHED = 1
_TCP_INFO_SIZE = 104


def resolve_ipv4(domain: str) -> str:
    """Resolve ``domain`` to its first IPv4 address in dotted form."""
    try:
        address = socket.gethostbyname(domain)
    except (OSError, UnicodeError) as exc:
        raise OSError(f"resolve domain={domain} failed: {exc}") from exc
    _log.info("resolved domain=%s -> ip=%s", domain, address)
    return address


class TcpClient:
    """A TCP connection to a server whose address is resolved when created."""

    def __init__(self, host: str | None, port: int) -> None:
        if not 0 < port <= 65535:
            raise ValueError(f"invalid port {port}")
        self.port = port
        self.host = ""
        self.connected = False
        self._sock: socket.socket | None = None
        if host:
            try:
                self.host = resolve_ipv4(host)
            except OSError:
                _log.warning("resolve host=%s failed, will retry when connecting", host)

    def close(self) -> None:
        """Close the connection if there is one and mark it disconnected."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            self.connected = False

    def connect(self) -> None:
        """Drop any old connection and connect to the resolved server address.

        Raises ValueError if the stored address is not a valid IPv4 address
        and OSError if the connection fails.
        """
        self.close()
        try:
            address = socket.inet_ntoa(socket.inet_aton(self.host))
        except (OSError, UnicodeError, ValueError) as exc:
            raise ValueError(f"invalid server IP {self.host!r}") from exc

        conn = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            conn.connect((address, self.port))
        except OSError:
            conn.close()
            raise
        self._sock = conn
        self.connected = True
        _log.info("connected to %s:%d", self.host, self.port)

    def _tcp_state_ok(self, conn: socket.socket) -> bool:
        tcp_info = getattr(socket, "TCP_INFO", None)
        if tcp_info is None:
            return conn.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR) == 0
        info = conn.getsockopt(socket.IPPROTO_TCP, tcp_info, _TCP_INFO_SIZE)
        if not info:
            raise OSError("empty TCP_INFO")
        state = info[0]
        if state != TCP_ESTABLISHED:
            _log.warning("TCP state is not ESTABLISHED (state=%d)", state)
            return False
        return True

    def check_connected(self) -> bool:
        """Return True only while the TCP connection is established."""
        if self._sock is None:
            self.connected = False
            return False
        try:
            self.connected = self._tcp_state_ok(self._sock)
        except OSError:
            self.connected = False
        return self.connected