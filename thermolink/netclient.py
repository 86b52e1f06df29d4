"""TCP client socket that resolves its server name on every connect."""

from __future__ import annotations

import socket

MAX_HOST_LEN = 63


def resolve(domain: str) -> str:
    """Resolve ``domain`` to its first IPv4 address in dotted form."""
    try:
        infos = socket.getaddrinfo(domain, None, socket.AF_INET, socket.SOCK_STREAM)
    except (OSError, UnicodeError) as exc:
        raise OSError(f"resolve {domain!r} failed: {exc}") from exc
    if not infos:
        raise OSError(f"resolve {domain!r} failed: no address")
    return infos[0][4][0]


def _parse_ipv4(host: str) -> str:
    """Normalise an IPv4 address string, accepting the forms inet_aton accepts."""
    try:
        return socket.inet_ntoa(socket.inet_aton(host))
    except (OSError, UnicodeError, ValueError) as exc:
        raise ValueError(f"invalid server IP {host!r}") from exc


class ClientSocket:
    """A TCP connection to ``host:port`` that can be dropped and re-established."""

    def __init__(self, host: str | None, port: int) -> None:
        if not 0 < port <= 65535:
            raise ValueError(f"invalid port {port}")
        self.domain = (host or "")[:MAX_HOST_LEN]
        self.host = ""
        self.port = port
        self.connected = False
        self._sock: socket.socket | None = None

    def close(self) -> None:
        """Close the connection if there is one and mark it disconnected."""
        if self._sock is not None:
            self._sock.close()
        self._sock = None
        self.connected = False

    def connect(self) -> None:
        """Drop any old connection, resolve the server name and connect again.

        Raises ValueError if the server address is not a usable IPv4 address
        and OSError if the connection fails.
        """
        self.close()
        try:
            self.host = resolve(self.domain)
        except OSError:
            self.host = self.domain
        address = _parse_ipv4(self.host)

        conn = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            conn.connect((address, self.port))
        except OSError:
            conn.close()
            raise
        self._sock = conn
        self.connected = True

    def check_connected(self) -> bool:
        """Return whether the connection is still up, noting a pending socket error."""
        if self._sock is None:
            self.connected = False
            return False
        try:
            error = self._sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError:
            error = -1
        if error != 0:
            self.connected = False
            return False
        return self.connected

    def send(self, data: bytes | str) -> int:
        """Send all of ``data`` and return how many bytes were sent."""
        if self._sock is None:
            raise ConnectionError("socket is not connected")
        payload = data.encode() if isinstance(data, str) else bytes(data)
        self._sock.sendall(payload)
        return len(payload)