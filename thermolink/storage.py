"""SQLite cache of temperature packets waiting to be uploaded."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from thermolink.packet import FIELD_LIMIT, Packet
from thermolink.sensor import _to_float32

TA_NAME = "temperature"
CREATE_SQL = (
    f"create table if not exists {TA_NAME}("
    "COUNT integer primary key autoincrement,"
    "ID text not null,"
    "TIME datetime not null,"
    "TEMP real not null"
    ")"
)


class StorageError(Exception):
    """Raised when the packet database cannot be opened, read or changed."""


class PacketStore:
    """A first-in, first-out store of packets in a SQLite ``temperature`` table."""

    def __init__(self, filename: str | Path) -> None:
        self.filename = str(filename)
        try:
            self._db: sqlite3.Connection | None = sqlite3.connect(
                self.filename, isolation_level=None
            )
            self._db.execute("pragma synchronous = OFF;")
            self._db.execute("pragma auto_vacuum = 2;")
        except sqlite3.Error as exc:
            self._db = None
            raise StorageError(f"Cannot open database: {exc}") from exc
        try:
            self._db.execute(CREATE_SQL)
        except sqlite3.Error as exc:
            self.close()
            raise StorageError(f"create table failed: {exc}") from exc

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._db is None:
            raise StorageError(f"database '{self.filename}' is closed")
        return self._db

    def close(self) -> None:
        """Close the database; closing twice is harmless."""
        if self._db is not None:
            self._db.close()
            self._db = None

    def insert(self, packet: Packet) -> None:
        """Append a packet to the end of the queue."""
        try:
            self._conn.execute(
                f"insert into {TA_NAME}(ID,TIME,TEMP) values(?,?,?);",
                (packet.id, packet.time, _to_float32(packet.temperature)),
            )
        except sqlite3.Error as exc:
            raise StorageError(f"insert packet failed: {exc}") from exc

    def count(self) -> int:
        """Return how many packets are cached."""
        try:
            row = self._conn.execute(f"select count(*) from {TA_NAME};").fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"count packets failed: {exc}") from exc
        return int(row[0]) if row and row[0] is not None else 0

    def pop(self) -> Packet:
        """Remove and return the oldest cached packet."""
        conn = self._conn
        try:
            row = conn.execute(
                f"select ID,TIME,TEMP from {TA_NAME} order by COUNT limit 1;"
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"read cached packet failed: {exc}") from exc
        if row is None:
            raise StorageError("no cached packet")

        packet = Packet(
            id=str(row[0])[:FIELD_LIMIT],
            time=str(row[1])[:FIELD_LIMIT],
            temperature=_to_float32(float(row[2])),
        )
        try:
            conn.execute(
                f"delete from {TA_NAME} where COUNT = "
                f"(select COUNT from {TA_NAME} order by COUNT limit 1);"
            )
        except sqlite3.Error as exc:
            raise StorageError(f"delete cached packet failed: {exc}") from exc
        return packet

    def __enter__(self) -> PacketStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()