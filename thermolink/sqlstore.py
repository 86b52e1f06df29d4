"""SQLite cache of temperature packets, driven by plain SQL statements."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from thermolink.packet import FIELD_LIMIT, Packet
from thermolink.sensor import _atof, _to_float32

TA_NAME = "temperature"
TA_CREATE = (
    f"create table if not exists {TA_NAME}"
    "("
    "COUNT integer  primary key autoincrement,"
    "ID    text     not null,"
    "TIME  datetime not null,"
    "TEMP  REAL     not null"
    ")"
)


class SqlStoreError(Exception):
    """Raised when the database cannot be opened, queried or changed."""


class SqlStore:
    """A SQLite database holding the ``temperature`` table of cached packets."""

    def __init__(self, filename: str | Path) -> None:
        self.filename = str(filename)
        try:
            self._db: sqlite3.Connection | None = sqlite3.connect(
                self.filename, isolation_level=None
            )
        except sqlite3.Error as exc:
            raise SqlStoreError(f"Cannot open database: {exc}") from exc
        self.execute("pragma synchronous = OFF; ")
        self.execute("pragma auto_vacuum = 2 ; ")

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._db is None:
            raise SqlStoreError(f"database '{self.filename}' is closed")
        return self._db

    def close(self) -> None:
        """Close the database; closing twice is harmless."""
        if self._db is None:
            return
        try:
            self._db.close()
        except sqlite3.Error as exc:
            raise SqlStoreError(f"close database '{self.filename}' failed: {exc}") from exc
        self._db = None

    def execute(self, sql: str) -> bool:
        """Run one or more SQL statements; return False if SQLite rejected them."""
        conn = self._conn
        try:
            conn.executescript(sql)
        except sqlite3.Error:
            return False
        return True

    def select(self, sql: str) -> list[tuple[Any, ...]]:
        """Run a query and return its rows; an empty list if the query fails."""
        conn = self._conn
        try:
            return conn.execute(sql).fetchall()
        except sqlite3.Error:
            return []

    def write_packet(self, packet: Packet) -> None:
        """Append a packet, its temperature rounded to two decimals."""
        conn = self._conn
        try:
            conn.execute(
                f"insert into {TA_NAME} values (NULL, ?, ?, ?);",
                (packet.id, packet.time, f"{packet.temperature:.2f}"),
            )
        except sqlite3.Error as exc:
            raise SqlStoreError(f"insert packet failed: {exc}") from exc

    def count(self) -> int:
        """Create the table if needed and return how many packets it holds."""
        self.execute(TA_CREATE)
        try:
            (value,) = self._conn.execute(f"select count(*) from {TA_NAME};").fetchone()
        except sqlite3.Error as exc:
            raise SqlStoreError(f"count packets failed: {exc}") from exc
        return int(value)

    def read_packet(self) -> Packet | None:
        """Remove and return the first cached packet, or None if there is none."""
        rows = self.select(f"select * from {TA_NAME} limit 1;")
        self.execute(
            f"delete from {TA_NAME} where rowid = (select rowid from {TA_NAME} limit 1);"
        )
        if not rows:
            return None
        row = rows[0]
        return Packet(
            id=str(row[1])[:FIELD_LIMIT],
            time=str(row[2])[:FIELD_LIMIT],
            temperature=_to_float32(_atof(str(row[3]))),
        )

    def pop_blob(self, size: int) -> bytes:
        """Return the ``packet`` column of the first row, without removing it.

        A value longer than ``size`` bytes yields an empty result.
        """
        if size <= 0:
            raise ValueError(f"invalid buffer size {size}")
        conn = self._conn
        sql = (
            f"SELECT packet FROM {TA_NAME} "
            f"WHERE rowid = (SELECT rowid FROM {TA_NAME} LIMIT 1);"
        )
        try:
            row = conn.execute(sql).fetchone()
        except sqlite3.Error as exc:
            raise SqlStoreError(f"query packet blob failed: {exc}") from exc
        if row is None or row[0] is None:
            raise SqlStoreError("no packet blob in database")
        value = row[0]
        data = bytes(value) if isinstance(value, (bytes, bytearray, memoryview)) else str(value).encode()
        if len(data) > size:
            return b""
        return data

    def delete_first(self) -> None:
        """Delete the first row of the table and vacuum the database."""
        conn = self._conn
        try:
            conn.execute(
                f"DELETE FROM {TA_NAME} WHERE rowid = (SELECT rowid FROM {TA_NAME} LIMIT 1);"
            )
        except sqlite3.Error as exc:
            raise SqlStoreError(f"delete first packet failed: {exc}") from exc
        self.execute("VACUUM;")

    def __enter__(self) -> SqlStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()