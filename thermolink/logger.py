"""Levelled logger writing to the console or a size-limited file."""

from __future__ import annotations

import contextlib
import inspect
import os
import shutil
import sys
import threading
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import TextIO

LOG_VERSION = "v0.1"
CHARS_PER_LINE = 16

_THIS_FILE = os.path.normcase(os.path.abspath(__file__))


class LogLevel(IntEnum):
    """Log levels; a logger writes messages at or below its own level."""

    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3
    TRACE = 4


_COLORS = {
    LogLevel.ERROR: "\x1b[31m",
    LogLevel.WARN: "\x1b[33m",
    LogLevel.INFO: "\x1b[32m",
    LogLevel.DEBUG: "\x1b[36m",
    LogLevel.TRACE: "\x1b[94m",
}


def _printable(byte: int) -> str:
    if 32 <= byte <= 126:
        return chr(byte)
    if byte >= 161:
        return "?"
    return " "


def format_hexdump(data: bytes) -> str:
    """Render bytes as hex dump lines: offset, 16 hex bytes, printable text."""
    lines = []
    for offset in range(0, len(data), CHARS_PER_LINE):
        chunk = data[offset:offset + CHARS_PER_LINE]
        hexpart = "".join(f"{b:02X} " for b in chunk)
        hexpart += "   " * (CHARS_PER_LINE - len(chunk))
        text = "".join(_printable(b) for b in chunk)
        lines.append(f"{offset:08X}: {hexpart}  {text}\n")
    return "".join(lines)


def _in_this_module(filename: str) -> bool:
    return os.path.normcase(os.path.abspath(filename)) == _THIS_FILE


def _caller() -> tuple[str, int]:
    frame = inspect.currentframe()
    while frame is not None and _in_this_module(frame.f_code.co_filename):
        frame = frame.f_back
    if frame is None:
        return "?", 0
    return os.path.basename(frame.f_code.co_filename), frame.f_lineno


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f ")


class Logger:
    """Writes timestamped records; a file log is backed up and emptied when full."""

    def __init__(
        self,
        filename: str | Path | None = None,
        level: LogLevel | int = LogLevel.INFO,
        max_size_kib: int = 0,
        lock: bool = False,
    ) -> None:
        self.level = LogLevel(level)
        self.max_size = max_size_kib * 1024
        self._fp: TextIO | None
        if filename is None or str(filename) in ("console", "stderr"):
            self.filename = "console"
            self._fp = sys.stderr
            self._console = True
            self.max_size = 0
        else:
            self.filename = str(filename)
            self._fp = open(self.filename, "a+", encoding="utf-8")
            self._console = False
        self._lock: contextlib.AbstractContextManager = (
            threading.RLock() if lock else contextlib.nullcontext()
        )
        self._fp.write("\n")
        self.info(
            f'logger system({LOG_VERSION}) start: file:"{self.filename}", '
            f"level:{self.level.name}, maxsize:{max_size_kib}KiB\n\n"
        )

    def close(self) -> None:
        """Stop logging and close the log file if there is one."""
        if self._fp is not None and not self._console:
            self._fp.close()
        self._fp = None

    def _emit(self, level: LogLevel, message: str, filename: str, line: int) -> None:
        assert self._fp is not None
        if self._console:
            prefix = (
                f"{_timestamp()} {_COLORS[level]}{level.name:<5}\x1b[0m "
                f"\x1b[90m{filename}:{line:03d}:\x1b[0m "
            )
        else:
            prefix = f"{_timestamp()} {level.name:<5} {filename}:{line:03d}: "
        self._fp.write(prefix + message)
        self._fp.flush()

    def _rollback(self) -> None:
        assert self._fp is not None
        if self.max_size <= 0 or self._fp.tell() < self.max_size:
            return
        self._fp.flush()
        shutil.copyfile(self.filename, self.filename + ".bak")
        self._fp.seek(0)
        self._fp.truncate(0)
        self._fp.write("\n")
        if LogLevel.INFO <= self.level:
            filename, line = _caller()
            self._emit(
                LogLevel.INFO,
                f'logger system({LOG_VERSION}) rollback: file:"{self.filename}", '
                f"level:{self.level.name}, maxsize:{self.max_size // 1024}KiB\n\n",
                filename,
                line,
            )

    def log(self, level: LogLevel | int, message: str) -> None:
        """Write ``message`` if ``level`` is enabled."""
        level = LogLevel(level)
        if self._fp is None or level > self.level:
            return
        filename, line = _caller()
        with self._lock:
            self._rollback()
            self._emit(level, message, filename, line)

    def error(self, message: str) -> None:
        self.log(LogLevel.ERROR, message)

    def warn(self, message: str) -> None:
        self.log(LogLevel.WARN, message)

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def debug(self, message: str) -> None:
        self.log(LogLevel.DEBUG, message)

    def trace(self, message: str) -> None:
        self.log(LogLevel.TRACE, message)

    def dump(self, level: LogLevel | int, prompt: str | None, data: bytes) -> None:
        """Write an optional prompt record followed by a hex dump of ``data``."""
        level = LogLevel(level)
        if self._fp is None or level > self.level:
            return
        if prompt:
            self.log(level, prompt)
        text = format_hexdump(bytes(data))
        with self._lock:
            self._fp.write(text)
            self._fp.flush()