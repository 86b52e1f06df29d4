"""DS18B20 temperature sensor access, device identity and time helpers."""

from __future__ import annotations

import re
import struct
import time
from dataclasses import dataclass
from pathlib import Path

DEFAULT_W1_DIR = "/sys/bus/w1/devices/"
DEFAULT_SERIAL = 520
CHIP_PREFIX = "28-"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_READ_SIZE = 128

_LEADING_FLOAT = re.compile(
    r"[ \t\n\v\f\r]*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)


class SensorError(Exception):
    """Raised when the temperature sensor cannot be found or read."""


def _atof(text: str) -> float:
    """Parse the leading number of ``text``; 0.0 when there is none."""
    match = _LEADING_FLOAT.match(text)
    return float(match.group(1)) if match else 0.0


def _to_float32(value: float) -> float:
    """Round a value to single precision, as the sensor reading is stored."""
    return struct.unpack("f", struct.pack("f", value))[0]


def get_devid(serial: int = DEFAULT_SERIAL) -> str:
    """Return the device id, ``RPI@`` followed by a zero-padded serial number."""
    return f"RPI@{serial:04d}"


def get_temperature(w1_dir: str | Path = DEFAULT_W1_DIR) -> float:
    """Read the temperature in degrees Celsius from a DS18B20 on the 1-wire bus."""
    base = Path(w1_dir)
    try:
        names = sorted(entry.name for entry in base.iterdir())
    except OSError as exc:
        raise SensorError(f"open folder {base} failure: {exc}") from exc

    chips = [name for name in names if CHIP_PREFIX in name]
    if not chips:
        raise SensorError("Can not find ds18b20 chipset")

    slave = base / chips[-1] / "w1_slave"
    try:
        with slave.open("rb") as fh:
            raw = fh.read(_READ_SIZE)
    except OSError as exc:
        raise SensorError(f"read {slave} failure: {exc}") from exc

    text = raw.decode("latin-1")
    pos = text.find("t=")
    if pos < 0:
        raise SensorError("Can not find t= string")
    return _to_float32(_atof(text[pos + 2:]) / 1000)


def local_time(now: float | None = None) -> str:
    """Format a timestamp (default: the current time) as local ``YYYY-MM-DD HH:MM:SS``."""
    if now is None:
        now = time.time()
    return time.strftime(TIME_FORMAT, time.localtime(now))


@dataclass
class IntervalTimer:
    """Fires once each time ``interval`` seconds have passed since the last firing."""

    interval: float
    last: float = 0.0

    def ready(self, now: float | None = None) -> bool:
        """Return True and restart the interval if it has elapsed at ``now``."""
        if now is None:
            now = time.time()
        if now >= self.last + self.interval:
            self.last = now
            return True
        return False