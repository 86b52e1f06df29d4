"""Temperature packets and their JSON line wire format."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from thermolink.sensor import (
    DEFAULT_W1_DIR,
    _atof,
    _to_float32,
    get_devid,
    get_temperature,
    local_time,
)

FIELD_LIMIT = 31
_VALUE_LIMIT = 63
_KEY_LIMIT = 63
_INPUT_LIMIT = 511
_SPACE = " \t\n\v\f\r"


class PacketError(ValueError):
    """Raised when a packet cannot be decoded."""


@dataclass
class Packet:
    """One temperature sample from a device."""

    id: str
    time: str
    temperature: float


def sample_packet(w1_dir: str | Path = DEFAULT_W1_DIR) -> Packet:
    """Take a sample: device id, current local time and sensor temperature."""
    return Packet(
        id=get_devid(),
        time=local_time(),
        temperature=get_temperature(w1_dir),
    )


def packet_to_json(packet: Packet) -> str:
    """Encode a packet as one JSON line, temperature with two decimals."""
    return (
        f'{{"id":"{packet.id}","time":"{packet.time}",'
        f'"temperature":{packet.temperature:.2f}}}\n'
    )


def get_object_item(text: str, key: str) -> str | float | None:
    """Find ``key`` in a flat JSON object and return its string or number value.

    Strings are cut to 63 characters; anything not quoted is read as a number.
    Returns None if the key, its colon or a closing quote is missing.
    """
    source = text[:_INPUT_LIMIT]
    needle = f'"{key}"'[:_KEY_LIMIT]
    pos = source.find(needle)
    if pos < 0:
        return None
    colon = source.find(":", pos + len(needle))
    if colon < 0:
        return None
    rest = source[colon + 1:].lstrip(_SPACE)
    if rest.startswith('"'):
        end = rest.find('"', 1)
        if end < 0:
            return None
        return rest[1:end][:_VALUE_LIMIT]
    return _atof(rest)


def packet_from_json(text: str) -> Packet:
    """Decode a packet from the JSON line sent by a client."""
    items = {key: get_object_item(text, key) for key in ("id", "time", "temperature")}
    missing = [key for key, value in items.items() if value is None]
    if missing:
        raise PacketError(f"missing field(s): {', '.join(missing)}")

    def as_text(value: str | float | None) -> str:
        return value[:FIELD_LIMIT] if isinstance(value, str) else ""

    temperature = items["temperature"]
    return Packet(
        id=as_text(items["id"]),
        time=as_text(items["time"]),
        temperature=_to_float32(temperature if isinstance(temperature, float) else 0.0),
    )