import re
import time

import pytest

from thermolink.sensor import (
    IntervalTimer,
    SensorError,
    get_devid,
    get_temperature,
    local_time,
)


def _make_chip(base, name, content):
    chip = base / name
    chip.mkdir()
    (chip / "w1_slave").write_text(content)


def test_devid_default():
    assert get_devid() == "RPI@0520"


def test_devid_pads_to_four_digits():
    assert get_devid(7) == "RPI@0007"


def test_devid_longer_serial_not_cut():
    assert get_devid(12345) == "RPI@12345"


def test_temperature_read(tmp_path):
    _make_chip(tmp_path, "28-0000test01", "aa bb : crc=aa YES\naa bb t=23125\n")
    assert get_temperature(tmp_path) == 23.125


def test_negative_temperature(tmp_path):
    _make_chip(tmp_path, "28-0000test01", "crc YES\nt=-1500\n")
    assert get_temperature(tmp_path) == -1.5


def test_other_devices_ignored(tmp_path):
    (tmp_path / "w1_bus_master1").mkdir()
    _make_chip(tmp_path, "28-0000test02", "t=20000\n")
    assert get_temperature(tmp_path) == 20.0


def test_missing_directory(tmp_path):
    with pytest.raises(SensorError):
        get_temperature(tmp_path / "absent")


def test_no_chip(tmp_path):
    (tmp_path / "w1_bus_master1").mkdir()
    with pytest.raises(SensorError, match="chipset"):
        get_temperature(tmp_path)


def test_no_reading(tmp_path):
    _make_chip(tmp_path, "28-0000test03", "crc NO\n")
    with pytest.raises(SensorError, match="t="):
        get_temperature(tmp_path)


def test_chip_without_slave_file(tmp_path):
    (tmp_path / "28-0000test04").mkdir()
    with pytest.raises(SensorError):
        get_temperature(tmp_path)


def test_local_time_format_and_round_trip():
    stamp = 1_000_000_000
    text = local_time(stamp)
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", text)
    assert int(time.mktime(time.strptime(text, "%Y-%m-%d %H:%M:%S"))) == stamp


def test_local_time_now_has_fixed_length():
    assert len(local_time()) == 19


def test_interval_timer_fires_and_resets():
    timer = IntervalTimer(3, last=0)
    assert timer.ready(2) is False
    assert timer.ready(3) is True
    assert timer.last == 3
    assert timer.ready(5) is False
    assert timer.ready(6) is True


def test_interval_timer_first_call_with_zero_last():
    timer = IntervalTimer(1)
    assert timer.ready() is True
    assert timer.ready() is False