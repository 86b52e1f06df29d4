# thermolink

thermolink collects temperature readings from a DS18B20 1-wire sensor and
ships them to a central server over TCP.

- **The client** samples the sensor at a fixed interval, stamps each reading
  with a device id and the local time, and sends it to the server as one line
  of JSON. When the server is unreachable, readings are kept in a local SQLite
  database and sent again, oldest first, once the connection is back.
- **The server** listens on a TCP port, accepts clients, parses each incoming
  packet and stores it in its own SQLite database.

## Installation

```
pip install .
```

Only the Python standard library is needed. To run the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
thermolink-server -p 8900
```

| option              | meaning                          |
|---------------------|----------------------------------|
| `-p, --port PORT`   | port to listen on (required)     |
| `-b, --daemon`      | detach and run in the background |
| `-h, --help`        | show help                        |

The server listens on all IPv4 addresses. Readings are written to `server.db`
in the working directory, in a table named `temperature` with the columns
`ID`, `TIME` and `TEMP`. Up to 1023 clients are served at once; further
connections are refused. Stop the server with Ctrl-C or SIGTERM.

## Running the client

```
thermolink-client -i 127.0.0.1 -p 8900 -t 3
```

| option                     | meaning                                     |
|----------------------------|---------------------------------------------|
| `-i, --ipaddr HOST`        | server IP address or domain name (required) |
| `-p, --port PORT`          | server port, 1–65535 (required)             |
| `-t, --time SECONDS`       | sampling interval, default 3                |
| `-h, --help`               | show help                                   |

The client reads the sensor through the kernel's 1-wire interface under
`/sys/bus/w1/devices/`, using a device whose name contains `28-`. The server
name is resolved again on every connection attempt. Readings that cannot be
delivered are cached in `../etc/client.db` (relative to the working
directory); while connected, up to two cached readings are re-sent each
second. Log records go to standard error. Stop the client with Ctrl-C or
SIGTERM.

## Wire format

Each reading travels as one line of JSON:

```
{"id":"RPI@0000","time":"2025-01-01 12:00:00","temperature":23.50}
```

The temperature is sent with two decimal places. The server looks up the
`id`, `time` and `temperature` keys in whatever it receives; a message
missing any of them is reported and dropped.

## Using the pieces in code

- `thermolink.sensor` – `get_devid`, `get_temperature` (raises
  `SensorError`), `local_time` and `IntervalTimer`.
- `thermolink.packet` – the `Packet` dataclass, `sample_packet`,
  `packet_to_json`, `packet_from_json` (raises `PacketError`) and
  `get_object_item` for pulling one value out of a flat JSON object.
- `thermolink.storage` – `PacketStore`, a first-in first-out SQLite queue of
  packets with `insert`, `count` and `pop`; errors raise `StorageError`.
- `thermolink.sqlstore` – `SqlStore`, a lower-level SQLite wrapper over the
  same `temperature` table with `execute`, `select`, `write_packet`, `count`,
  `read_packet`, `pop_blob` and `delete_first`.
- `thermolink.logger` – `Logger` with levels from `LogLevel`, logging to the
  console or to a file that is copied to `<file>.bak` and emptied when it
  reaches its size limit; `format_hexdump` renders bytes as a hex dump.
- `thermolink.netclient` – `resolve` and `ClientSocket` for connecting,
  checking and sending.
- `thermolink.tcpclient` – `resolve_ipv4` and `TcpClient`, which resolves the
  server once and checks the connection through the TCP state.
- `thermolink.client` – `send_packet`, `upload_cached_packets`,
  `parse_args` and `main`.
- `thermolink.server` – `server_socket`, `handle_client_data`, `serve`,
  `parse_args` and `main`.

```python
from thermolink.packet import Packet, packet_to_json
from thermolink.storage import PacketStore

with PacketStore("cache.db") as store:
    store.insert(Packet(id="sensor-a", time="2025-01-01 12:00:00", temperature=21.5))
    oldest = store.pop()
    print(packet_to_json(oldest))
```

## Limitations

- The server treats each read from a client (up to 1023 bytes) as one
  packet; it does not split a stream into lines, so several packets arriving
  together are not each stored.
- The server only stores readings; it has no way to query or display them.
- Reading the sensor needs a Linux system with the 1-wire interface.