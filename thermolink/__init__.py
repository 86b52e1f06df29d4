"""DS18B20 temperature sampling client, SQLite packet cache and TCP collection server."""

__version__ = "0.1.0"