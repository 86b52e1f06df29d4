[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "thermolink"
version = "0.1.0"
description = "DS18B20 temperature sampling client with offline SQLite caching, and a TCP collection server"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "ds18b20",
    "1-wire",
    "temperature",
    "sensor",
    "sqlite",
    "tcp",
    "telemetry",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
thermolink-client = "thermolink.client:main"
thermolink-server = "thermolink.server:main"

[tool.hatch.build.targets.wheel]
packages = ["thermolink"]

[tool.pytest.ini_options]
addopts = "-ra"
