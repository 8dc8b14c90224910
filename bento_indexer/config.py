"""Indexer configuration: the TOML file, command-line arguments and how they combine."""

from __future__ import annotations

import argparse
import tomllib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_BLOCK_PROCESSOR = "block"
DEFAULT_EVENT_PROCESSOR = "event"
DEFAULT_TX_PROCESSOR = "tx"

DEFAULT_CONFIG_PATH = "config.toml"
NETWORKS = ("devnet", "testnet", "mainnet")

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or does not describe a valid config."""


@dataclass
class WorkerConfig:
    database_url: str
    network: str
    start: int
    step: int
    request_interval: int
    rpc_url: str | None = None
    stop: int | None = None
    workers: int | None = None
    chunk_size: int | None = None


@dataclass
class ServerConfig:
    port: str


@dataclass
class BackfillConfig:
    request_interval: int
    start: int | None = None
    stop: int | None = None


@dataclass
class ProcessorTypeConfig:
    name: str
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class Config:
    worker: WorkerConfig
    server: ServerConfig
    backfill: BackfillConfig
    processors: dict[str, ProcessorTypeConfig] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        """Build a config from a parsed TOML document, validating every field."""
        if not isinstance(data, Mapping):
            raise ConfigError("configuration must be a table")
        worker = _require_table(data, "worker")
        server = _require_table(data, "server")
        backfill = _require_table(data, "backfill")
        processors = _optional_table(data, "processors")

        return cls(
            worker=WorkerConfig(
                database_url=_string(worker, "database_url", "worker"),
                rpc_url=_optional_string(worker, "rpc_url", "worker"),
                network=_string(worker, "network", "worker"),
                start=_integer(worker, "start", "worker", _U64_MAX),
                stop=_optional_integer(worker, "stop", "worker", _U64_MAX),
                step=_integer(worker, "step", "worker", _U64_MAX),
                request_interval=_integer(worker, "request_interval", "worker", _U64_MAX),
                workers=_optional_integer(worker, "workers", "worker", _U32_MAX),
                chunk_size=_optional_integer(worker, "chunk_size", "worker", _U32_MAX),
            ),
            server=ServerConfig(port=_string(server, "port", "server")),
            backfill=BackfillConfig(
                start=_optional_integer(backfill, "start", "backfill", _U64_MAX),
                stop=_optional_integer(backfill, "stop", "backfill", _U64_MAX),
                request_interval=_integer(backfill, "request_interval", "backfill", _U64_MAX),
            ),
            processors=None if processors is None else _processors(processors),
        )


@dataclass
class CliArgs:
    config_path: str = DEFAULT_CONFIG_PATH
    network: str | None = None


@dataclass
class BackfillArgs:
    config_path: str = DEFAULT_CONFIG_PATH
    processor_name: str | None = None
    network: str | None = None
    start: int | None = None
    stop: int | None = None


@dataclass
class BackfillStatusArgs:
    processor_name: str
    network: str
    config_path: str = DEFAULT_CONFIG_PATH


def _require_table(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    table = _optional_table(data, key)
    if table is None:
        raise ConfigError(f"missing table `{key}`")
    return table


def _optional_table(data: Mapping[str, Any], key: str) -> Mapping[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ConfigError(f"`{key}` must be a table")
    return value


def _optional_string(table: Mapping[str, Any], key: str, section: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"`{section}.{key}` must be a string")
    return value


def _string(table: Mapping[str, Any], key: str, section: str) -> str:
    value = _optional_string(table, key, section)
    if value is None:
        raise ConfigError(f"missing field `{section}.{key}`")
    return value


def _optional_integer(
    table: Mapping[str, Any], key: str, section: str, maximum: int
) -> int | None:
    value = table.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"`{section}.{key}` must be an integer")
    if not 0 <= value <= maximum:
        raise ConfigError(f"`{section}.{key}` must be between 0 and {maximum}, got {value}")
    return value


def _integer(table: Mapping[str, Any], key: str, section: str, maximum: int) -> int:
    value = _optional_integer(table, key, section, maximum)
    if value is None:
        raise ConfigError(f"missing field `{section}.{key}`")
    return value


def _processors(table: Mapping[str, Any]) -> dict[str, ProcessorTypeConfig]:
    processors = {}
    for processor_type, entry in table.items():
        section = f"processors.{processor_type}"
        if not isinstance(entry, Mapping):
            raise ConfigError(f"`{section}` must be a table")
        extra = {key: value for key, value in entry.items() if key != "name"}
        processors[processor_type] = ProcessorTypeConfig(
            name=_string(entry, "name", section), config=extra
        )
    return processors


def load_config(path: str | Path) -> Config:
    """Read and validate the TOML configuration file at ``path``."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read config file: {exc}") from exc
    try:
        return Config.from_dict(tomllib.loads(content))
    except (tomllib.TOMLDecodeError, ConfigError) as exc:
        raise ConfigError(f"Failed to parse config file: {exc}") from exc


def config_from_args(args: CliArgs | BackfillArgs | BackfillStatusArgs) -> Config:
    """Load the file named by ``args`` and apply the overrides the arguments carry."""
    config = load_config(args.config_path)
    match args:
        case BackfillStatusArgs():
            config.worker.network = args.network
        case BackfillArgs():
            if args.start is not None:
                config.backfill.start = args.start
            if args.stop is not None:
                config.backfill.stop = args.stop
        case CliArgs():
            if args.network is not None:
                config.worker.network = args.network
        case _:
            raise TypeError(f"unsupported argument type: {type(args).__name__}")
    return config


def _timestamp(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timestamp: {text!r}") from None
    if not 0 <= value <= _U64_MAX:
        raise argparse.ArgumentTypeError(f"timestamp out of range: {text!r}")
    return value


def _add_config_path(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c", "--config-path", default=DEFAULT_CONFIG_PATH, help="Path to the config file"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cli", description="A CLI tool with server, worker, and backfill modes"
    )
    commands = parser.add_subparsers(dest="command", required=True)
    run = commands.add_parser("run", help="Run the indexer in one of its modes")
    modes = run.add_subparsers(dest="mode", required=True)

    for name in ("server", "worker"):
        mode = modes.add_parser(name)
        _add_config_path(mode)
        mode.add_argument(
            "-n", "--network", choices=NETWORKS, help="Override the network in the config file"
        )

    backfill = modes.add_parser("backfill")
    _add_config_path(backfill)
    backfill.add_argument("-p", "--processor", dest="processor_name", help="Processor to backfill")
    backfill.add_argument("-n", "--network", choices=NETWORKS, help="Network to backfill for")
    backfill.add_argument("--start", type=_timestamp, help="Start timestamp")
    backfill.add_argument("--stop", type=_timestamp, help="Stop timestamp")

    status = modes.add_parser("backfill-status")
    _add_config_path(status)
    status.add_argument(
        "-p", "--processor", dest="processor_name", required=True, help="Processor to check"
    )
    status.add_argument(
        "-n", "--network", choices=NETWORKS, required=True, help="Network to check"
    )
    return parser


def parse_args(
    argv: Sequence[str] | None = None,
) -> tuple[str, CliArgs | BackfillArgs | BackfillStatusArgs]:
    """Parse the command line into the run mode and its arguments."""
    ns = _build_parser().parse_args(argv)
    match ns.mode:
        case "backfill":
            args: CliArgs | BackfillArgs | BackfillStatusArgs = BackfillArgs(
                config_path=ns.config_path,
                processor_name=ns.processor_name,
                network=ns.network,
                start=ns.start,
                stop=ns.stop,
            )
        case "backfill-status":
            args = BackfillStatusArgs(
                config_path=ns.config_path,
                processor_name=ns.processor_name,
                network=ns.network,
            )
        case _:
            args = CliArgs(config_path=ns.config_path, network=ns.network)
    return ns.mode, args