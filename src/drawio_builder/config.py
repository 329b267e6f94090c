"""
Server configuration from command-line flags and environment variables.

Precedence is CLI flag, then environment variable, then default.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence


TRANSPORTS = ("stdio", "http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

DEFAULT_TRANSPORT = "stdio"
DEFAULT_HTTP_PORT = 8080
DEFAULT_LOG_LEVEL = "WARNING"


class ConfigError(ValueError):
    """Raised for an invalid flag or environment value."""


class _ConfigArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # argparse callback
        raise ConfigError(message)


@dataclass(frozen=True)
class ServerConfig:
    transport: str = DEFAULT_TRANSPORT
    http_port: int = DEFAULT_HTTP_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    diagrams_dir: Optional[Path] = None

    def resolve_path(self, file_path: str) -> Path:
        """Anchor relative save/load paths at ``diagrams_dir`` when one is set."""
        path = Path(file_path).expanduser()
        if not path.is_absolute() and self.diagrams_dir is not None:
            path = self.diagrams_dir / path
        return path


def _build_parser() -> argparse.ArgumentParser:
    parser = _ConfigArgumentParser(
        prog="drawio-builder-mcp",
        description="MCP server for building draw.io diagrams.",
    )
    parser.add_argument("--transport", help="stdio (default) or http")
    parser.add_argument("--http-port", help=f"port for the http transport (default {DEFAULT_HTTP_PORT})")
    parser.add_argument("--log-level", help=f"one of {', '.join(LOG_LEVELS)} (default {DEFAULT_LOG_LEVEL})")
    parser.add_argument("--diagrams-dir", help="base directory for relative save/load paths")
    return parser


def parse_transport(value: str) -> str:
    normalized = value.strip().lower()
    if normalized not in TRANSPORTS:
        raise ConfigError(
            f"Invalid transport '{value}'. Supported transports: {', '.join(TRANSPORTS)}"
        )
    return normalized


def parse_http_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"Invalid port number '{value}'. Port must be a number") from None
    if not 1 <= port <= 65535:
        raise ConfigError(f"Invalid port number '{value}'. Port must be between 1 and 65535")
    return port


def parse_log_level(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{value}'. Supported levels: {', '.join(LOG_LEVELS)}"
        )
    return normalized


def parse_config(
    argv: Optional[Sequence[str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ServerConfig:
    """Build a :class:`ServerConfig`.

    Args:
        argv: Command-line arguments without the program name.  Defaults to
            ``sys.argv[1:]``.
        env: Environment mapping.  Defaults to ``os.environ``.

    Raises:
        ConfigError: a flag or environment value is invalid.
    """
    if env is None:
        env = os.environ
    args = _build_parser().parse_args(argv)

    transport = args.transport if args.transport is not None else env.get("TRANSPORT")
    http_port = args.http_port if args.http_port is not None else env.get("HTTP_PORT")
    log_level = args.log_level if args.log_level is not None else env.get("LOG_LEVEL")
    diagrams_dir = args.diagrams_dir if args.diagrams_dir is not None else env.get("DIAGRAMS_DIR")

    return ServerConfig(
        transport=parse_transport(transport) if transport else DEFAULT_TRANSPORT,
        http_port=parse_http_port(http_port) if http_port else DEFAULT_HTTP_PORT,
        log_level=parse_log_level(log_level) if log_level else DEFAULT_LOG_LEVEL,
        diagrams_dir=Path(diagrams_dir).expanduser() if diagrams_dir else None,
    )
