"""Upload Receiver configuration.

Settings come from four layers, highest precedence first:
  * command-line flags        (``--port``, ``--uploads-dir``, ...)
  * environment variables     (``PORT``, ``UPLOADS_DIR``, ...)
  * upload_receiver.settings.yaml (optional)
  * defaults declared on the models below
"""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("upload_receiver.settings.yaml")
SETTINGS_ENV = "UPLOAD_RECEIVER_SETTINGS"
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

# env var -> (section, key)
ENV_OVERRIDES = {
    "HOST":        ("server", "host"),
    "PORT":        ("server", "port"),
    "UPLOADS_DIR": ("storage", "uploads_dir"),
    "LOG_LEVEL":   ("logging", "level"),
}


def _load_yaml(path: Path, required: bool = False) -> Dict[str, Any]:
    if not path.exists():
        if required:
            logger.warning("Config file not found: %s", path)
        else:
            logger.debug("No settings file at %s; using defaults", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _set(data: Dict[str, Any], section: str, key: str, value: Any) -> None:
    data.setdefault(section, {})
    if data[section] is None:
        data[section] = {}
    data[section][key] = value


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:               str = "0.0.0.0"
    port:               int = 3400
    # Idle keep-alive timeout handed to uvicorn; slow links need a generous value
    keep_alive_seconds: int = 75

    @field_validator("port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {value}")
        return value


class StorageSettings(BaseModel):
    uploads_dir: Path = Field(default_factory=lambda: Path.cwd() / "uploads")

    @field_validator("uploads_dir")
    @classmethod
    def _absolute_dir(cls, value: Path) -> Path:
        value = Path(value).expanduser()
        if not value.is_absolute():
            value = Path.cwd() / value
        return value


class EventSettings(BaseModel):
    """Live refresh stream and filesystem watch."""
    debounce_ms:       int   = Field(200, ge=0)
    heartbeat_seconds: float = Field(15.0, gt=0)
    queue_size:        int   = Field(16, ge=1)
    watch:             bool  = True


class LoggingSettings(BaseModel):
    level: str = "info"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return value


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    events:  EventSettings   = Field(default_factory=EventSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="upload-receiver",
        description="Receive multipart file uploads and list them with live refresh.",
    )
    parser.add_argument("-p", "--port", type=int, default=None,
                        help="port to listen on (env PORT, default 3400)")
    parser.add_argument("-u", "--uploads-dir", default=None,
                        help="directory for stored files (env UPLOADS_DIR, default ./uploads)")
    parser.add_argument("--host", default=None,
                        help="interface to bind (env HOST, default 0.0.0.0)")
    parser.add_argument("--log-level", default=None,
                        help="logging level (env LOG_LEVEL, default info)")
    parser.add_argument("--no-watch", action="store_true",
                        help="do not watch the uploads directory for external changes")
    parser.add_argument("--config", default=None,
                        help=f"YAML settings file (env {SETTINGS_ENV})")
    return parser


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    settings_path: Optional[Union[str, Path]] = None,
) -> AppConfig:
    """Build an *AppConfig* from CLI flags, environment and settings file.

    Args:
        argv: Command-line arguments (without program name). Defaults to none,
            so embedding callers never pick up the host process's sys.argv.
        environ: Environment mapping, defaults to ``os.environ``.
        settings_path: Settings file used when neither ``--config`` nor the
            environment names one.

    Raises:
        pydantic.ValidationError: If any value is invalid.
    """
    args = build_parser().parse_args(list(argv) if argv is not None else [])
    env = os.environ if environ is None else environ

    explicit = args.config or env.get(SETTINGS_ENV) or settings_path
    data = _load_yaml(Path(explicit or SETTINGS_FILE), required=explicit is not None)

    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            _set(data, section, key, value)

    cli_values = {
        ("server", "port"): args.port,
        ("server", "host"): args.host,
        ("storage", "uploads_dir"): args.uploads_dir,
        ("logging", "level"): args.log_level,
    }
    for (section, key), value in cli_values.items():
        if value is not None:
            _set(data, section, key, value)
    if args.no_watch:
        _set(data, "events", "watch", False)

    config = AppConfig(**data)
    logger.info(
        "Settings loaded (server=%s:%s, uploads_dir=%s, watch=%s)",
        config.server.host,
        config.server.port,
        config.storage.uploads_dir,
        config.events.watch,
    )
    return config
