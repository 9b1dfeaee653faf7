from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional
import logging
import os
import uuid

import yaml

DEFAULT_CONFDIR = "/etc/config"
DEFAULT_SAVEDIR = "/tmp/.uci"


class ConfigError(ValueError):
    """Raised when a configuration file is missing, unreadable or malformed."""


def _parse_bool(raw: str, fallback: bool) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return fallback


@dataclass(frozen=True)
class LoggingConfig:
    """
    Configuration for library logging.

    Parameters
    ----------
    log_dir
        Directory for the plain log file and JSONL event log. ``None`` keeps
        logging on the console only.
    run_id
        Identifier stamped on every record. If "auto", a random id is generated.
    console_level
        Logging level for console output.
    file_level
        Logging level for file output.
    write_jsonl
        If True (and ``log_dir`` is set), trapped failures are also written to
        <log_dir>/events_<run_id>.jsonl.

    Usage example
    -------------
        cfg = LoggingConfig(log_dir=Path("logs"), console_level=logging.WARNING)
    """

    log_dir: Optional[Path] = None
    run_id: str = "auto"

    console_level: int = logging.WARNING
    file_level: int = logging.DEBUG

    write_jsonl: bool = False

    def resolved_run_id(self) -> str:
        """Return a non-auto run id."""
        if self.run_id != "auto":
            return self.run_id
        return uuid.uuid4().hex[:10]


@dataclass(frozen=True)
class ContextConfig:
    """
    Defaults injected into a context at creation time.

    Parameters
    ----------
    confdir
        Default configuration directory. Never released by a context.
    savedir
        Default directory for pending changes. Never released by a context.
    strict
        Initial value of the strict-mode flag.
    logging
        Logging settings used by :func:`uci.errors.configure_logging`.
    env_prefix
        Prefix for environment-variable overrides, e.g. "UCI_".

    Usage example
    -------------
        cfg = ContextConfig(confdir="/srv/config")
        ctx = uci.create(cfg)
    """

    confdir: str = DEFAULT_CONFDIR
    savedir: str = DEFAULT_SAVEDIR
    strict: bool = True
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    env_prefix: str = field(default="UCI_", repr=False)

    @classmethod
    def from_env(cls, *, default: Optional["ContextConfig"] = None) -> "ContextConfig":
        """
        Create config from environment variables.

        Supported variables (prefix controlled by env_prefix on `default`):
        - <PFX>CONFDIR: path
        - <PFX>SAVEDIR: path
        - <PFX>STRICT: "1"/"0" (also true/false, yes/no, on/off)

        Empty or unrecognized values fall back to `default`.

        Usage example
        -------------
            cfg = ContextConfig.from_env(default=ContextConfig(env_prefix="MYAPP_"))
        """
        base = default if default is not None else cls()
        pfx = base.env_prefix

        confdir = os.getenv(f"{pfx}CONFDIR", "").strip() or base.confdir
        savedir = os.getenv(f"{pfx}SAVEDIR", "").strip() or base.savedir
        strict = _parse_bool(os.getenv(f"{pfx}STRICT", ""), base.strict)

        return replace(base, confdir=confdir, savedir=savedir, strict=strict)


def _logging_from_mapping(section: Any, path: Path) -> LoggingConfig:
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: 'logging' must be a mapping")

    def _level(key: str, fallback: int) -> int:
        raw = section.get(key)
        if raw is None:
            return fallback
        if isinstance(raw, int):
            return raw
        level = logging.getLevelName(str(raw).upper())
        if not isinstance(level, int):
            raise ConfigError(f"{path}: unknown log level {raw!r} for logging.{key}")
        return level

    base = LoggingConfig()
    log_dir = section.get("log_dir")
    return LoggingConfig(
        log_dir=Path(str(log_dir)) if log_dir else None,
        run_id=str(section.get("run_id", base.run_id)),
        console_level=_level("console_level", base.console_level),
        file_level=_level("file_level", base.file_level),
        write_jsonl=bool(section.get("write_jsonl", base.write_jsonl)),
    )


def load_config(path: Path, *, default: Optional[ContextConfig] = None) -> ContextConfig:
    """
    Load a ContextConfig from a YAML file.

    Recognized keys: ``confdir``, ``savedir``, ``strict`` and a ``logging``
    mapping mirroring :class:`LoggingConfig`. Missing keys keep the values of
    `default`.

    Usage example
    -------------
        cfg = load_config(Path("uci.yaml"))
    """
    base = default if default is not None else ContextConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path} is not valid YAML: {exc}") from exc

    if data is None:
        return base
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    changes: dict[str, Any] = {}
    for key in ("confdir", "savedir"):
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{path}: '{key}' must be a non-empty string")
            changes[key] = value.strip()
    if "strict" in data:
        if not isinstance(data["strict"], bool):
            raise ConfigError(f"{path}: 'strict' must be true or false")
        changes["strict"] = data["strict"]
    if "logging" in data:
        changes["logging"] = _logging_from_mapping(data["logging"], path)

    return replace(base, **changes)
