from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from rich.logging import RichHandler

from uci.config import LoggingConfig
from uci.errors.types import normalize_code

LOGGER_NAME = "uci"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class JsonlEventLogger:
    """
    Writes structured events as JSON lines.

    Each line is a dict that includes at least:
    - time_utc
    - run_id
    - event
    - func
    - level
    - code, code_name (optional)
    - context (optional)
    - exc_type, exc_msg (optional)

    Usage example
    -------------
        ev = JsonlEventLogger(path=Path("logs/events_abc.jsonl"), run_id="abc")
        ev.write(event="trap_caught", func="set_confdir", level="ERROR", code=2, exc=exc)
    """
    path: Path
    run_id: str

    def write(
        self,
        *,
        event: str,
        func: Optional[str],
        level: str,
        code: Optional[int] = None,
        context: Optional[Mapping[str, Any]] = None,
        exc: Optional[BaseException] = None,
        message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "time_utc": _utc_now_iso(),
            "run_id": self.run_id,
            "event": event,
            "func": func,
            "level": level,
        }
        if code is not None:
            payload["code"] = int(code)
            payload["code_name"] = normalize_code(code).name
        if message:
            payload["message"] = message
        if context:
            payload["context"] = dict(context)
        if exc is not None:
            payload["exc_type"] = type(exc).__name__
            payload["exc_msg"] = str(exc)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")


class _RunContextFilter(logging.Filter):
    def __init__(self, *, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        # Ensure `run_id` and `func` exist for the file formatter
        if not hasattr(record, "run_id"):
            setattr(record, "run_id", self._run_id)
        if not hasattr(record, "func"):
            setattr(record, "func", "-")
        return True


def get_logger() -> logging.Logger:
    """Return the library logger used when a context is created without one."""
    return logging.getLogger(LOGGER_NAME)


def configure_logging(*, cfg: LoggingConfig) -> tuple[logging.Logger, Optional[JsonlEventLogger]]:
    """
    Configure console + optional file logging, plus optional JSONL event logger.

    Returns
    -------
    logger
        The configured library logger named "uci".
    event_logger
        JsonlEventLogger if cfg.write_jsonl and cfg.log_dir are set, else None.

    Usage example
    -------------
        logger, event_logger = configure_logging(cfg=LoggingConfig(log_dir=Path("logs")))
        ctx = uci.create(logger=logger, event_logger=event_logger)
    """
    run_id = cfg.resolved_run_id()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for old_filter in list(logger.filters):
        logger.removeFilter(old_filter)
    logger.propagate = False

    logger.addFilter(_RunContextFilter(run_id=run_id))

    console_handler = RichHandler(show_path=False, markup=False)
    console_handler.setLevel(cfg.console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    event_logger = None
    if cfg.log_dir is not None:
        cfg.log_dir.mkdir(parents=True, exist_ok=True)

        # File handler (always plain)
        file_handler = logging.FileHandler(cfg.log_dir / f"run_{run_id}.log", encoding="utf-8")
        file_handler.setLevel(cfg.file_level)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)sZ | run=%(run_id)s | func=%(func)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

        if cfg.write_jsonl:
            event_logger = JsonlEventLogger(path=cfg.log_dir / f"events_{run_id}.jsonl", run_id=run_id)

    logger.debug("Logging configured (run_id=%s, log_dir=%s)", run_id, cfg.log_dir)
    return logger, event_logger
