"""
errors subpackage: error catalog, recovery points, reporting and logging.

Key primitives
--------------
- ErrorCode / ERROR_MESSAGES: the status catalog returned by every operation
- UciError / ParseError: failures travelling to the nearest recovery point
- trap(): context manager registering a nested recovery point
- entry_point / value_entry_point: wrappers turning an operation into a public entry
- uci_assert() / throw(): fail from anywhere inside an operation
- report_last_error(): one-line human-readable report on stderr
- configure_logging(): console + file logging, optional JSONL event logger
"""

from .types import ERROR_MESSAGES, ErrorCode, FailureRecord, ParseError, UciError, error_message, normalize_code
from .logging import JsonlEventLogger, configure_logging, get_logger
from .trap import RecoveryPoint, entry_point, throw, trap, uci_assert, value_entry_point
from .reporter import format_last_error, report_last_error

__all__ = [
    "ERROR_MESSAGES",
    "ErrorCode",
    "FailureRecord",
    "JsonlEventLogger",
    "ParseError",
    "RecoveryPoint",
    "UciError",
    "configure_logging",
    "entry_point",
    "error_message",
    "format_last_error",
    "get_logger",
    "normalize_code",
    "report_last_error",
    "throw",
    "trap",
    "uci_assert",
    "value_entry_point",
]
