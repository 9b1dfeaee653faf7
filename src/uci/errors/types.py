from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional
import traceback as _traceback


class ErrorCode(IntEnum):
    """Status codes returned by every public operation."""
    OK = 0
    OUT_OF_MEMORY = 1
    INVALID_ARGUMENT = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    PARSE_ERROR = 5
    DUPLICATE_ENTRY = 6
    UNKNOWN_ERROR = 7


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.OK: "Success",
    ErrorCode.OUT_OF_MEMORY: "Out of memory",
    ErrorCode.INVALID_ARGUMENT: "Invalid argument",
    ErrorCode.NOT_FOUND: "Entry not found",
    ErrorCode.IO_ERROR: "I/O error",
    ErrorCode.PARSE_ERROR: "Parse error",
    ErrorCode.DUPLICATE_ENTRY: "Duplicate entry",
    ErrorCode.UNKNOWN_ERROR: "Unknown error",
}


def normalize_code(code: int) -> ErrorCode:
    """Map any integer onto the catalog; out-of-range values become UNKNOWN_ERROR."""
    try:
        return ErrorCode(int(code))
    except ValueError:
        return ErrorCode.UNKNOWN_ERROR


def error_message(code: int) -> str:
    return ERROR_MESSAGES[normalize_code(code)]


class UciError(Exception):
    """
    A failure travelling to the nearest recovery point.

    Parameters
    ----------
    code
        Catalog code recorded on the context when the error is caught.
    message
        Optional detail; defaults to the catalog message.

    Usage example
    -------------
        raise UciError(ErrorCode.NOT_FOUND, "package 'network' is not loaded")
    """

    def __init__(self, code: int, message: Optional[str] = None) -> None:
        self.code = normalize_code(code)
        self.caught_by: Optional[str] = None
        super().__init__(message or ERROR_MESSAGES[self.code])


class ParseError(UciError):
    """Raised by the parse sub-context; carries the reason and input position."""

    def __init__(self, reason: str, *, line: int, byte: int) -> None:
        self.reason = reason
        self.line = line
        self.byte = byte
        super().__init__(ErrorCode.PARSE_ERROR, f"{reason} at line {line}, byte {byte}")


def coerce_exception(exc: BaseException) -> Optional[UciError]:
    """
    Translate an exception into a UciError, or None when it is not a library failure.

    MemoryError maps to OUT_OF_MEMORY and OSError to IO_ERROR.
    """
    if isinstance(exc, UciError):
        return exc
    if isinstance(exc, MemoryError):
        return UciError(ErrorCode.OUT_OF_MEMORY, str(exc) or None)
    if isinstance(exc, OSError):
        return UciError(ErrorCode.IO_ERROR, str(exc) or None)
    return None


@dataclass(frozen=True)
class FailureRecord:
    """
    A structured record of the failure caught by a recovery point.

    Usage example
    -------------
        rec = FailureRecord(func="set_confdir", code=ErrorCode.INVALID_ARGUMENT, message="boom")
    """
    func: Optional[str]
    code: ErrorCode
    message: str
    exc_type: Optional[str] = None
    traceback: Optional[str] = None
    recovery_point: Optional[str] = None  # name of the point that caught it

    @staticmethod
    def from_exception(
        *, func: Optional[str], exc: UciError, original: BaseException, recovery_point: Optional[str]
    ) -> "FailureRecord":
        tb = "".join(_traceback.format_exception(type(original), original, original.__traceback__))
        return FailureRecord(
            func=func,
            code=exc.code,
            message=str(exc),
            exc_type=type(original).__name__,
            traceback=tb,
            recovery_point=recovery_point,
        )
