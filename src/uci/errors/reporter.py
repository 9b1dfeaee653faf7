from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from rich.console import Console

from .logging import get_logger
from .types import ERROR_MESSAGES, ErrorCode, normalize_code

if TYPE_CHECKING:
    from uci.context import Context


def _diagnostic_console() -> Console:
    return Console(stderr=True, markup=False, highlight=False, emoji=False)


def format_last_error(ctx: Optional["Context"], prefix: Optional[str] = None) -> str:
    """
    Render the context's last error as a single line.

    Layout: ``[<prefix>: ][<func>: ]<message>``, where a parse error with an
    attached parse sub-context reads
    ``Parse error (<reason>) at line <n>, byte <m>``.

    Usage example
    -------------
        text = format_last_error(ctx, "uci")
        # "uci: set_confdir: Invalid argument"
    """
    if ctx is None:
        err = ErrorCode.INVALID_ARGUMENT
        func = None
        pctx = None
    else:
        err = normalize_code(ctx.err)
        func = ctx.func
        pctx = ctx.pctx

    parts: list[str] = []
    if prefix is not None:
        parts.append(f"{prefix}: ")
    if func:
        parts.append(f"{func}: ")

    if err == ErrorCode.PARSE_ERROR and pctx is not None:
        parts.append(f"{ERROR_MESSAGES[err]} ({pctx.reason or 'unknown'}) at line {pctx.line}, byte {pctx.byte}")
    else:
        parts.append(ERROR_MESSAGES[err])
    return "".join(parts)


def report_last_error(
    ctx: Optional["Context"],
    prefix: Optional[str] = None,
    *,
    console: Optional[Console] = None,
) -> None:
    """
    Write the context's last error to the diagnostic stream (stderr).

    Never raises: a diagnostic stream that can no longer be written to is
    noted on the library logger and otherwise ignored.

    Usage example
    -------------
        if uci.set_confdir(ctx, path) != ErrorCode.OK:
            report_last_error(ctx, "myapp")
    """
    text = format_last_error(ctx, prefix)
    out = console if console is not None else _diagnostic_console()
    try:
        out.print(text, soft_wrap=True)
    except (OSError, ValueError) as exc:
        get_logger().debug("Could not write error report (%s): %s", type(exc).__name__, text)
