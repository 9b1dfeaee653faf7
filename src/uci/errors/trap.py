"""
Recovery points: where a failure deep inside an operation lands.

A failure is raised as :class:`UciError` and unwinds to the nearest recovery
point registered on the context. That point records the code on the context,
unregisters itself (and anything registered after it), then either hands the
error on to the next outer point or, if none is left, keeps it as the final
result.
"""

from __future__ import annotations

import functools
from types import TracebackType
from typing import TYPE_CHECKING, Any, Callable, NoReturn, Optional, TypeVar

from .types import ErrorCode, FailureRecord, UciError, coerce_exception

if TYPE_CHECKING:
    from uci.context import Context

T = TypeVar("T")


class RecoveryPoint:
    """
    Context manager registering a named recovery point on ``ctx``.

    Usage example
    -------------
        with RecoveryPoint(ctx, "load") as point:
            parse_everything(ctx)
        if point.error is not None:
            ...  # nothing outer was registered; the failure stops here
    """

    def __init__(self, ctx: "Context", name: str, *, swallow: bool = False) -> None:
        self.ctx = ctx
        self.name = name
        self.swallow = swallow
        self.error: Optional[UciError] = None
        self._depth: Optional[int] = None

    @property
    def code(self) -> ErrorCode:
        return ErrorCode.OK if self.error is None else self.error.code

    def __enter__(self) -> "RecoveryPoint":
        self._depth = len(self.ctx.traps)
        self.ctx.traps.append(self)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        # pop this point together with any point it pushed
        del self.ctx.traps[self._depth:]

        if exc is None:
            return False
        err = coerce_exception(exc)
        if err is None:
            return False

        if err.caught_by is None:
            _record(self.ctx, err, exc, self.name)

        if self.ctx.traps and not self.swallow:
            if err is not exc:
                raise err from exc
            return False

        self.error = err
        return True


def _record(ctx: "Context", err: UciError, original: BaseException, point_name: str) -> None:
    err.caught_by = point_name
    ctx.err = err.code
    ctx.last_failure = FailureRecord.from_exception(
        func=ctx.func, exc=err, original=original, recovery_point=point_name
    )

    ctx.logger.info("%s failed: %s (%s)", ctx.func or point_name, err, err.code.name, extra={"func": ctx.func})
    ctx.logger.debug("Traceback for '%s':\n%s", point_name, ctx.last_failure.traceback, extra={"func": ctx.func})
    if ctx.event_logger is not None:
        ctx.event_logger.write(
            event="trap_caught",
            func=ctx.func,
            level="ERROR",
            code=err.code,
            exc=original,
            context={"recovery_point": point_name},
        )


def trap(ctx: "Context", name: str, *, swallow: bool = False) -> RecoveryPoint:
    """
    Register a nested recovery point.

    With ``swallow`` the point keeps any failure for itself even when outer
    points are registered; only teardown paths use it.

    Usage example
    -------------
        with trap(ctx, "teardown", swallow=True) as point:
            release_everything(ctx)
    """
    return RecoveryPoint(ctx, name, swallow=swallow)


def throw(ctx: "Context", code: int, message: Optional[str] = None) -> NoReturn:
    """Fail with ``code``; control resumes at the nearest recovery point of ``ctx``."""
    raise UciError(code, message)


def uci_assert(ctx: "Context", condition: Any, message: Optional[str] = None) -> None:
    """Fail with INVALID_ARGUMENT when ``condition`` is false."""
    if not condition:
        raise UciError(ErrorCode.INVALID_ARGUMENT, message)


def _context_usable(ctx: Optional["Context"]) -> bool:
    return ctx is not None and not ctx.freed


def entry_point(fn: Callable[..., Any]) -> Callable[..., ErrorCode]:
    """
    Wrap a public operation that returns only a status.

    The wrapper validates the context, resets ``ctx.err``, names the operation
    in ``ctx.func`` and registers the outermost recovery point.

    Usage example
    -------------
        @entry_point
        def set_strict(ctx: Context, enabled: bool) -> None:
            ...
    """
    name = fn.__name__

    @functools.wraps(fn)
    def wrapper(ctx: Optional["Context"], *args: Any, **kwargs: Any) -> ErrorCode:
        if not _context_usable(ctx):
            return ErrorCode.INVALID_ARGUMENT
        assert ctx is not None
        ctx.err = ErrorCode.OK
        ctx.func = name
        with RecoveryPoint(ctx, name) as point:
            fn(ctx, *args, **kwargs)
        return point.code

    return wrapper


def value_entry_point(fn: Callable[..., T]) -> Callable[..., tuple[ErrorCode, Optional[T]]]:
    """Like :func:`entry_point`, for operations returning ``(status, value)``."""
    name = fn.__name__

    @functools.wraps(fn)
    def wrapper(ctx: Optional["Context"], *args: Any, **kwargs: Any) -> tuple[ErrorCode, Optional[T]]:
        if not _context_usable(ctx):
            return ErrorCode.INVALID_ARGUMENT, None
        assert ctx is not None
        ctx.err = ErrorCode.OK
        ctx.func = name
        value: Optional[T] = None
        with RecoveryPoint(ctx, name) as point:
            value = fn(ctx, *args, **kwargs)
        if point.error is not None:
            return point.code, None
        return ErrorCode.OK, value

    return wrapper
