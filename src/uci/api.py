"""
Public lifecycle operations on a :class:`~uci.context.Context`.

Every operation except :func:`create` and :func:`free` returns an
:class:`~uci.errors.ErrorCode` (or ``(code, value)``) and leaves the same code
in ``ctx.err`` with its own name in ``ctx.func``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from uci.config import ContextConfig
from uci.context import Context, ContextFlag, DirValue
from uci.core.alloc import Allocator
from uci.core.element import ElementType, HistoryPath, Package, alloc_element, free_element
from uci.errors.logging import JsonlEventLogger, get_logger
from uci.errors.trap import entry_point, throw, trap, uci_assert, value_entry_point
from uci.errors.types import ErrorCode
from uci.parse import release_parse_context


def create(
    config: Optional[ContextConfig] = None,
    *,
    allocator: Optional[Allocator] = None,
    logger: Optional[logging.Logger] = None,
    event_logger: Optional[JsonlEventLogger] = None,
) -> Context:
    """
    Create a context with no packages, no history paths, and the default directories.

    Usage example
    -------------
        ctx = create(ContextConfig.from_env())
        try:
            ...
        finally:
            free(ctx)
    """
    return Context(
        config=config if config is not None else ContextConfig(),
        allocator=allocator if allocator is not None else Allocator(),
        logger=logger if logger is not None else get_logger(),
        event_logger=event_logger,
    )


def _release_packages(ctx: Context) -> None:
    release_parse_context(ctx)
    for package in ctx.packages.iter_safe():
        free_element(ctx.allocator, package)


def _release_dir(ctx: Context, value: DirValue) -> None:
    if value.owned:
        ctx.allocator.release(value)


def _dup_dir(ctx: Context, path: Optional[str]) -> DirValue:
    uci_assert(ctx, isinstance(path, str), "directory must be a string")
    assert path is not None
    return ctx.allocator.alloc("string", lambda: DirValue(path=str(path), owned=True))


def free(ctx: Optional[Context]) -> None:
    """
    Release everything the context holds, then the context itself.

    Failures while unloading packages are discarded; there is nobody left to
    receive them. Anything else raised while unloading still propagates, but
    only after the history paths and owned directories have been released.
    """
    if ctx is None or ctx.freed:
        return

    try:
        with trap(ctx, "free", swallow=True) as point:
            cleanup(ctx)
        if point.error is not None:
            ctx.logger.debug("Discarding failure during free: %s", point.error, extra={"func": "free"})

        pctx, ctx.pctx = ctx.pctx, None
        if pctx is not None and pctx.package is not None:
            package, pctx.package = pctx.package, None
            free_element(ctx.allocator, package)
        for package in ctx.packages.iter_safe():
            free_element(ctx.allocator, package)
    finally:
        for entry in ctx.history_path.iter_safe():
            free_element(ctx.allocator, entry)

        _release_dir(ctx, ctx.confdir)
        _release_dir(ctx, ctx.savedir)
        ctx.confdir = DirValue.default(ctx.config.confdir)
        ctx.savedir = DirValue.default(ctx.config.savedir)
        ctx.freed = True


@entry_point
def cleanup(ctx: Context) -> None:
    """Unload every package; the context stays usable."""
    _release_packages(ctx)


@entry_point
def set_confdir(ctx: Context, path: Optional[str]) -> None:
    new = _dup_dir(ctx, path)
    _release_dir(ctx, ctx.confdir)
    ctx.confdir = new


@entry_point
def set_savedir(ctx: Context, path: Optional[str]) -> None:
    new = _dup_dir(ctx, path)
    _release_dir(ctx, ctx.savedir)
    ctx.savedir = new


@entry_point
def add_history_path(ctx: Context, path: Optional[str]) -> None:
    """Append a directory to the list searched for pending-change journals."""
    uci_assert(ctx, isinstance(path, str), "history path must be a string")
    entry: HistoryPath = alloc_element(ctx.allocator, ElementType.PATH, path)
    ctx.history_path.append(entry)


@entry_point
def set_strict(ctx: Context, enabled: bool) -> None:
    if enabled:
        ctx.flags |= ContextFlag.STRICT
    else:
        ctx.flags &= ~ContextFlag.STRICT


@value_entry_point
def add_package(ctx: Context, name: Optional[str]) -> Package:
    """Register an empty package; DUPLICATE_ENTRY if the name is already loaded."""
    uci_assert(ctx, isinstance(name, str) and name, "package name must be a non-empty string")
    assert name is not None
    if ctx.packages.find(name) is not None:
        throw(ctx, ErrorCode.DUPLICATE_ENTRY, f"package '{name}' is already loaded")
    package: Package = alloc_element(ctx.allocator, ElementType.PACKAGE, name)
    ctx.packages.append(package)
    return package


def _find_package(ctx: Context, name: Optional[str]) -> Package:
    uci_assert(ctx, isinstance(name, str), "package name must be a string")
    assert name is not None
    package = ctx.packages.find(name)
    if package is None:
        throw(ctx, ErrorCode.NOT_FOUND, f"package '{name}' is not loaded")
    return package


@value_entry_point
def lookup_package(ctx: Context, name: Optional[str]) -> Package:
    return _find_package(ctx, name)


@entry_point
def unload(ctx: Context, name: Optional[str]) -> None:
    free_element(ctx.allocator, _find_package(ctx, name))


@value_entry_point
def list_configs(ctx: Context) -> list[str]:
    """Names of the configuration files in the configuration directory, sorted."""
    confdir = Path(ctx.confdir.path)
    return sorted(p.name for p in confdir.iterdir() if p.is_file() and not p.name.startswith("."))
