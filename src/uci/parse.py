"""
Parse sub-context: the state a parser keeps on the context while it runs.

The grammar itself lives with the parser; this module only tracks where in the
input the parser is, why it gave up, and the package it is building, so that
a failure can be reported with a position and the half-built package freed.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, NoReturn, Optional

from uci.core.alloc import Allocator
from uci.core.element import ElementType, Option, Package, Section, alloc_element, free_element
from uci.errors.trap import throw, trap, uci_assert
from uci.errors.types import ErrorCode, ParseError

if TYPE_CHECKING:
    from uci.context import Context


@dataclass(eq=False)
class ParseContext:
    """
    Position and partial result of a running parse.

    ``line`` and ``byte`` are 1-based and point at the next unconsumed byte;
    ``byte`` counts UTF-8 bytes within the current line.
    """

    allocator: Allocator
    reason: Optional[str] = None
    line: int = 1
    byte: int = 1
    package: Optional[Package] = field(default=None, repr=False)
    status: ErrorCode = field(default=ErrorCode.OK, init=False)
    _section: Optional[Section] = field(default=None, init=False, repr=False)

    def advance(self, text: str) -> None:
        """Move the position past ``text``."""
        for ch in text:
            if ch == "\n":
                self.line += 1
                self.byte = 1
            else:
                self.byte += len(ch.encode("utf-8"))

    def fail(self, reason: str) -> NoReturn:
        """Abort the parse; control resumes at the nearest recovery point."""
        self.reason = reason
        raise ParseError(reason, line=self.line, byte=self.byte)

    def start_package(self, name: str) -> Package:
        if self.package is not None:
            self.fail("package already started")
        self.package = alloc_element(self.allocator, ElementType.PACKAGE, name)
        self._section = None
        return self.package

    def add_section(self, section_type: str, name: Optional[str] = None) -> Section:
        if self.package is None:
            self.fail("section outside of a package")
        section = alloc_element(self.allocator, ElementType.SECTION, name, section_type=section_type)
        self.package.sections.append(section)
        self._section = section
        return section

    def add_option(self, name: str, value: str) -> Option:
        if self._section is None:
            self.fail("option outside of a section")
        option = alloc_element(self.allocator, ElementType.OPTION, name, value=value)
        self._section.options.append(option)
        return option


def release_parse_context(ctx: "Context") -> None:
    """Detach the parse sub-context from ``ctx``, freeing any half-built package."""
    pctx = ctx.pctx
    if pctx is None:
        return
    ctx.pctx = None
    if pctx.package is not None:
        package, pctx.package = pctx.package, None
        free_element(ctx.allocator, package)


def _commit(ctx: "Context", pctx: ParseContext) -> None:
    package = pctx.package
    assert package is not None
    uci_assert(ctx, package.name, "parsed package has no name")
    if ctx.packages.find(package.name) is not None:
        throw(ctx, ErrorCode.DUPLICATE_ENTRY, f"package '{package.name}' is already loaded")
    pctx.package = None
    ctx.packages.append(package)


@contextmanager
def parse_scope(ctx: "Context", name: str = "parse") -> Iterator[ParseContext]:
    """
    Attach a fresh parse sub-context for the duration of a parse.

    On success the package built through the sub-context (if any) joins the
    loaded packages and the sub-context is detached. On failure it stays
    attached, so the report can name the reason and position, until the next
    cleanup.

    Used on its own (no recovery point registered yet) the scope is the
    outermost boundary: it resets ``ctx.err``, names itself in ``ctx.func`` and
    leaves the outcome in ``pctx.status``. Inside an operation a failure is
    handed on to the enclosing recovery point.

    Usage example
    -------------
        with parse_scope(ctx, "import") as pctx:
            pctx.start_package("network")
            pctx.add_section("interface", "lan")
            pctx.advance(line_text)
        if pctx.status != ErrorCode.OK:
            report_last_error(ctx, "import")
    """
    if not ctx.traps:
        ctx.err = ErrorCode.OK
        ctx.func = name
    release_parse_context(ctx)
    pctx = ParseContext(allocator=ctx.allocator)
    ctx.pctx = pctx
    with trap(ctx, name) as point:
        yield pctx
        if pctx.package is not None:
            _commit(ctx, pctx)
        ctx.pctx = None
    pctx.status = point.code
