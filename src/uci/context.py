"""Session state shared by every public operation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntFlag
from typing import TYPE_CHECKING, Optional

from uci.config import ContextConfig
from uci.core.alloc import Allocator
from uci.core.element import ElementList, HistoryPath, Package
from uci.errors.logging import JsonlEventLogger
from uci.errors.types import ErrorCode, FailureRecord

if TYPE_CHECKING:
    from uci.errors.trap import RecoveryPoint
    from uci.parse import ParseContext


class ContextFlag(IntFlag):
    NONE = 0
    STRICT = 1


@dataclass(frozen=True)
class DirValue:
    """
    A directory setting: either the injected default or a string the context owns.

    Only owned values are ever released.
    """
    path: str
    owned: bool = False

    @classmethod
    def default(cls, path: str) -> "DirValue":
        return cls(path=path, owned=False)


@dataclass(eq=False)
class Context:
    """
    All state of one library session.

    Build it with :func:`uci.create` and tear it down with :func:`uci.free`;
    every other public operation takes it as first argument.

    Parameters
    ----------
    config
        Injected defaults (directories, strict mode).
    allocator
        Source of every element and owned string held by the context.
    logger
        Logger used to note trapped failures.
    event_logger
        Optional JSONL sink for trapped failures.
    """

    config: ContextConfig
    allocator: Allocator
    logger: logging.Logger
    event_logger: Optional[JsonlEventLogger] = None

    packages: ElementList[Package] = field(init=False, repr=False)
    history_path: ElementList[HistoryPath] = field(init=False, repr=False)
    flags: ContextFlag = field(init=False)
    confdir: DirValue = field(init=False)
    savedir: DirValue = field(init=False)
    pctx: Optional["ParseContext"] = field(default=None, init=False, repr=False)

    err: ErrorCode = field(default=ErrorCode.OK, init=False)
    func: Optional[str] = field(default=None, init=False)
    last_failure: Optional[FailureRecord] = field(default=None, init=False, repr=False)
    traps: list["RecoveryPoint"] = field(default_factory=list, init=False, repr=False)
    freed: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.packages = ElementList(owner=self)
        self.history_path = ElementList(owner=self)
        self.flags = ContextFlag.STRICT if self.config.strict else ContextFlag.NONE
        self.confdir = DirValue.default(self.config.confdir)
        self.savedir = DirValue.default(self.config.savedir)

    @property
    def strict(self) -> bool:
        return bool(self.flags & ContextFlag.STRICT)
