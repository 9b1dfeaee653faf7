"""Generic element variants and the owning list they live in."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Generic, Iterator, Optional, TypeVar

from uci.core.alloc import Allocator
from uci.errors.types import ErrorCode, UciError


class ElementType(IntEnum):
    """Discriminant stored in every element header."""
    UNSPEC = 0
    HISTORY = 1  # reserved for journal entries; allocated by the history collaborator, not here
    PACKAGE = 2
    SECTION = 3
    OPTION = 4
    PATH = 5


@dataclass(eq=False)
class Element:
    """
    Shared element header: name plus list membership.

    Variants set the ``type`` class attribute; a node held as a plain ``Element``
    can be turned back into its variant with :func:`cast`.
    """

    type: ClassVar[ElementType] = ElementType.UNSPEC

    name: Optional[str] = None
    _list: Optional["ElementList[Any]"] = field(default=None, init=False, repr=False)

    @property
    def owner_list(self) -> Optional["ElementList[Any]"]:
        return self._list


E = TypeVar("E", bound=Element)


class ElementList(Generic[E]):
    """
    Ordered list of elements owned by ``owner``.

    An element is a member of at most one list at a time. Iteration with
    :meth:`iter_safe` tolerates removal of the node being visited.

    Usage example
    -------------
        paths: ElementList[HistoryPath] = ElementList(owner=ctx)
        paths.append(HistoryPath(name="/tmp/.uci"))
        for entry in paths.iter_safe():
            paths.remove(entry)
    """

    def __init__(self, owner: Any = None) -> None:
        self.owner = owner
        self._nodes: list[E] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[E]:
        return iter(self._nodes)

    def __contains__(self, element: object) -> bool:
        return isinstance(element, Element) and element._list is self

    def __repr__(self) -> str:
        return f"ElementList({[e.name for e in self._nodes]!r})"

    def append(self, element: E) -> None:
        """Add ``element`` at the tail."""
        if element._list is not None:
            raise UciError(ErrorCode.INVALID_ARGUMENT, f"element {element.name!r} already belongs to a list")
        element._list = self
        self._nodes.append(element)

    def remove(self, element: E) -> None:
        if element._list is not self:
            raise UciError(ErrorCode.INVALID_ARGUMENT, f"element {element.name!r} is not in this list")
        for i, node in enumerate(self._nodes):
            if node is element:
                del self._nodes[i]
                break
        element._list = None

    def find(self, name: str) -> Optional[E]:
        return next((e for e in self._nodes if e.name == name), None)

    def iter_safe(self) -> Iterator[E]:
        # walk a snapshot; skip nodes unlinked since the snapshot was taken
        for element in list(self._nodes):
            if element._list is self:
                yield element


@dataclass(eq=False)
class Option(Element):
    type: ClassVar[ElementType] = ElementType.OPTION

    value: str = ""


@dataclass(eq=False)
class Section(Element):
    type: ClassVar[ElementType] = ElementType.SECTION

    section_type: str = ""
    options: ElementList[Option] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.options = ElementList(owner=self)


@dataclass(eq=False)
class Package(Element):
    """A loaded configuration package; owns its sections."""

    type: ClassVar[ElementType] = ElementType.PACKAGE

    sections: ElementList[Section] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.sections = ElementList(owner=self)


@dataclass(eq=False)
class HistoryPath(Element):
    """A directory searched for pending-change journals."""

    type: ClassVar[ElementType] = ElementType.PATH

    @property
    def path(self) -> Optional[str]:
        return self.name


_VARIANTS: dict[ElementType, type[Element]] = {
    ElementType.UNSPEC: Element,
    ElementType.PACKAGE: Package,
    ElementType.SECTION: Section,
    ElementType.OPTION: Option,
    ElementType.PATH: HistoryPath,
}


def cast(element: Element, element_type: ElementType) -> Any:
    """Return ``element`` as the variant for ``element_type``; INVALID_ARGUMENT on mismatch."""
    if element.type != element_type:
        raise UciError(
            ErrorCode.INVALID_ARGUMENT,
            f"element {element.name!r} is {element.type.name}, expected {element_type.name}",
        )
    return element


def alloc_element(
    allocator: Allocator,
    element_type: ElementType,
    name: Optional[str] = None,
    **fields: Any,
) -> Any:
    """
    Allocate an element of the requested variant.

    Parameters
    ----------
    allocator
        Allocator the element is registered with; failures surface as OUT_OF_MEMORY.
    element_type
        Variant to build.
    name
        Optional string payload copied into the header.
    fields
        Variant-specific fields (e.g. ``value`` for options).

    Usage example
    -------------
        entry = alloc_element(ctx.allocator, ElementType.PATH, "/etc/config")
        ctx.history_path.append(entry)
    """
    cls = _VARIANTS.get(element_type)
    if cls is None:
        raise UciError(ErrorCode.INVALID_ARGUMENT, f"cannot allocate element of type {element_type.name}")
    payload = None if name is None else str(name)
    return allocator.alloc(element_type.name.lower(), lambda: cls(name=payload, **fields))


def free_element(allocator: Allocator, element: Element) -> None:
    """Unlink ``element`` from its list and release it together with everything it owns."""
    if isinstance(element, Package):
        for section in element.sections.iter_safe():
            free_element(allocator, section)
    elif isinstance(element, Section):
        for option in element.options.iter_safe():
            free_element(allocator, option)

    if element._list is not None:
        element._list.remove(element)
    allocator.release(element)
