"""Allocation tracking and the generic element/list model."""

from .alloc import AllocationError, Allocator
from .element import (
    Element,
    ElementList,
    ElementType,
    HistoryPath,
    Option,
    Package,
    Section,
    alloc_element,
    cast,
    free_element,
)

__all__ = [
    "AllocationError",
    "Allocator",
    "Element",
    "ElementList",
    "ElementType",
    "HistoryPath",
    "Option",
    "Package",
    "Section",
    "alloc_element",
    "cast",
    "free_element",
]
