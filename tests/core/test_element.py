from __future__ import annotations

import pytest

from uci.core.alloc import Allocator
from uci.core.element import (
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
from uci.errors.types import ErrorCode, UciError


def _paths(*names: str) -> tuple[ElementList[HistoryPath], list[HistoryPath]]:
    lst: ElementList[HistoryPath] = ElementList()
    nodes = [HistoryPath(name=n) for n in names]
    for node in nodes:
        lst.append(node)
    return lst, nodes


def test_new_list_is_empty() -> None:
    owner = object()
    lst: ElementList[Element] = ElementList(owner=owner)
    assert len(lst) == 0
    assert list(lst) == []
    assert lst.owner is owner


def test_append_keeps_order_and_membership() -> None:
    lst, nodes = _paths("/a", "/b", "/c")
    assert [e.name for e in lst] == ["/a", "/b", "/c"]
    assert all(n in lst for n in nodes)
    assert nodes[0].owner_list is lst


def test_element_cannot_join_two_lists() -> None:
    lst, nodes = _paths("/a")
    other: ElementList[HistoryPath] = ElementList()

    with pytest.raises(UciError) as info:
        other.append(nodes[0])
    assert info.value.code == ErrorCode.INVALID_ARGUMENT
    assert len(other) == 0


def test_remove_detaches_node() -> None:
    lst, nodes = _paths("/a", "/b")
    lst.remove(nodes[0])

    assert [e.name for e in lst] == ["/b"]
    assert nodes[0].owner_list is None
    with pytest.raises(UciError):
        lst.remove(nodes[0])


def test_iter_safe_tolerates_removing_current_node() -> None:
    lst, _ = _paths("/a", "/b", "/c", "/d")
    seen = []
    for node in lst.iter_safe():
        seen.append(node.name)
        lst.remove(node)

    assert seen == ["/a", "/b", "/c", "/d"]
    assert len(lst) == 0


def test_iter_safe_skips_nodes_removed_during_traversal() -> None:
    lst, nodes = _paths("/a", "/b", "/c")
    seen = []
    for node in lst.iter_safe():
        seen.append(node.name)
        if node is nodes[0]:
            lst.remove(nodes[1])

    assert seen == ["/a", "/c"]


def test_find_by_name() -> None:
    lst, nodes = _paths("/a", "/b")
    assert lst.find("/b") is nodes[1]
    assert lst.find("/zzz") is None


def test_variants_carry_their_discriminant() -> None:
    assert Element.type == ElementType.UNSPEC
    assert Package(name="p").type == ElementType.PACKAGE
    assert Section(name="s").type == ElementType.SECTION
    assert Option(name="o").type == ElementType.OPTION
    assert HistoryPath(name="/x").type == ElementType.PATH


def test_cast_checks_discriminant() -> None:
    generic: Element = Package(name="network")
    assert cast(generic, ElementType.PACKAGE) is generic

    with pytest.raises(UciError) as info:
        cast(generic, ElementType.SECTION)
    assert info.value.code == ErrorCode.INVALID_ARGUMENT


def test_alloc_element_builds_requested_variant() -> None:
    alloc = Allocator()
    option = alloc_element(alloc, ElementType.OPTION, "ipaddr", value="10.0.0.1")

    assert isinstance(option, Option)
    assert option.name == "ipaddr"
    assert option.value == "10.0.0.1"
    assert alloc.live_count("option") == 1

    nameless = alloc_element(alloc, ElementType.UNSPEC)
    assert nameless.name is None


def test_alloc_element_rejects_reserved_history_type() -> None:
    with pytest.raises(UciError) as info:
        alloc_element(Allocator(), ElementType.HISTORY, "x")
    assert info.value.code == ErrorCode.INVALID_ARGUMENT


def test_free_element_releases_owned_children() -> None:
    alloc = Allocator()
    owner: ElementList[Package] = ElementList()
    package = alloc_element(alloc, ElementType.PACKAGE, "network")
    owner.append(package)
    for sname in ("lan", "wan"):
        section = alloc_element(alloc, ElementType.SECTION, sname, section_type="interface")
        package.sections.append(section)
        section.options.append(alloc_element(alloc, ElementType.OPTION, "proto", value="dhcp"))

    assert alloc.live_count() == 5

    free_element(alloc, package)

    assert alloc.live_count() == 0
    assert alloc.releases == 5
    assert len(owner) == 0
