from __future__ import annotations

from pathlib import Path

import pytest

import uci
from uci import ContextConfig, DirValue, ErrorCode
from uci.core.alloc import AllocationError, Allocator
from uci.core.element import ElementType, alloc_element
from uci.errors.types import UciError


@pytest.fixture
def alloc() -> Allocator:
    return Allocator()


@pytest.fixture
def ctx(alloc: Allocator) -> uci.Context:
    return uci.create(allocator=alloc)


def test_create_starts_empty_with_defaults(ctx: uci.Context) -> None:
    assert len(ctx.packages) == 0
    assert len(ctx.history_path) == 0
    assert ctx.strict is True
    assert ctx.confdir == DirValue("/etc/config", owned=False)
    assert ctx.savedir == DirValue("/tmp/.uci", owned=False)
    assert ctx.pctx is None
    assert ctx.err == ErrorCode.OK
    assert ctx.func is None


def test_create_uses_injected_defaults() -> None:
    ctx = uci.create(ContextConfig(confdir="/srv/conf", savedir="/srv/save", strict=False))
    assert ctx.confdir == DirValue.default("/srv/conf")
    assert ctx.savedir == DirValue.default("/srv/save")
    assert ctx.strict is False


def test_create_then_free_releases_nothing_default(ctx: uci.Context, alloc: Allocator) -> None:
    uci.free(ctx)

    assert ctx.freed
    assert alloc.releases == 0
    assert alloc.live_count() == 0


def test_set_confdir_absent_leaves_context_unchanged(ctx: uci.Context, alloc: Allocator) -> None:
    before = ctx.confdir

    assert uci.set_confdir(ctx, None) == ErrorCode.INVALID_ARGUMENT

    assert ctx.confdir is before
    assert ctx.err == ErrorCode.INVALID_ARGUMENT
    assert ctx.func == "set_confdir"
    assert alloc.allocations == 0


def test_set_confdir_twice_releases_first_allocation_only(ctx: uci.Context, alloc: Allocator) -> None:
    assert uci.set_confdir(ctx, "/tmp/x") == ErrorCode.OK
    first = ctx.confdir
    assert first == DirValue("/tmp/x", owned=True)
    assert alloc.releases == 0  # the default was not released

    assert uci.set_confdir(ctx, "/tmp/y") == ErrorCode.OK

    assert ctx.confdir.path == "/tmp/y"
    assert not alloc.is_live(first)
    assert alloc.releases == 1
    assert alloc.live_count("string") == 1

    uci.free(ctx)
    assert alloc.releases == 2
    assert alloc.live_count() == 0


def test_set_savedir_mirrors_confdir(ctx: uci.Context, alloc: Allocator) -> None:
    assert uci.set_savedir(ctx, None) == ErrorCode.INVALID_ARGUMENT
    assert ctx.savedir == DirValue.default("/tmp/.uci")

    assert uci.set_savedir(ctx, "/var/uci") == ErrorCode.OK
    assert ctx.savedir == DirValue("/var/uci", owned=True)
    assert ctx.func == "set_savedir"

    uci.free(ctx)
    assert alloc.live_count() == 0


def test_set_confdir_out_of_memory_keeps_previous_value() -> None:
    alloc = Allocator(fail_at=2)
    ctx = uci.create(allocator=alloc)
    assert uci.set_confdir(ctx, "/tmp/x") == ErrorCode.OK

    assert uci.set_confdir(ctx, "/tmp/y") == ErrorCode.OUT_OF_MEMORY

    assert ctx.confdir.path == "/tmp/x"
    assert alloc.is_live(ctx.confdir)


def test_add_history_path_absent_leaves_list_unchanged(ctx: uci.Context) -> None:
    assert uci.add_history_path(ctx, None) == ErrorCode.INVALID_ARGUMENT
    assert len(ctx.history_path) == 0
    assert ctx.func == "add_history_path"


def test_add_history_path_then_free_releases_exactly_one_entry(ctx: uci.Context, alloc: Allocator) -> None:
    assert uci.add_history_path(ctx, "/etc/config") == ErrorCode.OK
    assert [e.path for e in ctx.history_path] == ["/etc/config"]
    assert alloc.live_count("path") == 1

    uci.free(ctx)

    assert alloc.live_count() == 0
    assert alloc.releases == 1


def test_history_paths_keep_insertion_order(ctx: uci.Context) -> None:
    for path in ("/a", "/b", "/c"):
        assert uci.add_history_path(ctx, path) == ErrorCode.OK
    assert [e.path for e in ctx.history_path] == ["/a", "/b", "/c"]


def test_add_history_path_out_of_memory() -> None:
    ctx = uci.create(allocator=Allocator(fail_at=1))
    assert uci.add_history_path(ctx, "/etc/config") == ErrorCode.OUT_OF_MEMORY
    assert len(ctx.history_path) == 0
    assert ctx.err == ErrorCode.OUT_OF_MEMORY


def test_cleanup_twice_is_idempotent(ctx: uci.Context) -> None:
    assert uci.cleanup(ctx) == ErrorCode.OK
    assert uci.cleanup(ctx) == ErrorCode.OK
    assert len(ctx.packages) == 0
    assert ctx.err == ErrorCode.OK
    assert ctx.func == "cleanup"


def test_cleanup_releases_packages_and_context_stays_usable(ctx: uci.Context, alloc: Allocator) -> None:
    status, package = uci.add_package(ctx, "network")
    assert status == ErrorCode.OK and package is not None
    package.sections.append(alloc_element(alloc, ElementType.SECTION, "lan", section_type="interface"))
    uci.add_history_path(ctx, "/tmp/hist")

    assert uci.cleanup(ctx) == ErrorCode.OK

    assert len(ctx.packages) == 0
    assert alloc.live_count("package") == 0
    assert alloc.live_count("section") == 0
    assert len(ctx.history_path) == 1  # history survives cleanup

    status, again = uci.add_package(ctx, "network")
    assert status == ErrorCode.OK
    assert again is not None and again is not package


def test_add_package_rejects_duplicates_and_bad_names(ctx: uci.Context) -> None:
    assert uci.add_package(ctx, "system")[0] == ErrorCode.OK
    assert uci.add_package(ctx, "system") == (ErrorCode.DUPLICATE_ENTRY, None)
    assert uci.add_package(ctx, "") == (ErrorCode.INVALID_ARGUMENT, None)
    assert uci.add_package(ctx, None) == (ErrorCode.INVALID_ARGUMENT, None)
    assert len(ctx.packages) == 1


def test_lookup_and_unload(ctx: uci.Context, alloc: Allocator) -> None:
    _, package = uci.add_package(ctx, "firewall")

    assert uci.lookup_package(ctx, "firewall") == (ErrorCode.OK, package)
    assert uci.lookup_package(ctx, "dhcp") == (ErrorCode.NOT_FOUND, None)

    assert uci.unload(ctx, "firewall") == ErrorCode.OK
    assert alloc.live_count("package") == 0
    assert uci.unload(ctx, "firewall") == ErrorCode.NOT_FOUND
    assert ctx.func == "unload"


def test_set_strict_toggles_flag(ctx: uci.Context) -> None:
    assert uci.set_strict(ctx, False) == ErrorCode.OK
    assert ctx.strict is False
    assert uci.set_strict(ctx, True) == ErrorCode.OK
    assert ctx.strict is True


def test_list_configs_reads_confdir(ctx: uci.Context, tmp_path: Path) -> None:
    for name in ("system", "network", ".hidden"):
        (tmp_path / name).write_text("", encoding="utf-8")
    (tmp_path / "subdir").mkdir()
    uci.set_confdir(ctx, str(tmp_path))

    assert uci.list_configs(ctx) == (ErrorCode.OK, ["network", "system"])


def test_list_configs_missing_directory_is_io_error(ctx: uci.Context, tmp_path: Path) -> None:
    uci.set_confdir(ctx, str(tmp_path / "missing"))
    assert uci.list_configs(ctx) == (ErrorCode.IO_ERROR, None)
    assert ctx.err == ErrorCode.IO_ERROR


def test_operations_reject_absent_context() -> None:
    assert uci.set_confdir(None, "/tmp/x") == ErrorCode.INVALID_ARGUMENT
    assert uci.set_savedir(None, "/tmp/x") == ErrorCode.INVALID_ARGUMENT
    assert uci.add_history_path(None, "/tmp/x") == ErrorCode.INVALID_ARGUMENT
    assert uci.cleanup(None) == ErrorCode.INVALID_ARGUMENT
    assert uci.lookup_package(None, "x") == (ErrorCode.INVALID_ARGUMENT, None)
    uci.free(None)


def test_freed_context_is_rejected_and_free_is_not_repeated(ctx: uci.Context, alloc: Allocator) -> None:
    uci.set_confdir(ctx, "/tmp/x")
    uci.free(ctx)
    uci.free(ctx)

    assert alloc.releases == 1
    assert uci.set_confdir(ctx, "/tmp/y") == ErrorCode.INVALID_ARGUMENT


def test_free_discards_failure_during_cleanup(
    ctx: uci.Context, alloc: Allocator, monkeypatch: pytest.MonkeyPatch
) -> None:
    uci.add_package(ctx, "network")
    uci.add_history_path(ctx, "/tmp/hist")
    with uci.parse_scope(ctx, "import") as pctx:
        pctx.start_package("dhcp")
        pctx.fail("bad token")
    assert ctx.pctx is not None and ctx.pctx.package is not None

    def broken_release(_ctx: uci.Context) -> None:
        raise UciError(ErrorCode.IO_ERROR, "collaborator failed")

    monkeypatch.setattr("uci.api.release_parse_context", broken_release)

    uci.free(ctx)

    assert ctx.freed
    assert ctx.err == ErrorCode.IO_ERROR
    assert ctx.traps == []
    assert alloc.live_count() == 0


def test_report_after_failed_operation(ctx: uci.Context, capsys: pytest.CaptureFixture[str]) -> None:
    uci.add_history_path(ctx, None)
    uci.report_last_error(ctx, "uci")
    assert capsys.readouterr().err == "uci: add_history_path: Invalid argument\n"


def test_free_releases_history_and_dirs_when_unloading_breaks(
    ctx: uci.Context, alloc: Allocator, monkeypatch: pytest.MonkeyPatch
) -> None:
    uci.add_package(ctx, "network")
    uci.add_history_path(ctx, "/tmp/hist")
    uci.set_confdir(ctx, "/tmp/conf")
    uci.set_savedir(ctx, "/tmp/save")

    def double_release(_ctx: uci.Context) -> None:
        raise AllocationError("released twice")

    monkeypatch.setattr("uci.api.release_parse_context", double_release)

    with pytest.raises(AllocationError):
        uci.free(ctx)

    assert ctx.freed
    assert ctx.traps == []
    assert alloc.live_count("path") == 0
    assert alloc.live_count("string") == 0
    assert ctx.confdir == DirValue.default("/etc/config")
    assert ctx.savedir == DirValue.default("/tmp/.uci")
