"""Tests for directory enumeration and entry encoding."""

from pathlib import Path
import os
import sys

# Ensure the project root is importable when tests run from the repository root.
sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest
from markupsafe import Markup

from yadex.errors import NotFound
from yadex.listing import entry_href, format_mtime, list_directory


def _populate(directory: Path, count: int) -> None:
    for index in range(count):
        (directory / f"entry{index:03d}").write_text("x" * index)


@pytest.mark.asyncio
@pytest.mark.parametrize("count, limit", [(2, 5), (0, 3), (7, 0), (200, 0)])
async def test_returns_every_entry_when_under_limit(tmp_path: Path, count: int, limit: int) -> None:
    _populate(tmp_path, count)

    model = await list_directory(tmp_path, "/", limit)

    assert len(model.entries) == count
    assert model.maybe_truncated is False


@pytest.mark.asyncio
async def test_stops_at_limit_and_flags_truncation(tmp_path: Path) -> None:
    _populate(tmp_path, 10)

    model = await list_directory(tmp_path, "/", 4)

    assert len(model.entries) == 4
    assert model.maybe_truncated is True


@pytest.mark.asyncio
async def test_exactly_limit_entries_may_be_truncated(tmp_path: Path) -> None:
    """Hitting the bound cannot tell whether more entries exist."""
    _populate(tmp_path, 3)

    model = await list_directory(tmp_path, "/", 3)

    assert len(model.entries) == 3
    assert model.maybe_truncated is True


@pytest.mark.asyncio
async def test_preserves_filesystem_order(tmp_path: Path) -> None:
    _populate(tmp_path, 20)
    expected = [entry.name for entry in os.scandir(tmp_path)]

    model = await list_directory(tmp_path, "/", 0)

    assert [entry.name for entry in model.entries] == expected


@pytest.mark.asyncio
async def test_entry_metadata(tmp_path: Path) -> None:
    (tmp_path / "data.bin").write_bytes(b"\0" * 42)
    (tmp_path / "folder").mkdir()

    model = await list_directory(tmp_path, "/", 0)
    by_name = {entry.name: entry for entry in model.entries}

    data = by_name["data.bin"]
    assert data.is_dir is False
    assert data.size == 42
    assert data.href == "data.bin"
    assert data.datetime is not None

    folder = by_name["folder"]
    assert folder.is_dir is True
    assert folder.href == "folder/"


@pytest.mark.asyncio
async def test_dangling_symlink_is_skipped(tmp_path: Path) -> None:
    (tmp_path / "real.txt").write_text("x")
    os.symlink(tmp_path / "gone", tmp_path / "dangling")

    model = await list_directory(tmp_path, "/", 0)

    assert [entry.name for entry in model.entries] == ["real.txt"]


@pytest.mark.asyncio
async def test_skipped_entries_do_not_count_towards_limit(tmp_path: Path, monkeypatch) -> None:
    from yadex import listing

    _populate(tmp_path, 4)
    original_stat = listing._stat_entry

    def flaky_stat(entry):
        if entry.name == "entry000":
            raise OSError("unreadable")
        return original_stat(entry)

    monkeypatch.setattr(listing, "_stat_entry", flaky_stat)

    model = await list_directory(tmp_path, "/", 4)
    assert len(model.entries) == 3
    assert model.maybe_truncated is False

    model = await list_directory(tmp_path, "/", 3)
    assert len(model.entries) == 3
    assert "entry000" not in [entry.name for entry in model.entries]
    assert model.maybe_truncated is True


@pytest.mark.asyncio
async def test_every_entry_unreadable_is_not_truncated(tmp_path: Path, monkeypatch) -> None:
    from yadex import listing

    _populate(tmp_path, 4)

    def failing_stat(entry):
        raise OSError("unreadable")

    monkeypatch.setattr(listing, "_stat_entry", failing_stat)
    model = await list_directory(tmp_path, "/", 2)

    assert model.entries == ()
    assert model.maybe_truncated is False


@pytest.mark.asyncio
@pytest.mark.parametrize("request_path", ["/missing/", "/file.txt/", "/../", "/bad\0name/"])
async def test_unlistable_paths_raise_not_found(tmp_path: Path, request_path: str) -> None:
    root = tmp_path / "root"
    root.mkdir()
    (root / "file.txt").write_text("x")

    with pytest.raises(NotFound):
        await list_directory(root, request_path, 0)


def test_href_is_percent_encoded_and_attribute_safe() -> None:
    href = entry_href('<a b&c">.txt', False)

    assert isinstance(href, Markup)
    assert href == "%3Ca%20b%26c%22%3E.txt"
    for character in '<>&" ':
        assert character not in href


def test_href_keeps_name_as_single_segment() -> None:
    assert entry_href("dir/with?query#frag", True) == "dir%2Fwith%3Fquery%23frag/"


def test_href_encodes_undecodable_bytes() -> None:
    raw = os.fsdecode(b"caf\xe9")
    assert entry_href(raw, False) == "caf%E9"


def test_unrepresentable_mtime_has_no_datetime() -> None:
    assert format_mtime(1e20) is None
    assert format_mtime(0) is not None
