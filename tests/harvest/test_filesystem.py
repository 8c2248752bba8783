from __future__ import annotations

from pathlib import Path

import pytest

from mathharvest.harvest.filesystem import DirEntry, HarvestFS, LocalFS, join_path, suffix_filter, uri_mapper


def test_local_fs_lists_sorted_entries(tmp_path: Path) -> None:
    (tmp_path / "b.xhtml").write_text("<p/>", encoding="utf-8")
    (tmp_path / "a").mkdir()
    fs = LocalFS(tmp_path)

    assert isinstance(fs, HarvestFS)
    assert fs.list_dir(".") == [DirEntry(name="a", is_dir=True), DirEntry(name="b.xhtml", is_dir=False)]
    with fs.open("b.xhtml") as stream:
        assert stream.read() == b"<p/>"


def test_local_fs_does_not_report_symlinked_directories(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "loop").symlink_to(tmp_path, target_is_directory=True)
    fs = LocalFS(tmp_path)

    assert fs.list_dir(".") == [DirEntry(name="sub", is_dir=True)]
    assert fs.list_dir("sub") == [DirEntry(name="loop", is_dir=False)]


def test_local_fs_rejects_paths_outside_root(tmp_path: Path) -> None:
    fs = LocalFS(tmp_path / "root")

    with pytest.raises(PermissionError):
        fs.open("../secret.xhtml")


def test_local_fs_listing_missing_directory_raises_oserror(tmp_path: Path) -> None:
    fs = LocalFS(tmp_path)

    with pytest.raises(OSError):
        fs.list_dir("missing")


def test_join_path_treats_dot_as_root() -> None:
    assert join_path(".", "a.xhtml") == "a.xhtml"
    assert join_path("a/b", "c.xhtml") == "a/b/c.xhtml"


def test_suffix_filter_is_case_insensitive() -> None:
    accept = suffix_filter(["xhtml", ".HTML"])

    assert accept("doc/Paper.XHTML")
    assert accept("index.html")
    assert not accept("notes.txt")


def test_suffix_filter_requires_a_suffix() -> None:
    with pytest.raises(ValueError):
        suffix_filter([])


def test_uri_mapper_with_base_quotes_relative_path() -> None:
    to_uri = uri_mapper("https://example.org/arxiv")

    assert to_uri("1234/paper one.xhtml") == "https://example.org/arxiv/1234/paper%20one.xhtml"


def test_uri_mapper_without_base_needs_local_fs() -> None:
    with pytest.raises(ValueError):
        uri_mapper("")
