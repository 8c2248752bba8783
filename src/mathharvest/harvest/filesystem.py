"""Filesystem collaborators consumed by the tree harvester."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Iterable, Protocol, runtime_checkable
from urllib.parse import quote

ROOT_PATH = "."
DEFAULT_SUFFIXES = (".xhtml", ".html", ".xml")


@dataclass(frozen=True, slots=True)
class DirEntry:
    name: str
    is_dir: bool


@runtime_checkable
class HarvestFS(Protocol):
    """Directory listing and file opening over slash-separated relative paths."""

    def list_dir(self, path: str) -> list[DirEntry]:
        """Return the entries of ``path``; raise ``OSError`` when unreadable."""

    def open(self, path: str) -> BinaryIO:
        """Open ``path`` for binary reading; raise ``OSError`` when unreadable."""


class LocalFS:
    """``HarvestFS`` rooted at a local directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        """Map a relative harvest path to an absolute local path inside the root."""

        candidate = (self._root / PurePosixPath(path)).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            raise PermissionError(f"Path escapes harvest root: {path}")
        return candidate

    def list_dir(self, path: str) -> list[DirEntry]:
        """List ``path``; symlinked directories are reported as plain entries, never descended."""

        directory = self.resolve(path)
        entries = [
            DirEntry(name=child.name, is_dir=child.is_dir() and not child.is_symlink())
            for child in directory.iterdir()
        ]
        return sorted(entries, key=lambda entry: entry.name)

    def open(self, path: str) -> BinaryIO:
        return self.resolve(path).open("rb")


def join_path(directory: str, name: str) -> str:
    if directory in ("", ROOT_PATH):
        return name
    return f"{directory}/{name}"


def suffix_filter(suffixes: Iterable[str] = DEFAULT_SUFFIXES) -> Callable[[str], bool]:
    """Build an acceptance predicate matching file suffixes case-insensitively."""

    normalized = tuple(
        suffix.lower() if suffix.startswith(".") else f".{suffix.lower()}" for suffix in suffixes if suffix
    )
    if not normalized:
        raise ValueError("At least one suffix is required")

    def accept(path: str) -> bool:
        return path.lower().endswith(normalized)

    return accept


def uri_mapper(base: str, fs: LocalFS | None = None) -> Callable[[str], str]:
    """Build the function mapping a harvest path to the uri stored per fragment.

    With a non-empty ``base`` the relative path is appended to it; otherwise
    the resolved file is reported as a ``file://`` uri, which needs ``fs``.
    """

    if base:
        prefix = base if base.endswith("/") else f"{base}/"

        def to_uri(path: str) -> str:
            return prefix + quote(path)

        return to_uri

    if fs is None:
        raise ValueError("A LocalFS is required to build file:// uris")

    def to_file_uri(path: str) -> str:
        return fs.resolve(path).as_uri()

    return to_file_uri
