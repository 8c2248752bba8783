"""Harvest sinks that persist one directory's harvest to disk."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
import tempfile
from typing import BinaryIO, Callable

from mathharvest.harvest.filesystem import ROOT_PATH
from mathharvest.ingestion.models import Harvest
from mathharvest.output.serializer import write_harvest

LOGGER = logging.getLogger(__name__)

DEFAULT_OUTPUT_NAME = "index.harvest"


def replace_atomically(target: Path, write: Callable[[BinaryIO], object]) -> Path:
    """Write ``target`` through a temporary sibling so readers never see a partial file."""

    target.parent.mkdir(parents=True, exist_ok=True)
    handle, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(handle, "wb") as stream:
            write(stream)
        os.replace(temp_name, target)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise
    return target


class DirectoryHarvestWriter:
    """Write each directory's harvest to ``output_dir/<path>/<filename>``."""

    def __init__(self, output_dir: str | Path, filename: str = DEFAULT_OUTPUT_NAME) -> None:
        if not filename or "/" in filename:
            raise ValueError(f"Invalid harvest filename: {filename!r}")
        self._output_dir = Path(output_dir)
        self._filename = filename

    def target_for(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if path in ("", ROOT_PATH):
            return self._output_dir / self._filename
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Harvest path must be relative to the tree root: {path}")
        return self._output_dir.joinpath(*relative.parts) / self._filename

    def __call__(self, path: str, harvest: Harvest) -> Path:
        target = replace_atomically(self.target_for(path), lambda stream: write_harvest(harvest, stream))
        LOGGER.debug("Wrote %d fragment(s) to %s", len(harvest), target)
        return target
