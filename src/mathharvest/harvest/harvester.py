"""Recursive, concurrent harvesting of a directory tree.

Every directory becomes its own asyncio task and every accepted file its own
worker-thread job. Each directory with at least one accepted file yields one
harvest, handed to the writer independently of all other directories.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any, Callable

from mathharvest.harvest.filesystem import ROOT_PATH, HarvestFS, join_path
from mathharvest.harvest.jobs import HarvestJob, harvest_fragments
from mathharvest.ingestion.models import Harvest

LOGGER = logging.getLogger(__name__)

Accept = Callable[[str], bool]
UriMapper = Callable[[str], str]
HarvestWriter = Callable[[str, Harvest], Any]


@dataclass(slots=True)
class HarvestReport:
    """Aggregate outcome of one tree harvest."""

    directories_scanned: int = 0
    directories_emitted: list[str] = field(default_factory=list)
    directories_failed: list[str] = field(default_factory=list)
    documents: int = 0
    fragments: int = 0
    formulae: int = 0

    @property
    def failed_documents(self) -> int:
        return self.documents - self.fragments

    def to_dict(self) -> dict[str, int | list[str]]:
        return {
            "directories_scanned": self.directories_scanned,
            "directories_emitted": sorted(self.directories_emitted),
            "directories_failed": sorted(self.directories_failed),
            "documents": self.documents,
            "fragments": self.fragments,
            "failed_documents": self.failed_documents,
            "formulae": self.formulae,
        }


class CompletionBarrier:
    """Counts outstanding branches and wakes waiters once none remain."""

    def __init__(self) -> None:
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()

    def add(self, count: int = 1) -> None:
        self._pending += count
        self._idle.clear()

    def done(self) -> None:
        if self._pending <= 0:
            raise RuntimeError("CompletionBarrier.done() called more times than add()")
        self._pending -= 1
        if self._pending == 0:
            self._idle.set()

    async def wait(self) -> None:
        await self._idle.wait()


class TreeHarvester:
    """Walks a ``HarvestFS`` and emits one harvest per directory."""

    def __init__(
        self,
        fs: HarvestFS,
        accept: Accept,
        uri: UriMapper,
        writer: HarvestWriter,
        *,
        max_concurrency: int | None = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be a positive integer")
        self._fs = fs
        self._accept = accept
        self._uri = uri
        self._writer = writer
        self._max_concurrency = max_concurrency

    async def run(self, root: str = ROOT_PATH) -> HarvestReport:
        report = HarvestReport()
        barrier = CompletionBarrier()
        limiter = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        branches: set[asyncio.Task[None]] = set()

        def spawn(path: str) -> None:
            barrier.add()
            task = asyncio.create_task(self._harvest_directory(path, spawn, barrier, limiter, report))
            branches.add(task)
            task.add_done_callback(branches.discard)

        spawn(root)
        await barrier.wait()
        return report

    async def _harvest_directory(
        self,
        path: str,
        spawn: Callable[[str], None],
        barrier: CompletionBarrier,
        limiter: asyncio.Semaphore | None,
        report: HarvestReport,
    ) -> None:
        try:
            await self._harvest_branch(path, spawn, limiter, report)
        except Exception:
            LOGGER.exception("[harvest ] [status=failed] %s", path)
            report.directories_failed.append(path)
        finally:
            barrier.done()

    async def _harvest_branch(
        self,
        path: str,
        spawn: Callable[[str], None],
        limiter: asyncio.Semaphore | None,
        report: HarvestReport,
    ) -> None:
        LOGGER.info("[scan    ] [start] %s", path)
        report.directories_scanned += 1

        try:
            entries = await asyncio.to_thread(self._fs.list_dir, path)
        except OSError as exc:
            LOGGER.warning("[scan    ] [status=%s] %s", exc, path)
            report.directories_failed.append(path)
            return

        jobs: list[HarvestJob] = []
        for entry in entries:
            child = join_path(path, entry.name)
            if entry.is_dir:
                spawn(child)
                continue
            if not self._accept(child):
                continue
            jobs.append(HarvestJob.from_file(self._fs, child, self._uri(child)))

        LOGGER.info("[scan    ] [status=ok] [%d fragment(s)] %s", len(jobs), path)
        if not jobs:
            return

        LOGGER.info("[harvest ] [start] %s", path)
        harvest = await harvest_fragments(jobs, limiter=limiter)
        LOGGER.info("[harvest ] [status=ok] %s", path)
        report.documents += len(jobs)
        report.fragments += len(harvest)
        report.formulae += harvest.formula_count

        LOGGER.info("[writer  ] [start] %s", path)
        try:
            await asyncio.to_thread(self._writer, path, harvest)
        except Exception as exc:
            LOGGER.error("[writer  ] [status=%r] %s", str(exc), path)
            report.directories_failed.append(path)
            return
        LOGGER.info("[writer  ] [status=ok] %s", path)
        report.directories_emitted.append(path)


async def harvest_tree_async(
    fs: HarvestFS,
    accept: Accept,
    uri: UriMapper,
    writer: HarvestWriter,
    *,
    max_concurrency: int | None = None,
) -> HarvestReport:
    harvester = TreeHarvester(fs, accept, uri, writer, max_concurrency=max_concurrency)
    return await harvester.run()


def harvest_tree(
    fs: HarvestFS,
    accept: Accept,
    uri: UriMapper,
    writer: HarvestWriter,
    *,
    max_concurrency: int | None = None,
) -> HarvestReport:
    """Harvest every directory below the root of ``fs``; blocks until all branches finished."""

    return asyncio.run(harvest_tree_async(fs, accept, uri, writer, max_concurrency=max_concurrency))
