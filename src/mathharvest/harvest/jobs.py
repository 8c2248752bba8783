"""Per-document harvest jobs and the per-directory fragment funnel."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import BinaryIO, Callable, Sequence

from mathharvest.harvest.filesystem import HarvestFS
from mathharvest.ingestion.extractor import extract_fragment
from mathharvest.ingestion.models import Harvest, HarvestFragment
from mathharvest.output.serializer import write_harvest

LOGGER = logging.getLogger(__name__)

SINGLE_DOCUMENT_ID = "1"


@dataclass(frozen=True, slots=True)
class JobOutcome:
    uri: str
    fragment: HarvestFragment | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.fragment is not None


@dataclass(frozen=True, slots=True)
class HarvestJob:
    """A document waiting to be extracted: how to open it and its uri."""

    reader: Callable[[], BinaryIO]
    uri: str

    @classmethod
    def from_file(cls, fs: HarvestFS, path: str, uri: str) -> "HarvestJob":
        return cls(reader=lambda: fs.open(path), uri=uri)

    def run(self, index: int) -> JobOutcome:
        """Extract the document and stamp ``index`` as its fragment id."""

        LOGGER.info("[fragment] [status=start] %r", self.uri)
        try:
            with self.reader() as stream:
                fragment = extract_fragment(stream, uri=self.uri)
        except Exception as exc:
            LOGGER.warning("[fragment] [status=%r] %r", str(exc), self.uri)
            return JobOutcome(uri=self.uri, error=exc)

        fragment = fragment.with_identity(str(index), self.uri)
        LOGGER.info("[fragment] [status=ok] [%d formula(e)] %r", len(fragment.formulae), self.uri)
        return JobOutcome(uri=self.uri, fragment=fragment)


async def harvest_fragments(
    jobs: Sequence[HarvestJob],
    *,
    limiter: asyncio.Semaphore | None = None,
) -> Harvest:
    """Run every job concurrently and return the successful fragments by uri."""

    outcomes = await collect_outcomes(jobs, limiter=limiter)
    return Harvest.from_fragments(outcome.fragment for outcome in outcomes if outcome.fragment is not None)


async def collect_outcomes(
    jobs: Sequence[HarvestJob],
    *,
    limiter: asyncio.Semaphore | None = None,
) -> list[JobOutcome]:
    """Fan jobs out to worker threads and drain their outcomes from one queue."""

    funnel: asyncio.Queue[JobOutcome] = asyncio.Queue()

    async def _produce(index: int, job: HarvestJob) -> None:
        if limiter is None:
            outcome = await asyncio.to_thread(job.run, index)
        else:
            async with limiter:
                outcome = await asyncio.to_thread(job.run, index)
        await funnel.put(outcome)

    producers = [asyncio.create_task(_produce(index, job)) for index, job in enumerate(jobs)]

    outcomes: list[JobOutcome] = []
    for _ in producers:
        outcomes.append(await funnel.get())
        funnel.task_done()

    await asyncio.gather(*producers)
    return outcomes


def harvest_document(source: BinaryIO, uri: str, sink: BinaryIO) -> HarvestFragment:
    """Harvest a single document and write a one-fragment harvest to ``sink``.

    Extraction and write errors propagate to the caller.
    """

    fragment = extract_fragment(source, uri=uri).with_identity(SINGLE_DOCUMENT_ID, uri)
    write_harvest(Harvest(fragments=(fragment,)), sink)
    return fragment
