"""Runtime configuration for tree harvesting."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping

from mathharvest.harvest.filesystem import DEFAULT_SUFFIXES
from mathharvest.output.sinks import DEFAULT_OUTPUT_NAME


@dataclass(frozen=True, slots=True)
class HarvestSettings:
    """Validated harvester settings, usually read from the environment."""

    suffixes: tuple[str, ...] = DEFAULT_SUFFIXES
    uri_base: str = ""
    max_concurrency: int | None = None
    output_name: str = DEFAULT_OUTPUT_NAME

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "HarvestSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        raw_suffixes = source.get("MATHHARVEST_SUFFIXES", "").strip()
        suffixes = tuple(part.strip() for part in raw_suffixes.split(",") if part.strip()) or DEFAULT_SUFFIXES

        uri_base = source.get("MATHHARVEST_URI_BASE", "").strip()
        output_name = source.get("MATHHARVEST_OUTPUT_NAME", DEFAULT_OUTPUT_NAME).strip()
        if not output_name or "/" in output_name:
            raise ValueError("MATHHARVEST_OUTPUT_NAME must be a plain file name")

        raw_limit = source.get("MATHHARVEST_MAX_CONCURRENCY", "").strip()
        max_concurrency: int | None = None
        if raw_limit:
            try:
                max_concurrency = int(raw_limit)
            except ValueError as exc:
                raise ValueError("MATHHARVEST_MAX_CONCURRENCY must be an integer") from exc
            if max_concurrency < 1:
                raise ValueError("MATHHARVEST_MAX_CONCURRENCY must be a positive integer")

        return cls(
            suffixes=suffixes,
            uri_base=uri_base,
            max_concurrency=max_concurrency,
            output_name=output_name,
        )
