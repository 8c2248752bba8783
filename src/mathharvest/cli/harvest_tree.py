"""CLI entrypoint for harvesting XHTML trees into MathWebSearch harvests."""

from __future__ import annotations

import argparse
from io import BytesIO
import json
import logging
from pathlib import Path
import sys

from dotenv import load_dotenv

from mathharvest.config import HarvestSettings
from mathharvest.harvest.filesystem import LocalFS, suffix_filter, uri_mapper
from mathharvest.harvest.harvester import harvest_tree
from mathharvest.harvest.jobs import harvest_document
from mathharvest.ingestion.extractor import ExtractionError
from mathharvest.output.sinks import DirectoryHarvestWriter, replace_atomically

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Harvest LaTeXML XHTML documents for MathWebSearch")
    parser.add_argument("--path", required=True, help="Source directory tree or single XHTML file")
    parser.add_argument("--output-dir", help="Directory receiving harvest files (stdout for a single file)")
    parser.add_argument("--uri-base", help="Base uri prefixed to relative document paths")
    parser.add_argument(
        "--suffix",
        action="append",
        dest="suffixes",
        help="Accepted file suffix; repeat for several (default: .xhtml, .html, .xml)",
    )
    parser.add_argument("--max-concurrency", type=int, help="Upper bound on documents extracted at once")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser.parse_args(argv)


def _harvest_single(source: Path, args: argparse.Namespace, settings: HarvestSettings) -> int:
    uri = uri_mapper(args.uri_base or settings.uri_base, LocalFS(source.parent))(source.name)

    buffer = BytesIO()
    try:
        with source.open("rb") as reader:
            fragment = harvest_document(reader, uri, buffer)
        # nothing reaches the target until the whole document harvested cleanly
        if args.output_dir:
            target = Path(args.output_dir) / f"{source.stem}.harvest"
            replace_atomically(target, lambda sink: sink.write(buffer.getvalue()))
        else:
            sys.stdout.buffer.write(buffer.getvalue())
            sys.stdout.buffer.flush()
    except (ExtractionError, OSError) as exc:
        LOGGER.error("Harvest failed for %s: %s", source, exc)
        return 1

    LOGGER.info("Harvested %d formula(e) from %s", len(fragment.formulae), source)
    return 0


def _harvest_directory(source: Path, args: argparse.Namespace, settings: HarvestSettings) -> int:
    if not args.output_dir:
        LOGGER.error("--output-dir is required when harvesting a directory")
        return 2

    fs = LocalFS(source)
    report = harvest_tree(
        fs,
        suffix_filter(args.suffixes or settings.suffixes),
        uri_mapper(args.uri_base or settings.uri_base, fs),
        DirectoryHarvestWriter(args.output_dir, settings.output_name),
        max_concurrency=args.max_concurrency or settings.max_concurrency,
    )

    print(json.dumps(report.to_dict(), ensure_ascii=True, indent=2))
    return 0 if not report.directories_failed else 1


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(message)s")

    try:
        settings = HarvestSettings.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    if args.max_concurrency is not None and args.max_concurrency < 1:
        LOGGER.error("--max-concurrency must be a positive integer")
        return 2

    source = Path(args.path)
    if source.is_file():
        return _harvest_single(source, args, settings)
    if source.is_dir():
        return _harvest_directory(source, args, settings)

    LOGGER.error("path must be an existing file or directory: %s", source)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
