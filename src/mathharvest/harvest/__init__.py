"""Concurrent directory-tree harvesting."""

from mathharvest.harvest.filesystem import DirEntry, HarvestFS, LocalFS, suffix_filter, uri_mapper
from mathharvest.harvest.harvester import HarvestReport, TreeHarvester, harvest_tree, harvest_tree_async
from mathharvest.harvest.jobs import HarvestJob, JobOutcome, harvest_document, harvest_fragments

__all__ = [
    "DirEntry",
    "HarvestFS",
    "HarvestJob",
    "HarvestReport",
    "JobOutcome",
    "LocalFS",
    "TreeHarvester",
    "harvest_document",
    "harvest_fragments",
    "harvest_tree",
    "harvest_tree_async",
    "suffix_filter",
    "uri_mapper",
]
