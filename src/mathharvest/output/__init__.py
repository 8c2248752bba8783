"""Harvest serialization and sinks."""

from .serializer import serialize_fragment, serialize_harvest, write_harvest
from .sinks import DirectoryHarvestWriter, replace_atomically

__all__ = ["DirectoryHarvestWriter", "replace_atomically", "serialize_fragment", "serialize_harvest", "write_harvest"]
