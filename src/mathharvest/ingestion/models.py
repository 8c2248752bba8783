"""Canonical harvest data structures shared by extraction and serialization."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator


@dataclass(frozen=True, slots=True)
class HarvestFormula:
    """A single formula found within a document.

    ``dual_mathml`` holds presentation and content MathML linked through
    ``xref`` attributes; ``content_mathml`` is the content annotation alone.
    """

    id: str
    dual_mathml: str
    content_mathml: str

    @property
    def placeholder(self) -> str:
        """Token substituted for this formula in the document text."""

        return placeholder_for(self.id)


@dataclass(frozen=True, slots=True)
class HarvestFragment:
    """One document within a harvest."""

    id: str
    uri: str
    xhtml_content: str
    formulae: tuple[HarvestFormula, ...] = ()

    def with_identity(self, fragment_id: str, uri: str) -> "HarvestFragment":
        """Return a copy stamped with the aggregator-assigned id and its uri."""

        return replace(self, id=fragment_id, uri=uri)


@dataclass(frozen=True, slots=True)
class Harvest:
    """Fragments of one directory (or one document), ordered by uri."""

    fragments: tuple[HarvestFragment, ...] = field(default_factory=tuple)

    @classmethod
    def from_fragments(cls, fragments: Iterable[HarvestFragment]) -> "Harvest":
        return cls(fragments=tuple(sorted(fragments, key=lambda fragment: fragment.uri)))

    def __iter__(self) -> Iterator[HarvestFragment]:
        return iter(self.fragments)

    def __len__(self) -> int:
        return len(self.fragments)

    @property
    def formula_count(self) -> int:
        return sum(len(fragment.formulae) for fragment in self.fragments)


def placeholder_for(formula_id: str) -> str:
    return "math" + formula_id
