from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from mathharvest.ingestion.models import Harvest, HarvestFormula, HarvestFragment, placeholder_for
from mathharvest.ingestion.normalization import normalize_whitespace


def _fragment(uri: str, fragment_id: str = "") -> HarvestFragment:
    return HarvestFragment(id=fragment_id, uri=uri, xhtml_content="text")


def test_harvest_orders_fragments_by_uri() -> None:
    harvest = Harvest.from_fragments([_fragment("b.xhtml", "0"), _fragment("a.xhtml", "1"), _fragment("c/a.xhtml", "2")])

    assert [fragment.uri for fragment in harvest] == ["a.xhtml", "b.xhtml", "c/a.xhtml"]
    assert len(harvest) == 3


def test_with_identity_returns_stamped_copy() -> None:
    extracted = _fragment("")

    stamped = extracted.with_identity("4", "file:///tmp/doc.xhtml")

    assert stamped.id == "4"
    assert stamped.uri == "file:///tmp/doc.xhtml"
    assert extracted.id == ""


def test_fragments_are_immutable() -> None:
    fragment = _fragment("a.xhtml")

    with pytest.raises(FrozenInstanceError):
        fragment.uri = "b.xhtml"  # type: ignore[misc]


def test_formula_placeholder_and_harvest_formula_count() -> None:
    formula = HarvestFormula(id="p3.m1", dual_mathml="<math/>", content_mathml="<ci>x</ci>")
    harvest = Harvest(fragments=(HarvestFragment(id="0", uri="a", xhtml_content="mathp3.m1", formulae=(formula,)),))

    assert formula.placeholder == "mathp3.m1"
    assert placeholder_for("f1") == "mathf1"
    assert harvest.formula_count == 1


def test_normalize_whitespace_collapses_and_trims() -> None:
    assert normalize_whitespace("  one\n\t two   ") == "one two"
