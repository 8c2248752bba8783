"""Document extraction interfaces."""

from .extractor import ExtractionError, FormulaError, extract_fragment, read_formula
from .models import Harvest, HarvestFormula, HarvestFragment

__all__ = [
    "ExtractionError",
    "FormulaError",
    "Harvest",
    "HarvestFormula",
    "HarvestFragment",
    "extract_fragment",
    "read_formula",
]
