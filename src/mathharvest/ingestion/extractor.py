"""Formula extraction from LaTeXML-produced XHTML documents."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import BinaryIO, Iterator

from lxml import etree

from mathharvest.ingestion.markup import NAMESPACE_MATHML, NAMESPACE_XML, inner_xml, local_name, namespace_of, outer_xml
from mathharvest.ingestion.models import HarvestFormula, HarvestFragment
from mathharvest.ingestion.normalization import normalize_whitespace

LOGGER = logging.getLogger(__name__)

CONTENT_MATHML_ENCODING = "MathML-Content"

# inner text separator emitted between an element's own text and its children
_TEXT_SEPARATOR = " "


@dataclass(slots=True)
class ExtractionError(Exception):
    """A document could not be parsed into an element tree."""

    message: str
    uri: str | None = None

    def __str__(self) -> str:
        if self.uri:
            return f"{self.message} (uri={self.uri})"
        return self.message


@dataclass(slots=True)
class FormulaError(Exception):
    """A formula node is missing its id or its content annotation."""

    message: str
    formula_id: str | None = None

    def __str__(self) -> str:
        if self.formula_id:
            return f"{self.message} (id={self.formula_id})"
        return self.message


def extract_fragment(source: bytes | BinaryIO, *, uri: str | None = None) -> HarvestFragment:
    """Read an XHTML document and return its formulae and placeholder text.

    The returned fragment carries empty ``id`` and ``uri``; the caller stamps
    both. The ``uri`` argument only labels an ``ExtractionError``. Malformed
    formula nodes are logged and left in the document text.
    """

    root = _parse(source, uri)

    formulae: list[HarvestFormula] = []
    seen_ids: set[str] = set()
    placeholder_root: str | None = None

    for element in list(find_formula_nodes(root)):
        try:
            formula = read_formula(element)
        except FormulaError as exc:
            LOGGER.warning("Skipping formula: %s", exc)
            continue

        if formula.id in seen_ids:
            LOGGER.warning("Skipping formula: duplicate id (id=%s)", formula.id)
            continue
        seen_ids.add(formula.id)
        formulae.append(formula)

        if element.getparent() is None:
            placeholder_root = formula.placeholder
        else:
            replace_with_text(element, formula.placeholder)

    content = placeholder_root if placeholder_root is not None else inner_text(root)
    return HarvestFragment(id="", uri="", xhtml_content=content, formulae=tuple(formulae))


def read_formula(math: etree._Element) -> HarvestFormula:
    """Build a formula from a ``<math>`` node or raise ``FormulaError``."""

    annotation = _content_annotation(math)
    formula_id = _formula_id(math)

    if annotation is None:
        raise FormulaError("missing content MathML", formula_id or None)
    if not formula_id:
        raise FormulaError("missing formula id")

    return HarvestFormula(
        id=formula_id,
        dual_mathml=outer_xml(math),
        content_mathml=normalize_whitespace(inner_xml(annotation)),
    )


def find_formula_nodes(root: etree._Element) -> Iterator[etree._Element]:
    """Yield MathML ``<math>`` elements in document order, not descending into them."""

    if namespace_of(root) == NAMESPACE_MATHML and local_name(root) == "math":
        yield root
        return

    for child in root:
        if isinstance(child.tag, str):
            yield from find_formula_nodes(child)


def replace_with_text(element: etree._Element, text: str) -> None:
    """Replace ``element`` in its parent by ``text`` without adding siblings."""

    parent = element.getparent()
    if parent is None:
        raise ValueError("Cannot replace the document root")

    token = text + (element.tail or "")
    previous = element.getprevious()
    if previous is not None:
        previous.tail = (previous.tail or "") + token
    else:
        parent.text = (parent.text or "") + token

    # remove() drops the element together with its tail, which was moved above
    parent.remove(element)


def inner_text(root: etree._Element) -> str:
    parts: list[str] = []
    _inner_text(root, parts)
    return normalize_whitespace("".join(parts))


def _inner_text(element: etree._Element, parts: list[str]) -> None:
    if isinstance(element, etree._Entity):
        parts.append(element.text)
        return
    if not isinstance(element.tag, str):
        return

    parts.append(element.text or "")
    parts.append(_TEXT_SEPARATOR)
    for child in element:
        _inner_text(child, parts)
        parts.append(child.tail or "")


def _parse(source: bytes | BinaryIO, uri: str | None = None) -> etree._Element:
    payload = source if isinstance(source, bytes) else source.read()
    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)
    try:
        return etree.fromstring(payload, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise ExtractionError(f"Failed to parse XHTML: {exc}", uri) from exc


def _content_annotation(math: etree._Element) -> etree._Element | None:
    for semantics in math:
        if local_name(semantics) != "semantics":
            continue
        for annotation in semantics:
            if local_name(annotation) != "annotation-xml":
                continue
            if annotation.get("encoding") == CONTENT_MATHML_ENCODING:
                return annotation
    return None


def _formula_id(math: etree._Element) -> str:
    return math.get("id") or math.get(f"{{{NAMESPACE_XML}}}id") or ""
