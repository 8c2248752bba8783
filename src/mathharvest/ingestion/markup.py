"""Standalone re-serialization of lxml subtrees.

``etree.tostring`` repeats every in-scope namespace declaration on the
serialized node. Harvest output embeds formulae below a root that already
binds ``m`` and ``mws``, so declarations are written only where the source
document declared them, plus any prefixed binding the fragment would
otherwise leave unbound.
"""

from __future__ import annotations

from typing import Mapping
from xml.sax.saxutils import escape

from lxml import etree

NAMESPACE_MATHML = "http://www.w3.org/1998/Math/MathML"
NAMESPACE_MWS = "http://search.mathweb.org/ns"
NAMESPACE_XML = "http://www.w3.org/XML/1998/namespace"

# prefixes bound by the <mws:harvest> root element
OUTPUT_BINDINGS: Mapping[str, str] = {"m": NAMESPACE_MATHML, "mws": NAMESPACE_MWS}

_ATTR_ESCAPES = {'"': "&quot;"}


def outer_xml(element: etree._Element) -> str:
    """Serialize ``element`` and its subtree, excluding its tail."""

    parts: list[str] = []
    _write_node(element, parts, _source_scope(element), standalone=True)
    return "".join(parts)


def inner_xml(element: etree._Element) -> str:
    """Serialize the text and children of ``element`` without the element itself."""

    parts: list[str] = [escape(element.text or "")]
    scope = dict(element.nsmap)
    for child in element:
        _write_node(child, parts, scope, standalone=True)
        parts.append(escape(child.tail or ""))
    return "".join(parts)


def local_name(element: etree._Element) -> str | None:
    """Local part of an element tag, or None for comments and other non-elements."""

    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def namespace_of(element: etree._Element) -> str | None:
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).namespace


def _source_scope(element: etree._Element) -> dict[str | None, str]:
    parent = element.getparent()
    return dict(parent.nsmap) if parent is not None else {}


def _write_node(
    node: etree._Element,
    parts: list[str],
    scope: Mapping[str | None, str],
    *,
    standalone: bool = False,
) -> None:
    if isinstance(node, etree._Comment):
        parts.append(f"<!--{node.text or ''}-->")
        return
    if isinstance(node, etree._ProcessingInstruction):
        body = f" {node.text}" if node.text else ""
        parts.append(f"<?{node.target}{body}?>")
        return
    if isinstance(node, etree._Entity):
        parts.append(node.text)
        return

    nsmap = dict(node.nsmap)
    declarations = _declarations(nsmap, scope, standalone=standalone)

    qname = etree.QName(node)
    tag = f"{node.prefix}:{qname.localname}" if node.prefix else qname.localname

    attributes: list[str] = []
    for key, value in node.attrib.items():
        attributes.append(f"{_attribute_name(key, nsmap, declarations)}=\"{escape(value, _ATTR_ESCAPES)}\"")

    head = [tag]
    for prefix, uri in declarations.items():
        name = f"xmlns:{prefix}" if prefix else "xmlns"
        head.append(f"{name}=\"{escape(uri, _ATTR_ESCAPES)}\"")
    head.extend(attributes)

    if node.text is None and len(node) == 0:
        parts.append(f"<{' '.join(head)}/>")
        return

    parts.append(f"<{' '.join(head)}>")
    parts.append(escape(node.text or ""))
    for child in node:
        _write_node(child, parts, nsmap)
        parts.append(escape(child.tail or ""))
    parts.append(f"</{tag}>")


def _declarations(
    nsmap: Mapping[str | None, str],
    scope: Mapping[str | None, str],
    *,
    standalone: bool,
) -> dict[str | None, str]:
    declared: dict[str | None, str] = {}
    for prefix, uri in nsmap.items():
        if scope.get(prefix) != uri:
            declared[prefix] = uri
        elif standalone and prefix is not None and OUTPUT_BINDINGS.get(prefix) != uri:
            declared[prefix] = uri
    return declared


def _attribute_name(key: str, nsmap: Mapping[str | None, str], declarations: dict[str | None, str]) -> str:
    qname = etree.QName(key)
    if qname.namespace is None:
        return qname.localname
    if qname.namespace == NAMESPACE_XML:
        return f"xml:{qname.localname}"

    for prefix, uri in nsmap.items():
        if prefix is not None and uri == qname.namespace:
            return f"{prefix}:{qname.localname}"

    # lxml keeps attribute namespaces even when no prefix is in scope
    prefix = f"ns{len(declarations)}"
    declarations[prefix] = qname.namespace
    return f"{prefix}:{qname.localname}"
