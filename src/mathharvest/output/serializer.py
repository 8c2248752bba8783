"""MathWebSearch harvest serialization.

The harvest schema mixes attribute-bearing wrapper elements with MathML
subtrees that must be embedded verbatim, so output is written through a small
tag writer instead of a generic tree serializer::

    <mws:harvest xmlns:mws="..." xmlns:m="...">
      <mws:data mws:data_id="0">
        <id>uri</id>
        <text>document text with mathID placeholders</text>
        <metadata></metadata>
        <math local_id="ID">dual MathML</math>
      </mws:data>
      <mws:expr url="ID" mws:data_id="0">content MathML</mws:expr>
    </mws:harvest>
"""

from __future__ import annotations

from io import BytesIO
from typing import BinaryIO, Sequence
from xml.sax.saxutils import escape

from mathharvest.ingestion.markup import NAMESPACE_MATHML, NAMESPACE_MWS
from mathharvest.ingestion.models import Harvest, HarvestFragment

INDENT = "  "
ENCODING = "utf-8"

_ATTR_ESCAPES = {'"': "&quot;", "\n": "&#xA;", "\r": "&#xD;", "\t": "&#x9;"}


class TagWriter:
    """Indenting XML writer exposing start tag, text, raw and end tag primitives."""

    def __init__(self, stream: BinaryIO, indent: str = INDENT) -> None:
        self._stream = stream
        self._indent = indent
        self._depth = 0
        self._started = False

    def start(self, name: str, attributes: Sequence[tuple[str, str]] = ()) -> None:
        self._newline()
        rendered = "".join(f" {key}=\"{escape(value, _ATTR_ESCAPES)}\"" for key, value in attributes)
        self._write(f"<{name}{rendered}>")
        self._depth += 1

    def text(self, data: str) -> None:
        self._write(escape(data))

    def raw(self, markup: str) -> None:
        self._write(markup)

    def end(self, name: str, *, inline: bool = True) -> None:
        self._depth -= 1
        if not inline:
            self._newline()
        self._write(f"</{name}>")

    def element(self, name: str, data: str = "", attributes: Sequence[tuple[str, str]] = ()) -> None:
        self.start(name, attributes)
        self.text(data)
        self.end(name)

    def close(self) -> None:
        self._write("\n")

    def _newline(self) -> None:
        if self._started:
            self._write("\n" + self._indent * self._depth)
        self._started = True

    def _write(self, data: str) -> None:
        self._stream.write(data.encode(ENCODING))


def write_harvest(harvest: Harvest, stream: BinaryIO) -> None:
    """Write ``harvest`` to ``stream``; I/O errors propagate unchanged."""

    writer = TagWriter(stream)
    writer.start("mws:harvest", [("xmlns:mws", NAMESPACE_MWS), ("xmlns:m", NAMESPACE_MATHML)])
    for fragment in harvest:
        _write_fragment(writer, fragment)
    writer.end("mws:harvest", inline=False)
    writer.close()


def serialize_harvest(harvest: Harvest) -> bytes:
    buffer = BytesIO()
    write_harvest(harvest, buffer)
    return buffer.getvalue()


def serialize_fragment(fragment: HarvestFragment) -> bytes:
    return serialize_harvest(Harvest(fragments=(fragment,)))


def _write_fragment(writer: TagWriter, fragment: HarvestFragment) -> None:
    writer.start("mws:data", [("mws:data_id", fragment.id)])
    writer.element("id", fragment.uri)
    writer.element("text", fragment.xhtml_content)
    writer.element("metadata")
    for formula in fragment.formulae:
        writer.start("math", [("local_id", formula.id)])
        writer.raw(formula.dual_mathml)
        writer.end("math")
    writer.end("mws:data", inline=False)

    for formula in fragment.formulae:
        writer.start("mws:expr", [("url", formula.id), ("mws:data_id", fragment.id)])
        writer.raw(formula.content_mathml)
        writer.end("mws:expr")
