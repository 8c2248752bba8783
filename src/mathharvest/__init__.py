"""MathWebSearch harvester for LaTeXML-produced XHTML documents."""
