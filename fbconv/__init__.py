"""XML element tree with path queries, FB2 book and archive detection, and layered configuration reading."""

__version__ = "0.1.0"

__all__ = [
    "archive",
    "bookdetect",
    "confencoders",
    "confreader",
    "confsource",
    "xmldoc",
    "xmlhelpers",
    "xmlpath",
    "xmltree",
]