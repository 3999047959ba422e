"""Rising golden particle tree with snow, fireworks and a glyph rain."""

__version__ = "0.1.0"
