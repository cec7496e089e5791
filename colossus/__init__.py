"""COLOSSUS Terminal: a monochrome desktop terminal."""

__version__ = "0.3.0"
