"""Back office for a single-page portfolio site."""

__version__ = "1.0.0"
