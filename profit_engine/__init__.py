"""Daily profit and multi-level commission distribution engine."""

__version__ = "1.0.0"
