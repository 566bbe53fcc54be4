"""Matcher modules for exact structural shape comparison."""

__all__ = [
    "match",
    "fields",
    "arrays",
    "leaf",
    "common",
]
