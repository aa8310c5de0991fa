# src/version.py — v2
"""Package version."""

__version__ = "0.4.0"
