"""Invoify: invoice composition, totals, drafts and persistence."""

__version__ = "0.4.0"
