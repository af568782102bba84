"""Requirement sync core: keeps Vitareq requirements in step with the object graph store."""

__version__ = "0.1.0"
