"""Sync a library of immutable files between replicas without coordination."""

__version__ = "0.1.0"
