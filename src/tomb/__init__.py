"""Tomb: a local, single-user encrypted secret store."""

__version__ = "0.4.0"
