"""Junos set-statement translation and reconciliation engine."""

__version__ = "0.1.0"
