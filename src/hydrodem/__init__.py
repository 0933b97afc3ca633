"""Hydrodynamic model terrain builder."""

__version__ = "0.3.0"
