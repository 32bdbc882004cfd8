"""Nodebase: node-based workflow automation backend."""

__version__ = "0.1.0"
