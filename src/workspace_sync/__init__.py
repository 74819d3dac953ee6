"""Hierarchical workspace synchronization engine for a document store."""

__version__ = "0.1.0"
