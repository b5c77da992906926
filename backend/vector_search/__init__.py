"""Semantic product search over a vector index of catalog embeddings."""

__version__ = "1.0.0"
