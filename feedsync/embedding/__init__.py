"""Embedding computation for stored articles."""

from .client import EmbeddingClient, truncate_text

__all__ = ["EmbeddingClient", "truncate_text"]
