"""Feed synchronization pipeline: fetch, deduplicate, store, embed."""

__version__ = "0.1.0"
