"""kbplan - knowledge base indexing and evaluation planning."""

__version__ = "0.1.0"
