"""Corpus ingestion: front matter parsing and area loading."""
