"""Crawlflow backend: workflow DAG construction, validation and storage."""

__version__ = "0.1.0"
