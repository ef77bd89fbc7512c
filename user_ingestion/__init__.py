"""Paged bulk ingestion of user records from a single HTTP endpoint."""

__version__ = "0.1.0"
