"""Batch website crawling and target-customer classification service."""

__version__ = "1.0.0"
