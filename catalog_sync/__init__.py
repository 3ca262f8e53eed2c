"""Catalog synchronization engine: bulk CSV import into a product catalog."""

__version__ = "0.1.0"
