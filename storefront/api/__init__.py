"""HTTP layer for the catalog service."""
