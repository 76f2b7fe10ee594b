"""Data-access layer adapters for cachesql."""
