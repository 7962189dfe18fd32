"""Listing persistence: in-memory and PostgreSQL stores"""

from .store import InMemoryStore, ListingStore

__all__ = [
    "InMemoryStore",
    "ListingStore",
]
