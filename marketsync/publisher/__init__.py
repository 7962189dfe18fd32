"""Listing payload building, lifecycle management and publish-all"""

from .listing_builder import ListingBuilderService
from .listing_manager import ListingManager
from .bulk_publisher import ListingPublisher

__all__ = [
    "ListingBuilderService",
    "ListingManager",
    "ListingPublisher",
]
