"""Template field, metafield and category mapping"""

from .category_mapper import CategoryMappingService, ResolvedCategory
from .field_mapper import FieldMappingService

__all__ = [
    "CategoryMappingService",
    "ResolvedCategory",
    "FieldMappingService",
]
