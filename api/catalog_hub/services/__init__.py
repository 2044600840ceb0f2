# catalog_hub/services/__init__.py
"""
Business logic services for Catalog Hub.
"""
from catalog_hub.services.bundles import BundleService
from catalog_hub.services.conversion import ProductTypeConverter
from catalog_hub.services.merge import MergeService
from catalog_hub.services.products import ProductService

__all__ = [
    "BundleService",
    "MergeService",
    "ProductService",
    "ProductTypeConverter",
]
