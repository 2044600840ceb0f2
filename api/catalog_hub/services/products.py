# catalog_hub/services/products.py
"""
Product Service - stock edits and deletion, with the recomputations they trigger.

A SIMPLE product's stock feeds every bundle that lists it and every merged
product built from it, so each edit recomputes those dependants in the same
transaction.
"""
from __future__ import annotations
import logging
from typing import Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import transaction
from catalog_hub.repository import CatalogRepository, STOCK_FIELDS
from catalog_hub.services.bundles import BundleService
from catalog_hub.services.conversion_rules import PRODUCT_NOT_FOUND, can_edit_stock
from catalog_hub.services.merge import MergeService
from catalog_hub.services.results import ServiceResult

logger = logging.getLogger(__name__)


class ProductService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = CatalogRepository(db)
        self.bundles = BundleService(db)
        self.merges = MergeService(db)

    async def update_stock(self, product_id: int, values: Mapping[str, int]) -> ServiceResult:
        """Edit a SIMPLE product's stock and cascade to its bundles and merged products."""
        try:
            async with transaction(self.db):
                product = await self.repo.find_product_with_relations(product_id, for_update=True)
                if product is None:
                    return ServiceResult.rejected(PRODUCT_NOT_FOUND)
                if not can_edit_stock(product.category):
                    return ServiceResult.rejected(
                        f"Stock of {product.category.value} products is derived and cannot be edited directly"
                    )

                stock = await self.repo.upsert_warehouse_stock(product_id, values)
                if stock.available < 0:
                    logger.warning("Product %s now has negative available stock (%s)", product_id, stock.available)
                bundles = await self.bundles.recompute_bundles_for_component(product_id)
                merged = await self.merges.recompute_merged_for_source(product_id)
            logger.info(
                "Stock of product %s updated %s; bundles recomputed=%s merged recomputed=%s",
                product_id, dict(values), bundles, merged,
            )
            return ServiceResult.ok({
                "stock": {field: getattr(stock, field) for field in STOCK_FIELDS},
                "bundles": bundles,
                "merged": merged,
            })
        except SQLAlchemyError:
            logger.exception("Error updating stock of product %s", product_id)
            return ServiceResult.system_error("Failed to update product stock")

    async def delete_product(self, product_id: int) -> ServiceResult:
        """Delete a product unless a bundle still uses it as a component."""
        try:
            async with transaction(self.db):
                product = await self.repo.find_product_with_relations(product_id, for_update=True)
                if product is None:
                    return ServiceResult.rejected(PRODUCT_NOT_FOUND)
                if product.used_in_bundles:
                    return ServiceResult.rejected(
                        f"{product.name} ({product.sku}) is used as a component in "
                        f"{len(product.used_in_bundles)} bundle(s). Remove it from all bundles first."
                    )

                merged_ids = await self.repo.merged_products_for_source(product_id)
                await self.repo.delete_product(product)
                for merged_id in merged_ids:
                    await self.merges.recompute_merged_inventory(merged_id)
            logger.info("Product %s deleted", product_id)
            return ServiceResult.ok(product_id)
        except SQLAlchemyError:
            logger.exception("Error deleting product %s", product_id)
            return ServiceResult.system_error("Failed to delete product")
