# catalog_hub/services/conversion.py
"""
Product type conversion - the single entry point for changing a product's category.

Flow (one transaction):
    lock product -> build snapshot -> evaluate rules
    -> write category -> guarantee stock row / recompute derived stock
"""
from __future__ import annotations
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import transaction
from catalog_hub.db_models import ProductCategory
from catalog_hub.repository import CatalogRepository
from catalog_hub.services.bundles import BundleService
from catalog_hub.services.conversion_rules import (
    ProductSnapshot, available_conversions, evaluate,
)
from catalog_hub.services.results import RuleDecision, ServiceResult

logger = logging.getLogger(__name__)

CONVERSION_FAILED = "Failed to convert product type"


class ProductTypeConverter:
    """Validates and applies product type conversions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = CatalogRepository(db)
        self.bundles = BundleService(db)

    async def load_snapshot(self, product_id: int, for_update: bool = False) -> Optional[ProductSnapshot]:
        product = await self.repo.find_product_with_relations(product_id, for_update=for_update)
        if product is None:
            return None
        return ProductSnapshot.from_product(product)

    async def check_conversion(self, product_id: int, target) -> RuleDecision:
        return evaluate(await self.load_snapshot(product_id), target)

    async def get_available_conversions(self, product_id: int) -> Optional[List[ProductCategory]]:
        """Categories the product may move to; None when the product does not exist."""
        snapshot = await self.load_snapshot(product_id)
        if snapshot is None:
            return None
        return available_conversions(snapshot)

    async def convert_product_type(self, product_id: int, target) -> ServiceResult:
        """
        Move the product to ``target`` if the rules allow it.

        Rejections carry the rule's reason and write nothing. Storage errors are
        rolled back, logged and reported as a system failure.
        """
        try:
            async with transaction(self.db):
                snapshot = await self.load_snapshot(product_id, for_update=True)
                decision = evaluate(snapshot, target)
                if not decision.allowed:
                    logger.info("Conversion of product %s to %s rejected: %s", product_id, target, decision.reason)
                    return ServiceResult.rejected(decision.reason)

                target_category = ProductCategory(getattr(target, "value", target).upper())
                await self.repo.update_product_category(product_id, target_category)

                if target_category == ProductCategory.BUNDLED:
                    await self.bundles.recompute_availability(product_id)
                else:
                    # SIMPLE stock is editable; a converted MERGED product keeps the
                    # stock of its own listings until they are merged elsewhere
                    await self.repo.upsert_warehouse_stock(product_id)
            logger.info("Product %s converted %s -> %s", product_id, snapshot.category, target_category.value)
            return ServiceResult.ok({"product_id": product_id, "category": target_category.value})
        except SQLAlchemyError:
            logger.exception("Error converting product %s to %s", product_id, target)
            return ServiceResult.system_error(CONVERSION_FAILED)
