# catalog_hub/services/merge.py
"""
Merge Service - combine channel listings of the same item into one MERGED product.

Source products are kept; only their PlatformProduct rows move to the merged
product. Each moved row remembers its source so the merged stock can be
summed from the sources and a single listing can be unmerged again.
"""
from __future__ import annotations
import logging
import time
import uuid
from typing import Dict, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import transaction
from catalog_hub.db_models import Product, ProductCategory
from catalog_hub.repository import CatalogRepository
from catalog_hub.services.results import ServiceResult

logger = logging.getLogger(__name__)

DEFAULT_SKU_PREFIX = "MERGED-"


class MergeService:
    """Service for merging and unmerging multi-channel products."""

    def __init__(self, db: AsyncSession, sku_prefix: Optional[str] = None):
        self.db = db
        self.repo = CatalogRepository(db)
        self.sku_prefix = DEFAULT_SKU_PREFIX if sku_prefix is None else sku_prefix

    def generate_sku(self) -> str:
        return f"{self.sku_prefix}{int(time.time() * 1000)}-{uuid.uuid4().hex[:6].upper()}"

    @staticmethod
    def check_candidate(product: Product) -> Optional[str]:
        """Reason the product cannot take part in a merge, or None."""
        if product.category == ProductCategory.BUNDLED:
            return "Cannot merge BUNDLED products"
        if product.category == ProductCategory.SIMPLE and product.used_in_bundles:
            return f"Cannot merge {product.name} - it's used as a component in bundles"
        return None

    # =========================================================================
    # Merge / unmerge
    # =========================================================================

    async def merge_products(self, product_ids: Sequence[int], merged_name: str) -> ServiceResult:
        """
        Merge ``product_ids`` into a new MERGED product named ``merged_name``.

        The whole operation is rejected if any candidate is missing, BUNDLED,
        or a SIMPLE product used as a bundle component. Value is the new id.
        """
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return ServiceResult.rejected("Select at least one product to merge")
        if not (merged_name or "").strip():
            return ServiceResult.rejected("Merged product name is required")

        try:
            async with transaction(self.db):
                products = await self.repo.get_products(ids, for_update=True)
                for product_id in ids:
                    product = products.get(product_id)
                    if product is None:
                        return ServiceResult.rejected(f"Product {product_id} not found")
                    reason = self.check_candidate(product)
                    if reason:
                        logger.info("Merge of %s rejected: %s", ids, reason)
                        return ServiceResult.rejected(reason)

                # MERGED candidates whose stock is summed from sources end up with no
                # listings; ones holding their own listings become sources themselves
                emptied = [
                    pid for pid in ids
                    if products[pid].category == ProductCategory.MERGED
                    and all(link.source_product_id is not None for link in products[pid].platform_links)
                ]

                merged = await self.repo.create_product(
                    name=merged_name.strip(),
                    sku=self.generate_sku(),
                    category=ProductCategory.MERGED,
                )
                moved = await self.repo.reparent_platform_links(ids, merged.id)
                available = await self.recompute_merged_inventory(merged.id)
                for pid in emptied:
                    await self.recompute_merged_inventory(pid)
            logger.info(
                "Merged products %s into %s (%s): %d listings moved, available=%s",
                ids, merged.id, merged.sku, moved, available,
            )
            return ServiceResult.ok(merged.id)
        except SQLAlchemyError:
            logger.exception("Error merging products %s", ids)
            return ServiceResult.system_error("Failed to merge products")

    async def unmerge_link(self, link_id: int) -> ServiceResult:
        """Give a merged listing back to its source product and recompute the merged stock."""
        try:
            async with transaction(self.db):
                link = await self.repo.get_platform_link(link_id)
                if link is None:
                    return ServiceResult.rejected(f"Platform listing {link_id} not found")
                # Owning product first, then the listing, as merge_products does
                await self.repo.get_products([link.product_id], for_update=True)
                link = await self.repo.get_platform_link(link_id, for_update=True)
                if link.source_product_id is None or link.source_product_id == link.product_id:
                    return ServiceResult.rejected("Listing is not part of a merged product")

                merged_id = link.product_id
                source_id = link.source_product_id
                link.product_id = source_id
                link.source_product_id = None
                await self.db.flush()
                available = await self.recompute_merged_inventory(merged_id)
            logger.info("Listing %s unmerged from %s back to %s", link_id, merged_id, source_id)
            return ServiceResult.ok({"merged_id": merged_id, "product_id": source_id, "available": available})
        except SQLAlchemyError:
            logger.exception("Error unmerging listing %s", link_id)
            return ServiceResult.system_error("Failed to unmerge listing")

    # =========================================================================
    # Derived inventory
    # =========================================================================

    async def recompute_merged_inventory(self, merged_product_id: int) -> Optional[int]:
        """
        Sum the available stock of every source product behind the merged
        product's active listings and store it as available and total.

        Runs inside the caller's transaction. Returns None for non-MERGED products.
        """
        merged = (await self.repo.get_products([merged_product_id], for_update=True)).get(merged_product_id)
        if merged is None or merged.category != ProductCategory.MERGED:
            logger.debug("Skipping merged inventory recompute for %s", merged_product_id)
            return None

        sources: Dict[int, Product] = {}
        for link in await self.repo.links_for_product(merged_product_id, active_only=True):
            if link.source_product is not None:
                sources[link.source_product.id] = link.source_product

        total = 0
        for source in sources.values():
            available = source.available
            if available < 0:
                logger.warning(
                    "Source product %s of merged %s has negative available stock (%s)",
                    source.id, merged_product_id, available,
                )
                available = 0
            total += available

        await self.repo.upsert_warehouse_stock(merged_product_id, {"available": total, "total": total})
        return total

    async def recompute_merged_for_source(self, source_product_id: int) -> Dict[int, int]:
        """Recompute every merged product fed by the source; returns {merged_id: available}."""
        results: Dict[int, int] = {}
        for merged_id in await self.repo.merged_products_for_source(source_product_id):
            available = await self.recompute_merged_inventory(merged_id)
            if available is not None:
                results[merged_id] = available
        return results

