# catalog_hub/services/bundles.py
"""
Bundle Service - bundle composition and derived availability.

Handles:
- Component eligibility (only SIMPLE products may be components)
- Bundle creation, all-or-nothing
- Adding / removing components
- Bundle availability = min over components of floor(available / quantity_needed)
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import transaction
from catalog_hub.db_models import BundleComponent, ProductCategory
from catalog_hub.repository import CatalogRepository
from catalog_hub.services.conversion_rules import PRODUCT_NOT_FOUND, can_be_component
from catalog_hub.services.results import ServiceResult, ValidationResult

logger = logging.getLogger(__name__)


def bundle_availability(parts: Iterable[Tuple[int, int]]) -> int:
    """
    Units of a bundle that can be assembled from ``(available, quantity_needed)`` pairs.

    Components with ``quantity_needed == 0`` are listed but never gate the
    result. With no gating component the answer is 0, never "unlimited".
    Negative stock counts as 0.
    """
    best: Optional[int] = None
    for available, quantity_needed in parts:
        if quantity_needed <= 0:
            continue
        possible = max(available, 0) // quantity_needed
        best = possible if best is None else min(best, possible)
    return best if best is not None else 0


class BundleService:
    """Service keeping bundles and their components consistent."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = CatalogRepository(db)

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate_components(self, component_ids: Sequence[int], for_update: bool = False) -> ValidationResult:
        """Check every candidate exists and is SIMPLE; errors name the offending product."""
        products = await self.repo.get_products(component_ids, for_update=for_update)
        errors: List[str] = []
        seen = set()
        for component_id in component_ids:
            if component_id in seen:
                errors.append(f"Product {component_id} is listed more than once")
                continue
            seen.add(component_id)

            product = products.get(component_id)
            if product is None:
                errors.append(f"Product {component_id} not found")
                continue
            if not can_be_component(product.category):
                errors.append(
                    f"{product.name} ({product.sku}) is not a SIMPLE product and cannot be used as a component"
                )
        return ValidationResult(valid=not errors, errors=errors)

    # =========================================================================
    # Bundle lifecycle
    # =========================================================================

    async def create_bundle(
        self,
        name: str,
        sku: str,
        components: Sequence[Mapping[str, int]],
    ) -> ServiceResult:
        """
        Create a BUNDLED product from ``{"product_id", "quantity_needed"}`` rows.

        Nothing is written unless every component is valid. On success the
        result value is the new bundle id.
        """
        component_ids = [c["product_id"] for c in components]
        try:
            async with transaction(self.db):
                # Lock candidates so none of them changes type before we commit
                validation = await self.validate_components(component_ids, for_update=True)
                errors = list(validation.errors)
                for c in components:
                    if c["quantity_needed"] < 0:
                        errors.append(f"Quantity needed for product {c['product_id']} must be zero or greater")
                if await self.repo.get_product_by_sku(sku) is not None:
                    errors.append(f"SKU {sku} already exists")
                if errors:
                    logger.info("Bundle %s rejected: %s", sku, "; ".join(errors))
                    return ServiceResult.rejected(", ".join(errors), errors)

                bundle = await self.repo.create_product(name=name, sku=sku, category=ProductCategory.BUNDLED)
                await self.repo.create_bundle_components(bundle.id, components)
                available = await self.recompute_availability(bundle.id)
            logger.info(
                "Bundle %s (%s) created with %d components, available=%s",
                bundle.id, sku, len(components), available,
            )
            return ServiceResult.ok(bundle.id)
        except SQLAlchemyError:
            logger.exception("Error creating bundle sku=%s", sku)
            return ServiceResult.system_error("Failed to create bundle")

    async def add_component(self, bundle_id: int, component_id: int, quantity_needed: int) -> ServiceResult:
        """Attach a SIMPLE product to an existing bundle; value is the new availability."""
        try:
            async with transaction(self.db):
                await self._lock_component(component_id)
                reason = await self._check_bundle(bundle_id)
                if reason:
                    return ServiceResult.rejected(reason)
                if quantity_needed < 0:
                    return ServiceResult.rejected("Quantity needed must be zero or greater")

                validation = await self.validate_components([component_id], for_update=True)
                if not validation.valid:
                    return ServiceResult.rejected(", ".join(validation.errors), validation.errors)
                if await self.repo.get_bundle_component(bundle_id, component_id) is not None:
                    return ServiceResult.rejected(f"Product {component_id} is already a component of this bundle")

                await self.repo.create_bundle_components(
                    bundle_id, [{"product_id": component_id, "quantity_needed": quantity_needed}]
                )
                available = await self.recompute_availability(bundle_id)
            logger.info("Component %s added to bundle %s (qty=%s)", component_id, bundle_id, quantity_needed)
            return ServiceResult.ok(available)
        except SQLAlchemyError:
            logger.exception("Error adding component %s to bundle %s", component_id, bundle_id)
            return ServiceResult.system_error("Failed to add bundle component")

    async def remove_component(self, bundle_id: int, component_id: int) -> ServiceResult:
        """Detach a component from a bundle; value is the new availability."""
        try:
            async with transaction(self.db):
                await self._lock_component(component_id)
                reason = await self._check_bundle(bundle_id)
                if reason:
                    return ServiceResult.rejected(reason)
                bc = await self.repo.get_bundle_component(bundle_id, component_id)
                if bc is None:
                    return ServiceResult.rejected(f"Product {component_id} is not a component of this bundle")

                await self.repo.delete_bundle_component(bc)
                available = await self.recompute_availability(bundle_id)
            logger.info("Component %s removed from bundle %s", component_id, bundle_id)
            return ServiceResult.ok(available)
        except SQLAlchemyError:
            logger.exception("Error removing component %s from bundle %s", component_id, bundle_id)
            return ServiceResult.system_error("Failed to remove bundle component")

    async def _lock_component(self, component_id: int) -> None:
        # Components are always locked before the bundles derived from them
        await self.repo.get_products([component_id], for_update=True)

    async def _check_bundle(self, bundle_id: int) -> Optional[str]:
        bundle = await self.repo.find_product_with_relations(bundle_id, for_update=True)
        if bundle is None:
            return PRODUCT_NOT_FOUND
        if bundle.category != ProductCategory.BUNDLED:
            return f"{bundle.name} ({bundle.sku}) is not a BUNDLED product"
        return None

    # =========================================================================
    # Derived availability
    # =========================================================================

    async def recompute_availability(self, bundle_id: int) -> Optional[int]:
        """
        Recompute and store a bundle's available/total from its components.

        Runs inside the caller's transaction; the bundle row is locked while the
        components are read. Returns None when the product is not a bundle.
        """
        bundle = await self.repo.get_bundle_with_components(bundle_id, for_update=True)
        if bundle is None or bundle.category != ProductCategory.BUNDLED:
            logger.debug("Skipping availability recompute for non-bundle %s", bundle_id)
            return None

        available = bundle_availability(self._component_parts(bundle.id, bundle.components))
        await self.repo.upsert_warehouse_stock(bundle.id, {"available": available, "total": available})
        return available

    async def recompute_bundles_for_component(self, component_id: int) -> Dict[int, int]:
        """Recompute every bundle that lists the product; returns {bundle_id: available}."""
        results: Dict[int, int] = {}
        for bundle_id in await self.repo.bundles_using_component(component_id):
            available = await self.recompute_availability(bundle_id)
            if available is not None:
                results[bundle_id] = available
        return results

    @staticmethod
    def _component_parts(bundle_id: int, components: List[BundleComponent]) -> List[Tuple[int, int]]:
        parts = []
        for bc in components:
            available = bc.component.available
            if available < 0:
                logger.warning(
                    "Component %s of bundle %s has negative available stock (%s)",
                    bc.component_id, bundle_id, available,
                )
            parts.append((available, bc.quantity_needed))
        return parts
