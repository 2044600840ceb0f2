# catalog_hub/repository.py
"""
Catalog repository - the narrow persistence interface the business services use.

Every method works on the caller's ``AsyncSession``; committing is left to the
caller (``transaction()`` in the services, ``get_session`` in the routers).
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog_hub.db_models import (
    Product, WarehouseStock, BundleComponent, PlatformProduct,
    ProductCategory, ProductStatus,
)

STOCK_FIELDS = ("total", "available", "in_order", "awaiting")


class CatalogRepository:
    """Data access for products, stock, bundle components and channel links."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Products
    # =========================================================================

    async def find_product_with_relations(self, product_id: int, for_update: bool = False) -> Optional[Product]:
        """
        Load a product with its stock, bundle rows (both directions) and channel links.

        With ``for_update`` the product row is locked until the transaction ends,
        so a decision taken on this snapshot cannot be raced by another writer.
        """
        stmt = (
            select(Product)
            .where(Product.id == product_id)
            .options(
                selectinload(Product.warehouse_stock),
                selectinload(Product.components),
                selectinload(Product.used_in_bundles),
                selectinload(Product.platform_links),
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Product)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_products(self, product_ids: Iterable[int], for_update: bool = False) -> Dict[int, Product]:
        """Load several products in one query, keyed by id."""
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}
        stmt = (
            select(Product)
            .where(Product.id.in_(ids))
            .options(
                selectinload(Product.warehouse_stock),
                selectinload(Product.used_in_bundles),
                selectinload(Product.platform_links),
            )
            .order_by(Product.id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Product)
        result = await self.db.execute(stmt)
        return {p.id: p for p in result.scalars()}

    async def get_product_by_sku(self, sku: str) -> Optional[Product]:
        stmt = select(Product).where(Product.sku == sku)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_product(
        self,
        name: str,
        sku: str,
        category: ProductCategory = ProductCategory.CONFIGURABLE,
        status: ProductStatus = ProductStatus.ACTIVE,
        with_stock: bool = True,
        **fields: Any,
    ) -> Product:
        """Insert a product, optionally with a zeroed warehouse stock row."""
        product = Product(name=name, sku=sku, category=category, status=status, **fields)
        if with_stock:
            product.warehouse_stock = WarehouseStock(total=0, available=0, in_order=0, awaiting=0)
        self.db.add(product)
        await self.db.flush()
        return product

    async def update_product_category(self, product_id: int, category: ProductCategory) -> int:
        """Set category and bump updated_at; returns the number of rows touched."""
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(category=category, updated_at=func.now())
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def delete_product(self, product: Product) -> None:
        await self.db.delete(product)
        await self.db.flush()

    # =========================================================================
    # Warehouse stock
    # =========================================================================

    async def get_warehouse_stock(self, product_id: int, for_update: bool = False) -> Optional[WarehouseStock]:
        stmt = select(WarehouseStock).where(WarehouseStock.product_id == product_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_warehouse_stock(
        self,
        product_id: int,
        values: Optional[Mapping[str, int]] = None,
    ) -> WarehouseStock:
        """
        Create the stock row if missing, otherwise apply ``values`` to it.

        Missing fields on create default to 0. Calling with no values is a
        no-op on an existing row, which makes the call safe to repeat.
        """
        values = {k: v for k, v in (values or {}).items() if k in STOCK_FIELDS and v is not None}
        stock = await self.get_warehouse_stock(product_id, for_update=True)
        if stock is None:
            data = {field: 0 for field in STOCK_FIELDS}
            data.update(values)
            stock = WarehouseStock(product_id=product_id, **data)
            self.db.add(stock)
        else:
            for field, value in values.items():
                setattr(stock, field, value)
        await self.db.flush()
        return stock

    # =========================================================================
    # Bundle components
    # =========================================================================

    async def create_bundle_components(
        self,
        bundle_id: int,
        rows: Sequence[Mapping[str, int]],
    ) -> List[BundleComponent]:
        """Insert one BundleComponent per ``{"product_id", "quantity_needed"}`` row."""
        created = []
        for row in rows:
            bc = BundleComponent(
                bundle_id=bundle_id,
                component_id=row["product_id"],
                quantity_needed=row["quantity_needed"],
            )
            self.db.add(bc)
            created.append(bc)
        await self.db.flush()
        return created

    async def get_bundle_with_components(self, bundle_id: int, for_update: bool = False) -> Optional[Product]:
        """Bundle plus every component and its stock, read as one consistent unit."""
        stmt = (
            select(Product)
            .where(Product.id == bundle_id)
            .options(
                selectinload(Product.warehouse_stock),
                selectinload(Product.components)
                .selectinload(BundleComponent.component)
                .selectinload(Product.warehouse_stock),
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Product)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_bundle_component(self, bundle_id: int, component_id: int) -> Optional[BundleComponent]:
        stmt = select(BundleComponent).where(
            BundleComponent.bundle_id == bundle_id,
            BundleComponent.component_id == component_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_bundle_component(self, bundle_component: BundleComponent) -> None:
        await self.db.delete(bundle_component)
        await self.db.flush()

    async def bundles_using_component(self, component_id: int) -> List[int]:
        """Ids of every bundle that lists the product as a component."""
        stmt = (
            select(BundleComponent.bundle_id)
            .where(BundleComponent.component_id == component_id)
            .order_by(BundleComponent.bundle_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    # =========================================================================
    # Platform links
    # =========================================================================

    async def reparent_platform_links(self, product_ids: Sequence[int], new_product_id: int) -> int:
        """
        Move every listing owned by ``product_ids`` onto ``new_product_id``.

        The first owner is remembered in ``source_product_id`` so the merged
        product can still trace each listing back to the stock it stands for.
        Returns the number of listings moved.
        """
        if not product_ids:
            return 0
        await self.db.execute(
            update(PlatformProduct)
            .where(
                PlatformProduct.product_id.in_(product_ids),
                PlatformProduct.source_product_id.is_(None),
            )
            .values(source_product_id=PlatformProduct.product_id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(
            update(PlatformProduct)
            .where(PlatformProduct.product_id.in_(product_ids))
            .values(product_id=new_product_id, updated_at=func.now())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def get_platform_link(self, link_id: int, for_update: bool = False) -> Optional[PlatformProduct]:
        stmt = select(PlatformProduct).where(PlatformProduct.id == link_id).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def links_for_product(self, product_id: int, active_only: bool = True) -> List[PlatformProduct]:
        """Listings currently owned by the product, with their source product's stock loaded."""
        stmt = (
            select(PlatformProduct)
            .where(PlatformProduct.product_id == product_id)
            .options(
                selectinload(PlatformProduct.source_product).selectinload(Product.warehouse_stock),
            )
            .order_by(PlatformProduct.id)
            .execution_options(populate_existing=True)
        )
        if active_only:
            stmt = stmt.where(PlatformProduct.is_active == True)
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def merged_products_for_source(self, source_product_id: int) -> List[int]:
        """Ids of MERGED products that currently own a listing sourced from the product."""
        stmt = (
            select(PlatformProduct.product_id)
            .join(Product, Product.id == PlatformProduct.product_id)
            .where(
                PlatformProduct.source_product_id == source_product_id,
                Product.category == ProductCategory.MERGED,
            )
            .distinct()
            .order_by(PlatformProduct.product_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())
