"""Shared test fixtures: a fresh in-memory catalog for every test."""

import os
import tempfile

# Keep log files out of the working tree; must run before settings are imported
os.environ.setdefault("CATALOG_DATA_ROOT", tempfile.mkdtemp(prefix="catalog-hub-tests-"))

import pytest
from sqlalchemy import select

from catalog_hub.database import Database
from catalog_hub.db_models import (
    BundleComponent, PlatformProduct, Product, ProductCategory, WarehouseStock,
)


class CatalogFactory:
    """Builds committed catalog rows for a test."""

    def __init__(self, session):
        self.session = session

    async def product(
        self,
        sku,
        category=ProductCategory.SIMPLE,
        available=0,
        name=None,
        platforms=(),
        with_stock=True,
        active=True,
    ):
        product = Product(name=name or f"Product {sku}", sku=sku, category=category)
        if with_stock:
            product.warehouse_stock = WarehouseStock(total=available, available=available)
        for platform in platforms:
            product.platform_links.append(
                PlatformProduct(platform=platform, platform_sku=f"{sku}-{platform.value}", is_active=active)
            )
        self.session.add(product)
        await self.session.commit()
        return product

    async def bundle(self, sku, components=(), available=0, name=None):
        """``components`` is a list of (product, quantity_needed)."""
        bundle = Product(name=name or f"Bundle {sku}", sku=sku, category=ProductCategory.BUNDLED)
        bundle.warehouse_stock = WarehouseStock(total=available, available=available)
        self.session.add(bundle)
        await self.session.flush()
        for component, qty in components:
            self.session.add(BundleComponent(bundle_id=bundle.id, component_id=component.id, quantity_needed=qty))
        await self.session.commit()
        return bundle

    async def link_ids(self, product_id):
        result = await self.session.execute(
            select(PlatformProduct.id).where(PlatformProduct.product_id == product_id).order_by(PlatformProduct.id)
        )
        return list(result.scalars())

    async def category_of(self, product_id):
        result = await self.session.execute(select(Product.category).where(Product.id == product_id))
        return result.scalar_one_or_none()

    async def stock_of(self, product_id):
        """(available, total) or None when the product has no stock row."""
        result = await self.session.execute(
            select(WarehouseStock.available, WarehouseStock.total).where(WarehouseStock.product_id == product_id)
        )
        row = result.one_or_none()
        return None if row is None else (row.available, row.total)

    async def count_products(self):
        result = await self.session.execute(select(Product.id))
        return len(result.all())


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def database():
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session_factory() as s:
        yield s


@pytest.fixture
def catalog(session):
    return CatalogFactory(session)
