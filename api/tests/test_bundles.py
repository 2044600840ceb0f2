"""Test bundle validation, creation and derived availability."""

import pytest
from sqlalchemy import select

from catalog_hub.db_models import BundleComponent, ProductCategory
from catalog_hub.repository import CatalogRepository
from catalog_hub.services.bundles import BundleService, bundle_availability
from catalog_hub.services.conversion import ProductTypeConverter
from catalog_hub.services.products import ProductService


class TestBundleAvailability:
    """The pure min/floor calculation."""

    def test_min_of_floors(self):
        assert bundle_availability([(10, 2), (9, 3)]) == 3

    def test_zero_quantity_does_not_gate(self):
        assert bundle_availability([(0, 0), (7, 2)]) == 3

    def test_only_zero_quantity_components_yield_zero(self):
        assert bundle_availability([(50, 0)]) == 0

    def test_no_components_yield_zero(self):
        assert bundle_availability([]) == 0

    def test_negative_stock_counts_as_zero(self):
        assert bundle_availability([(-4, 1), (10, 1)]) == 0


@pytest.mark.anyio
class TestValidateComponents:

    async def test_all_simple_is_valid(self, session, catalog):
        a = await catalog.product("A-1")
        b = await catalog.product("B-1")
        result = await BundleService(session).validate_components([a.id, b.id])
        assert result.valid
        assert result.errors == []

    async def test_non_simple_named_by_sku(self, session, catalog):
        a = await catalog.product("A-1")
        conf = await catalog.product("CONF-9", category=ProductCategory.CONFIGURABLE, name="Widget")
        result = await BundleService(session).validate_components([a.id, conf.id])
        assert not result.valid
        assert len(result.errors) == 1
        assert "CONF-9" in result.errors[0]
        assert "Widget" in result.errors[0]

    async def test_missing_and_duplicate_candidates(self, session, catalog):
        a = await catalog.product("A-1")
        result = await BundleService(session).validate_components([a.id, 999, a.id])
        assert not result.valid
        assert "Product 999 not found" in result.errors
        assert f"Product {a.id} is listed more than once" in result.errors


@pytest.mark.anyio
class TestCreateBundle:

    async def test_creates_bundle_with_derived_stock(self, session, catalog):
        a = await catalog.product("A-1", available=10)
        b = await catalog.product("B-1", available=9)
        result = await BundleService(session).create_bundle(
            "Gift set", "SET-1",
            [{"product_id": a.id, "quantity_needed": 2}, {"product_id": b.id, "quantity_needed": 3}],
        )
        assert result.success
        bundle_id = result.value
        assert await catalog.category_of(bundle_id) == ProductCategory.BUNDLED
        assert await catalog.stock_of(bundle_id) == (3, 3)

        rows = await session.execute(
            select(BundleComponent.component_id, BundleComponent.quantity_needed)
            .where(BundleComponent.bundle_id == bundle_id)
            .order_by(BundleComponent.component_id)
        )
        assert [tuple(r) for r in rows] == [(a.id, 2), (b.id, 3)]

    async def test_invalid_component_creates_nothing(self, session, catalog):
        a = await catalog.product("A-1", available=10)
        merged = await catalog.product("M-1", category=ProductCategory.MERGED)
        before = await catalog.count_products()

        result = await BundleService(session).create_bundle(
            "Broken", "SET-X",
            [{"product_id": a.id, "quantity_needed": 1}, {"product_id": merged.id, "quantity_needed": 1}],
        )
        assert not result.success
        assert result.is_rejected
        assert any("M-1" in e for e in result.errors)
        assert await catalog.count_products() == before

    async def test_duplicate_sku_rejected(self, session, catalog):
        a = await catalog.product("A-1")
        result = await BundleService(session).create_bundle(
            "Same sku", "A-1", [{"product_id": a.id, "quantity_needed": 1}]
        )
        assert result.is_rejected
        assert "SKU A-1 already exists" in result.errors

    async def test_zero_quantity_only_bundle_has_zero_stock(self, session, catalog):
        a = await catalog.product("A-1", available=40)
        result = await BundleService(session).create_bundle(
            "Freebie", "SET-0", [{"product_id": a.id, "quantity_needed": 0}]
        )
        assert result.success
        assert await catalog.stock_of(result.value) == (0, 0)


@pytest.mark.anyio
class TestRecompute:

    async def test_recompute_is_idempotent(self, session, catalog):
        a = await catalog.product("A-1", available=10)
        b = await catalog.product("B-1", available=9)
        bundle = await catalog.bundle("SET-1", [(a, 2), (b, 3)], available=99)
        service = BundleService(session)

        first = await service.recompute_availability(bundle.id)
        second = await service.recompute_availability(bundle.id)
        await session.commit()
        assert first == second == 3
        assert await catalog.stock_of(bundle.id) == (3, 3)

    async def test_non_bundle_is_skipped(self, session, catalog):
        a = await catalog.product("A-1", available=10)
        assert await BundleService(session).recompute_availability(a.id) is None
        assert await BundleService(session).recompute_availability(12345) is None
        assert await catalog.stock_of(a.id) == (10, 10)

    async def test_component_without_stock_row_counts_as_zero(self, session, catalog):
        a = await catalog.product("A-1", with_stock=False)
        b = await catalog.product("B-1", available=9)
        bundle = await catalog.bundle("SET-1", [(a, 1), (b, 1)])
        assert await BundleService(session).recompute_availability(bundle.id) == 0


@pytest.mark.anyio
class TestComponentManagement:

    async def test_add_and_remove_recompute(self, session, catalog):
        a = await catalog.product("A-1", available=10)
        b = await catalog.product("B-1", available=4)
        bundle = await catalog.bundle("SET-1", [(a, 2)])
        service = BundleService(session)

        added = await service.add_component(bundle.id, b.id, 2)
        assert added.success
        assert added.value == 2
        assert await catalog.stock_of(bundle.id) == (2, 2)

        removed = await service.remove_component(bundle.id, b.id)
        assert removed.success
        assert removed.value == 5

    async def test_add_rejects_duplicates_and_non_simple(self, session, catalog):
        a = await catalog.product("A-1", available=10)
        other = await catalog.bundle("SET-2")
        bundle = await catalog.bundle("SET-1", [(a, 1)])
        service = BundleService(session)

        dup = await service.add_component(bundle.id, a.id, 1)
        assert dup.is_rejected
        assert "already a component" in dup.error

        nested = await service.add_component(bundle.id, other.id, 1)
        assert nested.is_rejected
        assert "SET-2" in nested.error

    async def test_add_to_non_bundle_rejected(self, session, catalog):
        a = await catalog.product("A-1")
        b = await catalog.product("B-1")
        result = await BundleService(session).add_component(a.id, b.id, 1)
        assert result.is_rejected
        assert "is not a BUNDLED product" in result.error

    async def test_remove_unknown_component_rejected(self, session, catalog):
        bundle = await catalog.bundle("SET-1")
        result = await BundleService(session).remove_component(bundle.id, 777)
        assert result.is_rejected

    async def test_round_trip_back_to_simple(self, session, catalog):
        a = await catalog.product("A-1", available=10)
        b = await catalog.product("B-1", available=10)
        service = BundleService(session)
        created = await service.create_bundle(
            "Pair", "PAIR-1",
            [{"product_id": a.id, "quantity_needed": 2}, {"product_id": b.id, "quantity_needed": 1}],
        )
        bundle_id = created.value
        converter = ProductTypeConverter(session)
        assert (await converter.check_conversion(bundle_id, "SIMPLE")).allowed is False

        await service.remove_component(bundle_id, a.id)
        await service.remove_component(bundle_id, b.id)

        assert await converter.get_available_conversions(bundle_id) == [ProductCategory.SIMPLE]
        result = await converter.convert_product_type(bundle_id, ProductCategory.SIMPLE)
        assert result.success
        assert await catalog.category_of(bundle_id) == ProductCategory.SIMPLE


@pytest.fixture
def locked_ids(monkeypatch):
    """Product ids in the order their rows are locked FOR UPDATE."""
    order = []

    def record(name, ids_of):
        original = getattr(CatalogRepository, name)

        async def locking(self, key, *args, **kwargs):
            if kwargs.get("for_update"):
                order.extend(ids_of(key))
            return await original(self, key, *args, **kwargs)

        monkeypatch.setattr(CatalogRepository, name, locking)

    record("get_products", list)
    record("find_product_with_relations", lambda pid: [pid])
    record("get_bundle_with_components", lambda pid: [pid])
    return order


@pytest.mark.anyio
class TestLockOrder:
    """Components are locked before the bundles derived from them."""

    async def test_add_component(self, session, catalog, locked_ids):
        a = await catalog.product("A-1", available=10)
        b = await catalog.product("B-1", available=4)
        bundle = await catalog.bundle("SET-1", [(a, 2)])

        assert (await BundleService(session).add_component(bundle.id, b.id, 1)).success
        assert locked_ids.index(b.id) < locked_ids.index(bundle.id)

    async def test_remove_component(self, session, catalog, locked_ids):
        a = await catalog.product("A-1", available=10)
        bundle = await catalog.bundle("SET-1", [(a, 2)])

        assert (await BundleService(session).remove_component(bundle.id, a.id)).success
        assert locked_ids.index(a.id) < locked_ids.index(bundle.id)

    async def test_stock_edit(self, session, catalog, locked_ids):
        a = await catalog.product("A-1", available=10)
        bundle = await catalog.bundle("SET-1", [(a, 2)])

        assert (await ProductService(session).update_stock(a.id, {"available": 3})).success
        assert locked_ids.index(a.id) < locked_ids.index(bundle.id)
