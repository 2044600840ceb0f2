# catalog_hub/db_models.py
"""
SQLAlchemy ORM Models for Catalog Hub.

Products, their warehouse stock, bundle composition and channel listings.
"""
from __future__ import annotations
from datetime import datetime
from typing import Optional, List
import enum

from sqlalchemy import (
    String, Integer, BigInteger, Boolean, Text, DateTime,
    ForeignKey, Index, CheckConstraint, UniqueConstraint,
    Enum as SQLEnum, func
)
from sqlalchemy.orm import (
    Mapped, mapped_column, relationship, validates
)

from catalog_hub.database import Base

# BIGSERIAL on PostgreSQL, INTEGER PRIMARY KEY (rowid) on SQLite
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

# ============================================================================
# ENUMS
# ============================================================================

class ProductCategory(str, enum.Enum):
    CONFIGURABLE = "CONFIGURABLE"
    SIMPLE = "SIMPLE"
    BUNDLED = "BUNDLED"
    MERGED = "MERGED"


class ProductStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class Platform(str, enum.Enum):
    AMAZON = "AMAZON"
    EBAY = "EBAY"
    SHOPIFY = "SHOPIFY"
    WIX = "WIX"
    ETSY = "ETSY"
    MULTIORDERS = "MULTIORDERS"


# ============================================================================
# MIXIN for updated_at
# ============================================================================

class TimestampMixin:
    """Mixin for created_at and updated_at columns."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


# ============================================================================
# 1. SUPPLIERS
# ============================================================================

class Supplier(TimestampMixin, Base):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    products: Mapped[List["Product"]] = relationship(back_populates="supplier")


# ============================================================================
# 2. PRODUCTS
# ============================================================================

class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[ProductCategory] = mapped_column(
        SQLEnum(ProductCategory, name="product_category"),
        default=ProductCategory.CONFIGURABLE,
        nullable=False
    )
    status: Mapped[ProductStatus] = mapped_column(
        SQLEnum(ProductStatus, name="product_status"),
        default=ProductStatus.ACTIVE,
        nullable=False
    )
    reorder_point: Mapped[Optional[int]] = mapped_column(Integer)
    supplier_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("suppliers.id", ondelete="SET NULL")
    )

    # Relationships
    supplier: Mapped[Optional["Supplier"]] = relationship(back_populates="products")
    warehouse_stock: Mapped[Optional["WarehouseStock"]] = relationship(
        back_populates="product",
        uselist=False,
        cascade="all, delete-orphan",
    )
    # Rows where this product is the bundle (owned)
    components: Mapped[List["BundleComponent"]] = relationship(
        back_populates="bundle",
        foreign_keys="BundleComponent.bundle_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    # Rows where this product is the component (referenced, not owned)
    used_in_bundles: Mapped[List["BundleComponent"]] = relationship(
        back_populates="component",
        foreign_keys="BundleComponent.component_id",
        passive_deletes="all",
    )
    platform_links: Mapped[List["PlatformProduct"]] = relationship(
        back_populates="product",
        foreign_keys="PlatformProduct.product_id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_products_category", "category"),
        Index("idx_products_supplier", "supplier_id", postgresql_where="supplier_id IS NOT NULL"),
    )

    @validates("category")
    def _validate_category(self, key, value):
        if value is None:
            raise ValueError("Product category cannot be null")
        return ProductCategory(value)

    @property
    def available(self) -> int:
        """Available units, 0 when the product has no stock row."""
        if self.warehouse_stock is None:
            return 0
        return self.warehouse_stock.available


# ============================================================================
# 3. WAREHOUSE STOCK
# ============================================================================

class WarehouseStock(TimestampMixin, Base):
    __tablename__ = "warehouse_stock"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    available: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    in_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    awaiting: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="warehouse_stock")


# ============================================================================
# 4. BUNDLE COMPONENTS
# ============================================================================

class BundleComponent(Base):
    __tablename__ = "bundle_components"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    bundle_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    component_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    quantity_needed: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now(), nullable=False)

    # Relationships
    bundle: Mapped["Product"] = relationship(back_populates="components", foreign_keys=[bundle_id])
    component: Mapped["Product"] = relationship(back_populates="used_in_bundles", foreign_keys=[component_id])

    __table_args__ = (
        UniqueConstraint("bundle_id", "component_id", name="uq_bundle_components_pair"),
        CheckConstraint("quantity_needed >= 0", name="ck_bundle_components_qty_non_negative"),
        Index("idx_bundle_components_component", "component_id"),
    )


# ============================================================================
# 5. PLATFORM PRODUCTS (channel listings)
# ============================================================================

class PlatformProduct(TimestampMixin, Base):
    __tablename__ = "platform_products"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    platform: Mapped[Platform] = mapped_column(
        SQLEnum(Platform, name="platform"),
        nullable=False
    )
    platform_sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Owner before the first merge moved this listing; NULL until then
    source_product_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("products.id", ondelete="SET NULL")
    )

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="platform_links", foreign_keys=[product_id])
    source_product: Mapped[Optional["Product"]] = relationship(foreign_keys=[source_product_id])

    __table_args__ = (
        Index("idx_platform_products_product", "product_id"),
        Index("idx_platform_products_source", "source_product_id", postgresql_where="source_product_id IS NOT NULL"),
    )
