# catalog_hub/services/conversion_rules.py
"""
Product type conversion rules.

Product type hierarchy:
- CONFIGURABLE: default, undesignated products; may become any other type
- SIMPLE: warehouse component SKUs, the only type with editable stock
- BUNDLED: composed of SIMPLE components, stock derived from them
- MERGED: one item combined from several channel listings

Everything here is pure: decisions are taken on a ``ProductSnapshot`` that
the caller loaded inside its own transaction.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from catalog_hub.db_models import Product, ProductCategory
from catalog_hub.services.results import RuleDecision

CONVERSION_ORDER = (
    ProductCategory.SIMPLE,
    ProductCategory.BUNDLED,
    ProductCategory.MERGED,
    ProductCategory.CONFIGURABLE,
)

PRODUCT_NOT_FOUND = "Product not found"
NOT_PERMITTED = "Conversion not permitted"
SIMPLE_TO_BUNDLED_IN_USE = (
    "Cannot convert to BUNDLED while being used as a component in other bundles. "
    "Remove from all bundles first."
)
SIMPLE_TO_MERGED_IN_USE = "Cannot merge SIMPLE products that are used as components"
BUNDLED_HAS_COMPONENTS = "Remove all bundle components before converting to SIMPLE"
BUNDLED_TO_MERGED = "BUNDLED products cannot be merged"
MERGED_TO_BUNDLED = "MERGED products cannot become bundles"
MERGED_STILL_MERGED = "Unmerge products from all channels before converting to SIMPLE"

PRODUCT_TYPE_RULES: Dict[str, Dict[str, Union[str, bool, List[str]]]] = {
    "SIMPLE": {
        "canBecomeBundled": "Must not be used as component in any bundle",
        "canBecomeMerged": "Cannot be merged if used as component",
        "editableStock": True,
        "canBeComponent": True,
        "description": "Warehouse component SKUs - only products with manually editable stock levels",
    },
    "BUNDLED": {
        "canBeComponent": False,
        "canBeMerged": False,
        "requiresComponents": True,
        "componentsType": "SIMPLE only",
        "description": "Products composed of SIMPLE product components",
    },
    "MERGED": {
        "canBeComponent": False,
        "canBecomeBundled": False,
        "combinesChannels": True,
        "description": "Identical products combined from multiple sales channels",
    },
    "CONFIGURABLE": {
        "canConvertTo": ["SIMPLE", "BUNDLED", "MERGED"],
        "isDefault": True,
        "description": "Default undesignated products that can be converted to other types",
    },
}


@dataclass(frozen=True)
class ProductSnapshot:
    """What the rules need to know about a product at decision time."""
    product_id: Optional[int]
    category: str
    component_usage_count: int = 0
    component_count: int = 0
    active_platform_links: int = 0

    @classmethod
    def from_product(cls, product: Product) -> "ProductSnapshot":
        """Build from a product loaded with ``find_product_with_relations``."""
        category = product.category
        return cls(
            product_id=product.id,
            category=category.value if isinstance(category, ProductCategory) else str(category),
            component_usage_count=len(product.used_in_bundles),
            component_count=len(product.components),
            active_platform_links=sum(1 for link in product.platform_links if link.is_active),
        )


def _as_category(value) -> Optional[ProductCategory]:
    if isinstance(value, ProductCategory):
        return value
    try:
        return ProductCategory(str(value).upper())
    except ValueError:
        return None


def evaluate(snapshot: Optional[ProductSnapshot], target) -> RuleDecision:
    """
    Decide whether the product may move to ``target``.

    Returns an allowed decision, or a rejected one carrying the user-facing
    reason. Any pair not listed explicitly is rejected.
    """
    if snapshot is None:
        return RuleDecision.reject(PRODUCT_NOT_FOUND)

    current = _as_category(snapshot.category)
    target = _as_category(target)
    if current is None or target is None:
        return RuleDecision.reject(NOT_PERMITTED)

    if current == ProductCategory.SIMPLE:
        if target == ProductCategory.BUNDLED:
            if snapshot.component_usage_count > 0:
                return RuleDecision.reject(SIMPLE_TO_BUNDLED_IN_USE)
            return RuleDecision.allow()
        if target == ProductCategory.MERGED:
            if snapshot.component_usage_count > 0:
                return RuleDecision.reject(SIMPLE_TO_MERGED_IN_USE)
            return RuleDecision.allow()

    elif current == ProductCategory.BUNDLED:
        if target == ProductCategory.SIMPLE:
            if snapshot.component_count > 0:
                return RuleDecision.reject(BUNDLED_HAS_COMPONENTS)
            return RuleDecision.allow()
        if target == ProductCategory.MERGED:
            return RuleDecision.reject(BUNDLED_TO_MERGED)

    elif current == ProductCategory.MERGED:
        if target == ProductCategory.BUNDLED:
            return RuleDecision.reject(MERGED_TO_BUNDLED)
        if target == ProductCategory.SIMPLE:
            if snapshot.active_platform_links > 1:
                return RuleDecision.reject(MERGED_STILL_MERGED)
            return RuleDecision.allow()

    elif current == ProductCategory.CONFIGURABLE:
        if target != ProductCategory.CONFIGURABLE:
            return RuleDecision.allow()

    # Reverting to CONFIGURABLE and same-type moves are deliberately not allowed
    return RuleDecision.reject(NOT_PERMITTED)


def available_conversions(snapshot: Optional[ProductSnapshot]) -> List[ProductCategory]:
    """Categories the product may legally move to, in display order."""
    if snapshot is None:
        return []
    current = _as_category(snapshot.category)
    return [
        target for target in CONVERSION_ORDER
        if target != current and evaluate(snapshot, target).allowed
    ]


def can_be_component(category) -> bool:
    """Only SIMPLE products can be bundle components."""
    return _as_category(category) == ProductCategory.SIMPLE


def can_edit_stock(category) -> bool:
    """Only SIMPLE products have manually editable stock."""
    return _as_category(category) == ProductCategory.SIMPLE
