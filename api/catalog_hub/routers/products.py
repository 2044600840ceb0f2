# catalog_hub/routers/products.py
"""
Products Router - type conversion, stock edits and deletion.
"""
from __future__ import annotations
from fastapi import APIRouter, HTTPException, Depends, Query

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import get_session
from catalog_hub.models import (
    ConvertIn, ConvertOut, ConversionCheckOut, AvailableConversionsOut,
    StockUpdateIn, StockUpdateOut, RulesOut,
)
from catalog_hub.services.conversion import ProductTypeConverter
from catalog_hub.services.conversion_rules import PRODUCT_NOT_FOUND, PRODUCT_TYPE_RULES
from catalog_hub.services.products import ProductService
from catalog_hub.utils import raise_for_result, stock_values

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("/rules", response_model=RulesOut)
async def get_rules():
    return RulesOut(rules=PRODUCT_TYPE_RULES)


@router.get("/{product_id}/conversions", response_model=AvailableConversionsOut)
async def get_available_conversions(
    product_id: int,
    db: AsyncSession = Depends(get_session),
):
    """Categories the product may legally convert to (possibly empty)."""
    available = await ProductTypeConverter(db).get_available_conversions(product_id)
    if available is None:
        raise HTTPException(404, detail=PRODUCT_NOT_FOUND)
    return AvailableConversionsOut(product_id=product_id, available_types=available)


@router.get("/{product_id}/conversions/check", response_model=ConversionCheckOut)
async def check_conversion(
    product_id: int,
    target_type: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_session),
):
    decision = await ProductTypeConverter(db).check_conversion(product_id, target_type)
    return ConversionCheckOut(allowed=decision.allowed, reason=decision.reason)


@router.post("/{product_id}/convert", response_model=ConvertOut)
async def convert_product(
    product_id: int,
    request: ConvertIn,
    db: AsyncSession = Depends(get_session),
):
    """
    Convert a product to another type.

    400 carries the rule's reason for display; 500 means the store failed.
    """
    result = await ProductTypeConverter(db).convert_product_type(product_id, request.target_type)
    raise_for_result(result)
    return ConvertOut(success=True, message=f"Product converted to {result.value['category']}")


@router.patch("/{product_id}/stock", response_model=StockUpdateOut)
async def update_stock(
    product_id: int,
    request: StockUpdateIn,
    db: AsyncSession = Depends(get_session),
):
    values = stock_values(request)
    if not values:
        raise HTTPException(400, detail="No stock fields given")
    result = await ProductService(db).update_stock(product_id, values)
    raise_for_result(result)
    return StockUpdateOut(product_id=product_id, **result.value)


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_session),
):
    result = await ProductService(db).delete_product(product_id)
    if result.is_rejected and result.error != PRODUCT_NOT_FOUND:
        # Still referenced by bundles
        raise HTTPException(409, detail=result.error)
    raise_for_result(result)
    return {"deleted": product_id}
