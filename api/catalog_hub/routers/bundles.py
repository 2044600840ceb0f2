# catalog_hub/routers/bundles.py
"""
Bundles Router - bundle creation, component management and availability.
"""
from __future__ import annotations
from fastapi import APIRouter, HTTPException, Depends

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import get_session
from catalog_hub.models import (
    BundleCreateIn, BundleCreateOut, BundleComponentIn, BundleAvailabilityOut,
)
from catalog_hub.services.bundles import BundleService
from catalog_hub.utils import raise_for_result

router = APIRouter(prefix="/bundles", tags=["Bundles"])


@router.post("", response_model=BundleCreateOut, status_code=201)
async def create_bundle(
    request: BundleCreateIn,
    db: AsyncSession = Depends(get_session),
):
    """
    Create a BUNDLED product from SIMPLE components.

    On validation failure responds 400 with one error string per offending component.
    """
    components = [c.model_dump() for c in request.components]
    result = await BundleService(db).create_bundle(request.name, request.sku, components)
    raise_for_result(result, with_errors=True)
    return BundleCreateOut(bundle_id=result.value)


@router.post("/{bundle_id}/components", response_model=BundleAvailabilityOut)
async def add_component(
    bundle_id: int,
    request: BundleComponentIn,
    db: AsyncSession = Depends(get_session),
):
    result = await BundleService(db).add_component(bundle_id, request.product_id, request.quantity_needed)
    raise_for_result(result, with_errors=True)
    return BundleAvailabilityOut(bundle_id=bundle_id, available=result.value)


@router.delete("/{bundle_id}/components/{component_id}", response_model=BundleAvailabilityOut)
async def remove_component(
    bundle_id: int,
    component_id: int,
    db: AsyncSession = Depends(get_session),
):
    result = await BundleService(db).remove_component(bundle_id, component_id)
    raise_for_result(result)
    return BundleAvailabilityOut(bundle_id=bundle_id, available=result.value)


@router.post("/{bundle_id}/recompute", response_model=BundleAvailabilityOut)
async def recompute_bundle(
    bundle_id: int,
    db: AsyncSession = Depends(get_session),
):
    available = await BundleService(db).recompute_availability(bundle_id)
    if available is None:
        raise HTTPException(404, detail=f"Bundle {bundle_id} not found")
    return BundleAvailabilityOut(bundle_id=bundle_id, available=available)
