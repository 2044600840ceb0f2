# catalog_hub/routers/merge.py
"""
Merge Router - combine channel listings into MERGED products and split them again.
"""
from __future__ import annotations
from fastapi import APIRouter, Depends

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.database import get_session
from catalog_hub.models import MergeIn, MergeOut, UnmergeOut
from catalog_hub.settings import Settings
from catalog_hub.services.merge import MergeService
from catalog_hub.utils import get_app_settings, raise_for_result

router = APIRouter(prefix="/merge", tags=["Merge"])


@router.post("", response_model=MergeOut, status_code=201)
async def merge_products(
    request: MergeIn,
    db: AsyncSession = Depends(get_session),
    app_settings: Settings = Depends(get_app_settings),
):
    service = MergeService(db, sku_prefix=app_settings.MERGED_SKU_PREFIX)
    result = await service.merge_products(request.product_ids, request.name)
    raise_for_result(result)
    return MergeOut(merged_id=result.value)


@router.post("/links/{link_id}/unmerge", response_model=UnmergeOut)
async def unmerge_link(
    link_id: int,
    db: AsyncSession = Depends(get_session),
):
    result = await MergeService(db).unmerge_link(link_id)
    raise_for_result(result)
    return UnmergeOut(link_id=link_id, **result.value)
