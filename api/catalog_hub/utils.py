from __future__ import annotations
from typing import Any, Dict

from fastapi import HTTPException, Request

from catalog_hub.services.conversion_rules import PRODUCT_NOT_FOUND
from catalog_hub.services.results import ServiceResult
from catalog_hub.settings import Settings, settings as default_settings


def raise_for_result(result: ServiceResult, with_errors: bool = False) -> None:
    """
    Translate a failed ServiceResult into an HTTPException.

    Rule violations become 400 (404 for a missing product) with the exact
    reason; system failures become 500 with the generic message only.
    """
    if result.success:
        return
    if result.is_system_error:
        raise HTTPException(status_code=500, detail=result.error)
    status = 404 if result.error == PRODUCT_NOT_FOUND else 400
    detail: Any = result.error
    if with_errors:
        detail = {"message": result.error, "errors": result.errors}
    raise HTTPException(status_code=status, detail=detail)


def stock_values(payload) -> Dict[str, int]:
    """Only the stock fields the client actually sent."""
    return payload.model_dump(exclude_none=True)


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return getattr(request.app.state, "settings", None) or default_settings
