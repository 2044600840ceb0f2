from typing import Optional, Dict, List, Any
from pydantic import BaseModel, Field

from catalog_hub.db_models import ProductCategory

class ConvertIn(BaseModel):
    target_type: str

class ConvertOut(BaseModel):
    success: bool
    message: str

class ConversionCheckOut(BaseModel):
    allowed: bool
    reason: Optional[str] = None

class AvailableConversionsOut(BaseModel):
    product_id: int
    available_types: List[ProductCategory]

class StockUpdateIn(BaseModel):
    total: Optional[int] = Field(default=None, ge=0)
    available: Optional[int] = Field(default=None, ge=0)
    in_order: Optional[int] = Field(default=None, ge=0)
    awaiting: Optional[int] = Field(default=None, ge=0)

class StockUpdateOut(BaseModel):
    product_id: int
    stock: Dict[str, int]
    bundles: Dict[int, int] = Field(default_factory=dict)
    merged: Dict[int, int] = Field(default_factory=dict)

class BundleComponentIn(BaseModel):
    product_id: int
    quantity_needed: int = Field(default=1, ge=0)

class BundleCreateIn(BaseModel):
    name: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    components: List[BundleComponentIn] = Field(default_factory=list)

class BundleCreateOut(BaseModel):
    bundle_id: int

class BundleAvailabilityOut(BaseModel):
    bundle_id: int
    available: int

class MergeIn(BaseModel):
    product_ids: List[int] = Field(min_length=1)
    name: str = Field(min_length=1)

class MergeOut(BaseModel):
    merged_id: int

class UnmergeOut(BaseModel):
    link_id: int
    merged_id: int
    product_id: int
    available: Optional[int] = None

class RulesOut(BaseModel):
    rules: Dict[str, Dict[str, Any]]
