from datetime import date, datetime
from typing import Optional, List
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

def check_image_url(value: Optional[str]) -> Optional[str]:
    """Reject non-http(s) URLs and search-result pages posing as images."""
    if value is None or value == "":
        return None
    if not value.startswith(("http://", "https://")):
        raise ValueError("Image URL must start with http:// or https://")
    if "bing.com" in value and not value.lower().split("?")[0].endswith(IMAGE_EXTENSIONS):
        raise ValueError("Image URL must point directly to an image file, not a search results page")
    return value

def check_date_format(value):
    if isinstance(value, str) and value and not DATE_PATTERN.match(value):
        raise ValueError("Expiry date must be in YYYY-MM-DD format")
    if value == "":
        return None
    return value

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v):
        return check_image_url(v)

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v):
        return check_image_url(v)

class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool
    medicine_count: Optional[int] = None

class MedicineBase(BaseModel):
    description: Optional[str] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    reorder_level: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=50)
    dosage_form: Optional[str] = Field(None, max_length=100)
    active_ingredients: Optional[str] = None
    therapeutic_effects: Optional[str] = None
    contraindications: Optional[str] = None
    side_effects: Optional[str] = None
    storage_instructions: Optional[str] = None
    expiry_date: Optional[date] = None
    manufacturer: Optional[str] = Field(None, max_length=255)
    is_prescription_required: Optional[bool] = None
    image_url: Optional[str] = None

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v):
        return check_image_url(v)

    @field_validator("expiry_date", mode="before")
    @classmethod
    def validate_expiry_format(cls, v):
        return check_date_format(v)

class MedicineCreate(MedicineBase):
    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., gt=0)
    category_id: int

class MedicineUpdate(MedicineBase):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[float] = Field(None, gt=0)
    category_id: Optional[int] = None
    is_active: Optional[bool] = None

class StockUpdate(BaseModel):
    stock_quantity: int = Field(..., ge=0)

class MedicineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    category_name: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: float
    stock_quantity: int
    reorder_level: int
    unit: Optional[str] = None
    dosage_form: Optional[str] = None
    active_ingredients: Optional[str] = None
    therapeutic_effects: Optional[str] = None
    contraindications: Optional[str] = None
    side_effects: Optional[str] = None
    storage_instructions: Optional[str] = None
    expiry_date: Optional[date] = None
    manufacturer: Optional[str] = None
    is_prescription_required: bool
    image_url: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

class InventoryOverview(BaseModel):
    total_medicines: int
    active_medicines: int
    total_categories: int
    total_stock_units: int
    stock_value: float
    low_stock: List[MedicineResponse]
    expiring_soon: List[MedicineResponse]
    out_of_stock: int

class CartAdd(BaseModel):
    medicine_id: int
    quantity: int = Field(1, ge=1)

class CartQuantity(BaseModel):
    quantity: int

class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medicine_id: int
    name: str
    price: float
    unit: Optional[str] = None
    image_url: Optional[str] = None
    stock_quantity: int
    quantity: int
    total_price: float

class CartResponse(BaseModel):
    items: List[CartItemResponse]
    item_count: int
    total_amount: float
