from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field

from ..models.order import OrderStatus
from .common import PageMeta

class OrderItemCreate(BaseModel):
    medicine_id: int
    quantity: int = Field(..., ge=1)

class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(..., min_length=1)
    delivery_address: Optional[str] = None
    delivery_instructions: Optional[str] = None
    notes: Optional[str] = None

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None

class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medicine_id: int
    medicine_name: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float
    prescription_required: bool

class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    order_number: str
    total_amount: float
    status: OrderStatus
    delivery_address: Optional[str] = None
    delivery_instructions: Optional[str] = None
    notes: Optional[str] = None
    item_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class OrderDetail(OrderResponse):
    items: List[OrderItemResponse]

class OrderList(BaseModel):
    orders: List[OrderResponse]
    pagination: PageMeta

class OrderStats(BaseModel):
    period_days: int
    total_orders: int
    by_status: Dict[str, int]
    total_revenue: float
    average_order_value: float
