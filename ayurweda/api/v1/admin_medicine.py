from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional, List

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...services.medicine_service import MedicineService
from ...services.order_service import OrderService
from ...schemas.common import MessageResponse, page_meta
from ...schemas.medicine import (
    CategoryCreate, CategoryUpdate, CategoryResponse, MedicineCreate, MedicineUpdate,
    MedicineResponse, StockUpdate, InventoryOverview
)
from ...schemas.order import OrderStatusUpdate, OrderDetail, OrderList, OrderStats
from ...models.order import OrderStatus
from ...models.user import User

router = APIRouter(prefix="/admin", tags=["Admin: Medicine"])

MEDICINE_STATUS_FILTERS = {"active": True, "inactive": False}

# Medicines

@router.get("/medicines", response_model=List[MedicineResponse])
async def list_medicines(
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    sort: Optional[str] = "created_date",
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """All medicines including inactive ones unless status narrows them."""
    if status_filter is not None and status_filter not in MEDICINE_STATUS_FILTERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Status must be 'active' or 'inactive'"
        )

    return MedicineService(db).search_medicines(
        search=search,
        category_id=category_id,
        is_active=MEDICINE_STATUS_FILTERS.get(status_filter),
        sort=sort,
    )

@router.post("/medicines", response_model=MedicineResponse)
async def create_medicine(
    medicine_data: MedicineCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return MedicineService(db).create_medicine(medicine_data)

@router.put("/medicines/{medicine_id}", response_model=MedicineResponse)
async def update_medicine(
    medicine_id: int,
    medicine_data: MedicineUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return MedicineService(db).update_medicine(medicine_id, medicine_data)

@router.delete("/medicines/{medicine_id}", response_model=MessageResponse)
async def delete_medicine(
    medicine_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    MedicineService(db).delete_medicine(medicine_id)
    return {"message": "Medicine deleted successfully"}

@router.put("/medicines/{medicine_id}/stock", response_model=MedicineResponse)
async def update_stock(
    medicine_id: int,
    stock_data: StockUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return MedicineService(db).update_stock(medicine_id, stock_data.stock_quantity)

@router.get("/inventory", response_model=InventoryOverview)
async def inventory_overview(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return MedicineService(db).inventory_overview()

# Categories

@router.get("/medicine-categories", response_model=List[CategoryResponse])
async def list_categories(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return MedicineService(db).list_categories_with_counts()

@router.post("/medicine-categories", response_model=CategoryResponse)
async def create_category(
    category_data: CategoryCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return MedicineService(db).create_category(category_data)

@router.put("/medicine-categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return MedicineService(db).update_category(category_id, category_data)

@router.delete("/medicine-categories/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    MedicineService(db).delete_category(category_id)
    return {"message": "Category deleted successfully"}

# Orders

@router.get("/orders", response_model=OrderList)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    orders, total = OrderService(db).list_orders(status_filter, page, limit)
    return {"orders": orders, "pagination": page_meta(page, limit, total)}

@router.get("/orders/stats", response_model=OrderStats)
async def order_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Order counts and revenue over the last 30 days."""
    return OrderService(db).stats()

@router.get("/orders/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return OrderService(db).get_order(order_id)

@router.put("/orders/{order_id}/status", response_model=OrderDetail)
async def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return OrderService(db).update_status(order_id, status_data)
