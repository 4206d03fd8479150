from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional, List

from ...core.database import get_db
from ...api.deps import get_patient_user, require_feature
from ...services.medicine_service import MedicineService
from ...services.order_service import OrderService
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import PrescriptionResponse
from ...schemas.medicine import (
    CategoryResponse, MedicineResponse, CartAdd, CartQuantity, CartResponse
)
from ...schemas.order import OrderCreate, OrderResponse, OrderDetail
from ...models.order import OrderStatus
from ...models.user import User

router = APIRouter(prefix="/medicine", tags=["Medicine"])

# Catalog

@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(db: Session = Depends(get_db)):
    return MedicineService(db).list_categories()

@router.get("/categories/{category_id}/medicines", response_model=List[MedicineResponse])
async def list_category_medicines(category_id: int, db: Session = Depends(get_db)):
    return MedicineService(db).medicines_by_category(category_id)

@router.get("/medicines", response_model=List[MedicineResponse])
async def search_medicines(
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    prescription_required: Optional[bool] = None,
    sort: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Active medicines; sort is one of price_low, price_high, name."""
    return MedicineService(db).search_medicines(
        search=search,
        category_id=category_id,
        prescription_required=prescription_required,
        sort=sort,
    )

@router.get("/medicines/{medicine_id}", response_model=MedicineResponse)
async def get_medicine(medicine_id: int, db: Session = Depends(get_db)):
    return MedicineService(db).get_medicine(medicine_id, active_only=True)

# Cart

@router.get("/cart", response_model=CartResponse)
async def get_cart(
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return MedicineService(db).get_cart(patient)

@router.post("/cart", response_model=CartResponse)
async def add_to_cart(
    item: CartAdd,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    medicine_service = MedicineService(db)
    medicine_service.add_to_cart(patient, item)
    return medicine_service.get_cart(patient)

@router.put("/cart/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: int,
    quantity_data: CartQuantity,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    """Set an item's quantity; zero or less removes it."""
    medicine_service = MedicineService(db)
    medicine_service.set_cart_quantity(patient, item_id, quantity_data.quantity)
    return medicine_service.get_cart(patient)

@router.delete("/cart/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: int,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    medicine_service = MedicineService(db)
    medicine_service.remove_from_cart(patient, item_id)
    return medicine_service.get_cart(patient)

@router.delete("/cart", response_model=CartResponse)
async def clear_cart(
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    medicine_service = MedicineService(db)
    medicine_service.clear_cart(patient)
    return medicine_service.get_cart(patient)

# Orders

@router.post(
    "/orders",
    response_model=OrderDetail,
    dependencies=[Depends(require_feature("MEDICINE_ORDERING_ENABLED"))]
)
async def place_order(
    order_data: OrderCreate,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return OrderService(db).create_order(patient, order_data)

@router.get("/orders", response_model=List[OrderResponse])
async def list_orders(
    status: Optional[OrderStatus] = None,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return OrderService(db).patient_orders(patient, status)

@router.get("/orders/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return OrderService(db).get_patient_order(patient, order_id)

@router.put("/orders/{order_id}/cancel", response_model=OrderDetail)
async def cancel_order(
    order_id: int,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return OrderService(db).cancel_by_patient(patient, order_id)

# Prescriptions

@router.get("/prescriptions", response_model=List[PrescriptionResponse])
async def list_prescriptions(
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return AppointmentService(db).patient_prescriptions(patient)

@router.get("/prescriptions/{prescription_id}", response_model=PrescriptionResponse)
async def get_prescription(
    prescription_id: int,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return AppointmentService(db).get_prescription(patient, prescription_id)
