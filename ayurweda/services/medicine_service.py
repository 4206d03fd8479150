from sqlalchemy.orm import Session, joinedload
from sqlalchemy import or_, func
from fastapi import HTTPException, status
from datetime import date, timedelta
from typing import Optional, List
import logging

from ..models.user import User
from ..models.medicine import Medicine, MedicineCategory, CartItem
from ..schemas.medicine import (
    CategoryCreate, CategoryUpdate, MedicineCreate, MedicineUpdate, CartAdd
)

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 30

# Columns that cannot be cleared with an explicit null
REQUIRED_MEDICINE_FIELDS = (
    "name", "price", "category_id", "stock_quantity", "reorder_level",
    "unit", "is_prescription_required", "is_active",
)

SORT_OPTIONS = {
    "price_low": (Medicine.price.asc(),),
    "price_high": (Medicine.price.desc(),),
    "name": (Medicine.name.asc(),),
    "created_date": (Medicine.created_at.desc(), Medicine.id.desc()),
}

class MedicineService:
    def __init__(self, db: Session):
        self.db = db

    # Catalog

    def list_categories(self, include_inactive: bool = False) -> List[MedicineCategory]:
        query = self.db.query(MedicineCategory)
        if not include_inactive:
            query = query.filter(MedicineCategory.is_active == True)
        return query.order_by(MedicineCategory.name).all()

    def search_medicines(
        self,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        prescription_required: Optional[bool] = None,
        is_active: Optional[bool] = True,
        sort: Optional[str] = None
    ) -> List[Medicine]:
        query = self.db.query(Medicine).options(joinedload(Medicine.category))

        if is_active is not None:
            query = query.filter(Medicine.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Medicine.name.ilike(pattern),
                Medicine.description.ilike(pattern),
                Medicine.active_ingredients.ilike(pattern),
            ))
        if category_id is not None:
            query = query.filter(Medicine.category_id == category_id)
        if prescription_required is not None:
            query = query.filter(Medicine.is_prescription_required == prescription_required)

        order = SORT_OPTIONS.get(sort, (Medicine.name.asc(),))
        return query.order_by(*order).all()

    def medicines_by_category(self, category_id: int) -> List[Medicine]:
        self.get_category(category_id, active_only=True)
        return self.search_medicines(category_id=category_id)

    def get_category(self, category_id: int, active_only: bool = False) -> MedicineCategory:
        query = self.db.query(MedicineCategory).filter(MedicineCategory.id == category_id)
        if active_only:
            query = query.filter(MedicineCategory.is_active == True)
        category = query.first()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )
        return category

    def get_medicine(self, medicine_id: int, active_only: bool = False) -> Medicine:
        query = self.db.query(Medicine).filter(Medicine.id == medicine_id)
        if active_only:
            query = query.filter(Medicine.is_active == True)
        medicine = query.first()
        if not medicine:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Medicine not found"
            )
        return medicine

    # Cart

    def get_cart(self, user: User) -> dict:
        items = self.db.query(CartItem).join(Medicine).filter(
            CartItem.user_id == user.id
        ).order_by(CartItem.created_at.desc(), CartItem.id.desc()).all()

        return {
            "items": items,
            "item_count": sum(item.quantity for item in items),
            "total_amount": float(sum(item.total_price for item in items)),
        }

    def add_to_cart(self, user: User, data: CartAdd) -> CartItem:
        self.get_medicine(data.medicine_id, active_only=True)

        item = self.db.query(CartItem).filter(
            CartItem.user_id == user.id,
            CartItem.medicine_id == data.medicine_id
        ).first()
        if item:
            item.quantity += data.quantity
        else:
            item = CartItem(user_id=user.id, medicine_id=data.medicine_id, quantity=data.quantity)
            self.db.add(item)

        self.db.commit()
        self.db.refresh(item)
        return item

    def set_cart_quantity(self, user: User, item_id: int, quantity: int) -> Optional[CartItem]:
        """Set an item's quantity; zero or less removes it."""
        item = self._get_cart_item(user, item_id)
        if quantity <= 0:
            self.db.delete(item)
            self.db.commit()
            return None

        item.quantity = quantity
        self.db.commit()
        self.db.refresh(item)
        return item

    def remove_from_cart(self, user: User, item_id: int) -> None:
        item = self._get_cart_item(user, item_id)
        self.db.delete(item)
        self.db.commit()

    def clear_cart(self, user: User) -> None:
        self.db.query(CartItem).filter(CartItem.user_id == user.id).delete()
        self.db.commit()

    def _get_cart_item(self, user: User, item_id: int) -> CartItem:
        item = self.db.query(CartItem).filter(
            CartItem.id == item_id,
            CartItem.user_id == user.id
        ).first()
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cart item not found"
            )
        return item

    # Administration: medicines

    def create_medicine(self, data: MedicineCreate) -> Medicine:
        self.get_category(data.category_id)

        values = data.model_dump(exclude_none=True)
        values.setdefault("unit", "unit")
        medicine = Medicine(**values)
        self.db.add(medicine)
        self.db.commit()
        self.db.refresh(medicine)

        logger.info(f"Medicine {medicine.id} '{medicine.name}' created")
        return medicine

    def update_medicine(self, medicine_id: int, data: MedicineUpdate) -> Medicine:
        medicine = self.get_medicine(medicine_id)
        updates = data.model_dump(exclude_unset=True)

        if updates.get("category_id") is not None:
            self.get_category(updates["category_id"])
        for field in REQUIRED_MEDICINE_FIELDS:
            if field in updates and updates[field] is None:
                updates.pop(field)

        for field, value in updates.items():
            setattr(medicine, field, value)

        self.db.commit()
        self.db.refresh(medicine)
        return medicine

    def delete_medicine(self, medicine_id: int) -> None:
        medicine = self.get_medicine(medicine_id)
        medicine.is_active = False
        self.db.commit()
        logger.info(f"Medicine {medicine_id} deactivated")

    def update_stock(self, medicine_id: int, stock_quantity: int) -> Medicine:
        medicine = self.get_medicine(medicine_id)
        medicine.stock_quantity = stock_quantity
        self.db.commit()
        self.db.refresh(medicine)
        return medicine

    def inventory_overview(self) -> dict:
        active = self.db.query(Medicine).filter(Medicine.is_active == True)

        low_stock = active.filter(Medicine.stock_quantity <= Medicine.reorder_level) \
            .order_by(Medicine.stock_quantity.asc()).all()
        expiry_cutoff = date.today() + timedelta(days=EXPIRY_WARNING_DAYS)
        expiring = active.filter(
            Medicine.expiry_date.isnot(None),
            Medicine.expiry_date <= expiry_cutoff
        ).order_by(Medicine.expiry_date.asc()).all()

        stock_units, stock_value = self.db.query(
            func.coalesce(func.sum(Medicine.stock_quantity), 0),
            func.coalesce(func.sum(Medicine.stock_quantity * Medicine.price), 0),
        ).filter(Medicine.is_active == True).one()

        return {
            "total_medicines": self.db.query(Medicine).count(),
            "active_medicines": active.count(),
            "total_categories": self.db.query(MedicineCategory)
                .filter(MedicineCategory.is_active == True).count(),
            "total_stock_units": int(stock_units or 0),
            "stock_value": float(stock_value or 0),
            "low_stock": low_stock,
            "expiring_soon": expiring,
            "out_of_stock": active.filter(Medicine.stock_quantity <= 0).count(),
        }

    # Administration: categories

    def list_categories_with_counts(self) -> List[dict]:
        rows = self.db.query(MedicineCategory, func.count(Medicine.id)).outerjoin(
            Medicine,
            (Medicine.category_id == MedicineCategory.id) & (Medicine.is_active == True)
        ).group_by(MedicineCategory.id).order_by(MedicineCategory.name).all()

        return [
            {
                "id": category.id,
                "name": category.name,
                "description": category.description,
                "image_url": category.image_url,
                "is_active": category.is_active,
                "medicine_count": count,
            }
            for category, count in rows
        ]

    def create_category(self, data: CategoryCreate) -> MedicineCategory:
        category = MedicineCategory(**data.model_dump(), is_active=True)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def update_category(self, category_id: int, data: CategoryUpdate) -> MedicineCategory:
        category = self.get_category(category_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if field in ("name", "is_active") and value is None:
                continue
            setattr(category, field, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, category_id: int) -> None:
        category = self.get_category(category_id)

        in_use = self.db.query(Medicine).filter(
            Medicine.category_id == category.id,
            Medicine.is_active == True
        ).count()
        if in_use:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete category with active medicines"
            )

        category.is_active = False
        self.db.commit()
        logger.info(f"Medicine category {category_id} deactivated")
