from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, List, Tuple
import logging
import secrets
import string
import time

from ..models.user import User
from ..models.medicine import Medicine, CartItem
from ..models.order import (
    Order, OrderItem, OrderStatus, ORDER_TRANSITIONS, PATIENT_CANCELLABLE
)
from ..schemas.order import OrderCreate, OrderStatusUpdate

logger = logging.getLogger(__name__)

STATS_WINDOW_DAYS = 30

def generate_order_number() -> str:
    """ORD-<epoch millis>-<5 random uppercase characters>."""
    suffix = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(5))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"

class OrderService:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, patient: User, data: OrderCreate) -> Order:
        # Merge repeated lines for the same medicine
        quantities = {}
        for line in data.items:
            quantities[line.medicine_id] = quantities.get(line.medicine_id, 0) + line.quantity

        medicines = {
            m.id: m for m in self.db.query(Medicine).filter(
                Medicine.id.in_(quantities.keys()),
                Medicine.is_active == True
            ).with_for_update().all()
        }

        order = Order(
            patient_id=patient.id,
            order_number=generate_order_number(),
            status=OrderStatus.PENDING,
            delivery_address=data.delivery_address or patient.address,
            delivery_instructions=data.delivery_instructions,
            notes=data.notes,
        )

        total = Decimal("0")
        for medicine_id, quantity in quantities.items():
            medicine = medicines.get(medicine_id)
            if medicine is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Medicine {medicine_id} is not available"
                )
            if medicine.stock_quantity < quantity:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Insufficient stock for {medicine.name}"
                )

            unit_price = Decimal(str(medicine.price))
            line_total = unit_price * quantity
            total += line_total
            medicine.stock_quantity -= quantity

            order.items.append(OrderItem(
                medicine_id=medicine.id,
                quantity=quantity,
                unit_price=unit_price,
                total_price=line_total,
                prescription_required=bool(medicine.is_prescription_required),
            ))

        order.total_amount = total
        self.db.add(order)

        # Ordered medicines leave the cart
        self.db.query(CartItem).filter(
            CartItem.user_id == patient.id,
            CartItem.medicine_id.in_(quantities.keys())
        ).delete(synchronize_session=False)

        self.db.commit()
        self.db.refresh(order)

        logger.info(f"Order {order.order_number} placed by patient {patient.id} for {total}")
        return order

    def patient_orders(self, patient: User, status_filter: Optional[OrderStatus] = None) -> List[Order]:
        query = self.db.query(Order).options(selectinload(Order.items)) \
            .filter(Order.patient_id == patient.id)
        if status_filter is not None:
            query = query.filter(Order.status == status_filter)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def get_patient_order(self, patient: User, order_id: int) -> Order:
        order = self.db.query(Order).filter(
            Order.id == order_id,
            Order.patient_id == patient.id
        ).first()
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found"
            )
        return order

    def cancel_by_patient(self, patient: User, order_id: int) -> Order:
        order = self.get_patient_order(patient, order_id)
        if order.status not in PATIENT_CANCELLABLE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Order cannot be cancelled at this stage"
            )

        self._cancel(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    # Administration

    def list_orders(
        self,
        status_filter: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Order], int]:
        query = self.db.query(Order).options(selectinload(Order.items))
        if status_filter is not None:
            query = query.filter(Order.status == status_filter)

        total = query.count()
        orders = query.order_by(Order.created_at.desc(), Order.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return orders, total

    def get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found"
            )
        return order

    def update_status(self, order_id: int, data: OrderStatusUpdate) -> Order:
        order = self.get_order(order_id)

        if data.status not in ORDER_TRANSITIONS[order.status]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot change order status from {order.status.value} to {data.status.value}"
            )

        if data.status == OrderStatus.CANCELLED:
            self._cancel(order)
        else:
            order.status = data.status
        if data.notes:
            order.notes = data.notes

        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.order_number} set to {data.status.value}")
        return order

    def stats(self) -> dict:
        since = datetime.utcnow() - timedelta(days=STATS_WINDOW_DAYS)
        rows = self.db.query(
            Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0)
        ).filter(Order.created_at >= since).group_by(Order.status).all()

        by_status = {s.value: 0 for s in OrderStatus}
        revenue = Decimal("0")
        for order_status, count, amount in rows:
            by_status[order_status.value] = count
            if order_status != OrderStatus.CANCELLED:
                revenue += Decimal(str(amount))

        total = sum(by_status.values())
        billable = total - by_status[OrderStatus.CANCELLED.value]
        return {
            "period_days": STATS_WINDOW_DAYS,
            "total_orders": total,
            "by_status": by_status,
            "total_revenue": float(revenue),
            "average_order_value": float(revenue / billable) if billable else 0.0,
        }

    def _cancel(self, order: Order):
        """Cancel an order and put its items back in stock."""
        for item in order.items:
            if item.medicine is not None:
                item.medicine.stock_quantity += item.quantity
        order.status = OrderStatus.CANCELLED
