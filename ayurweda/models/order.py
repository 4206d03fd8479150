from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Boolean, Text, Numeric,
    Enum as SQLEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# Orders a patient may still cancel
PATIENT_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PENDING, index=True)

    delivery_address = Column(Text, nullable=True)
    delivery_instructions = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("User")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    @property
    def item_count(self):
        return len(self.items)

    @property
    def patient_name(self):
        return self.patient.name if self.patient else None

    @property
    def patient_email(self):
        return self.patient.email if self.patient else None

    def __repr__(self):
        return f"<Order(id={self.id}, number='{self.order_number}', status='{self.status}')>"

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    prescription_required = Column(Boolean, default=False)

    order = relationship("Order", back_populates="items")
    medicine = relationship("Medicine")

    @property
    def medicine_name(self):
        return self.medicine.name if self.medicine else None
