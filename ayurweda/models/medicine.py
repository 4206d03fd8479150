from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Date, Boolean, Text, Numeric,
    UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class MedicineCategory(Base):
    __tablename__ = "medicine_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    medicines = relationship("Medicine", back_populates="category")

    def __repr__(self):
        return f"<MedicineCategory(id={self.id}, name='{self.name}')>"

class Medicine(Base):
    __tablename__ = "medicines"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("medicine_categories.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Pricing and stock
    price = Column(Numeric(10, 2), nullable=False)
    stock_quantity = Column(Integer, default=0)
    reorder_level = Column(Integer, default=10)
    unit = Column(String(50), default="unit")

    # Product information
    dosage_form = Column(String(100), nullable=True)
    active_ingredients = Column(Text, nullable=True)
    therapeutic_effects = Column(Text, nullable=True)
    contraindications = Column(Text, nullable=True)
    side_effects = Column(Text, nullable=True)
    storage_instructions = Column(Text, nullable=True)
    expiry_date = Column(Date, nullable=True)
    manufacturer = Column(String(255), nullable=True)
    is_prescription_required = Column(Boolean, default=False)
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("MedicineCategory", back_populates="medicines")

    @property
    def category_name(self):
        return self.category.name if self.category else None

    def __repr__(self):
        return f"<Medicine(id={self.id}, name='{self.name}', stock={self.stock_quantity})>"

class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "medicine_id", name="uq_cart_user_medicine"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    medicine = relationship("Medicine")

    @property
    def name(self):
        return self.medicine.name

    @property
    def price(self):
        return self.medicine.price

    @property
    def unit(self):
        return self.medicine.unit

    @property
    def image_url(self):
        return self.medicine.image_url

    @property
    def stock_quantity(self):
        return self.medicine.stock_quantity

    @property
    def total_price(self):
        return self.medicine.price * self.quantity
