import uuid
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Numeric, String, Text, Uuid

from core.converters import as_float
from .database import Base, utcnow

UNITS = ("pcs", "g", "kg", "ml", "l")


class Ingredient(Base):
    """Ingredient with its stock, unit cost and reorder threshold"""
    __tablename__ = "ingredients"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_ingredients_stock_non_negative"),
        Index("ix_ingredients_active_name", "is_active", "name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    manufacturer = Column(String, nullable=True)
    category = Column(String, nullable=True, index=True)
    unit = Column(Text, nullable=False)  # one of UNITS

    stock_quantity = Column(Numeric(14, 4), nullable=False, default=0)
    cost_per_unit = Column(Numeric(14, 4), nullable=False, default=0)
    reorder_level = Column(Numeric(14, 4), nullable=False, default=0)  # 0 = disabled

    # Soft delete: archived ingredients keep their ledger history
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_low_stock(self) -> bool:
        reorder = self.reorder_level or 0
        return reorder > 0 and (self.stock_quantity or 0) < reorder

    @property
    def to_schema(self):
        """Convert Ingredient model to schema dictionary format"""
        return {
            "id": self.id,
            "name": self.name,
            "manufacturer": self.manufacturer,
            "category": self.category,
            "unit": self.unit,
            "stockQuantity": as_float(self.stock_quantity),
            "costPerUnit": as_float(self.cost_per_unit),
            "reorderLevel": as_float(self.reorder_level),
            "isActive": bool(self.is_active),
            "isLowStock": self.is_low_stock,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
