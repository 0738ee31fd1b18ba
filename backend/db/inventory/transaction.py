import uuid

from sqlalchemy import Column, DateTime, Index, Numeric, Text, Uuid

from core.converters import as_float
from ..database import Base, utcnow

TRANSACTION_TYPES = ("IN", "OUT", "ADJUST")
REFERENCE_TYPES = ("recipe", "manual", "purchase", "system")


class InventoryTransaction(Base):
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        Index("ix_inventory_transactions_ingredient_created", "ingredient_id", "created_at"),
        Index("ix_inventory_transactions_reference", "reference_type", "reference_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ingredient_id = Column(Uuid, nullable=False, index=True)

    type = Column(Text, nullable=False, index=True)  # 'IN' | 'OUT' | 'ADJUST'
    quantity = Column(Numeric(14, 4), nullable=False)  # absolute magnitude moved
    previous_stock = Column(Numeric(14, 4), nullable=False)
    new_stock = Column(Numeric(14, 4), nullable=False)

    reason = Column(Text, nullable=False, default="")
    unit_cost = Column(Numeric(14, 4), nullable=True)
    reference_type = Column(Text, nullable=True)  # 'recipe' | 'manual' | 'purchase' | 'system'
    reference_id = Column(Uuid, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @property
    def delta(self):
        """Signed stock change; replaying deltas from 0 reproduces current stock."""
        return (self.new_stock or 0) - (self.previous_stock or 0)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "ingredientId": self.ingredient_id,
            "type": self.type,
            "quantity": as_float(self.quantity),
            "previousStock": as_float(self.previous_stock),
            "newStock": as_float(self.new_stock),
            "reason": self.reason or "",
            "unitCost": as_float(self.unit_cost),
            "referenceType": self.reference_type,
            "referenceId": self.reference_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
