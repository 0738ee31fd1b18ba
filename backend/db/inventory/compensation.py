import uuid

from sqlalchemy import Column, DateTime, Numeric, Text, Uuid

from core.converters import as_float
from ..database import Base, utcnow


class PendingCompensation(Base):
    """A stock credit owed to an ingredient after a fallback cook failed to undo its decrement."""
    __tablename__ = "pending_compensations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ingredient_id = Column(Uuid, nullable=False, index=True)
    quantity = Column(Numeric(14, 4), nullable=False)
    recipe_id = Column(Uuid, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    resolved_at = Column(DateTime(timezone=True), nullable=True, index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "ingredientId": self.ingredient_id,
            "quantity": as_float(self.quantity),
            "recipeId": self.recipe_id,
            "error": self.error,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "resolvedAt": self.resolved_at.isoformat() if self.resolved_at else None,
        }
