import uuid
from sqlalchemy import Boolean, Column, DateTime, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from core.converters import as_float
from .database import Base, utcnow


class Recipe(Base):
    """Recipe - a selling price plus an ordered list of per-serving ingredient lines"""
    __tablename__ = "recipes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    selling_price = Column(Numeric(14, 4), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.sort_order",
    )

    @property
    def ingredient_ids(self):
        seen = []
        for line in self.recipe_ingredients or []:
            if line.ingredient_id not in seen:
                seen.append(line.ingredient_id)
        return seen

    # Property to convert model to schema dictionary
    @property
    def to_schema(self):
        """Convert Recipe model to schema dictionary format"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "sellingPrice": as_float(self.selling_price),
            "isActive": bool(self.is_active),
            "ingredients": [line.to_schema for line in self.recipe_ingredients or []],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
