import uuid
from sqlalchemy import Column, ForeignKey, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import relationship

from core.converters import as_float
from .database import Base


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipe_id = Column(Uuid, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Plain reference, not a FK: a removed ingredient must surface as a
    # configuration error when cooking, not as a constraint failure.
    ingredient_id = Column(Uuid, nullable=False, index=True)

    quantity = Column(Numeric(14, 4), nullable=False)  # per serving
    unit = Column(Text, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    recipe = relationship("Recipe", back_populates="recipe_ingredients")

    @property
    def to_schema(self):
        return {
            "ingredientId": self.ingredient_id,
            "quantity": as_float(self.quantity),
            "unit": self.unit,
        }
