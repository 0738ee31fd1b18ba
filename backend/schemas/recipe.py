from typing import List, Optional
from uuid import UUID

from pydantic import field_validator, model_validator

from .base import ApiModel, non_negative, reject_explicit_nulls, strip_optional, strip_required
from .ingredient import Unit


class RecipeIngredientInput(ApiModel):
    ingredient_id: UUID
    quantity: float  # per serving
    unit: Unit

    @field_validator("quantity")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be a positive number")
        return v


class RecipeCreate(ApiModel):
    name: str
    description: Optional[str] = ""
    selling_price: float = 0
    ingredients: List[RecipeIngredientInput]
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("description")
    @classmethod
    def _description(cls, v: Optional[str]) -> str:
        return strip_optional(v) or ""

    @field_validator("selling_price")
    @classmethod
    def _price(cls, v: float) -> float:
        return non_negative(v)


class RecipeUpdate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    selling_price: Optional[float] = None
    ingredients: Optional[List[RecipeIngredientInput]] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return strip_required(v)

    @field_validator("description")
    @classmethod
    def _description(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)

    @field_validator("selling_price")
    @classmethod
    def _price(cls, v: Optional[float]) -> Optional[float]:
        return non_negative(v)

    @model_validator(mode="after")
    def _no_nulls(self):
        reject_explicit_nulls(self, ("name", "selling_price"))
        return self


class CookRequest(ApiModel):
    servings: int

    @field_validator("servings", mode="before")
    @classmethod
    def _no_bool(cls, v):
        if isinstance(v, bool):
            raise ValueError("servings is required and must be a positive integer")
        return v

    @field_validator("servings")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("servings is required and must be a positive integer")
        return v
