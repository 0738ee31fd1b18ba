from typing import Literal, Optional

from pydantic import field_validator, model_validator

from .base import ApiModel, non_negative, reject_explicit_nulls, strip_optional, strip_required

Unit = Literal["pcs", "g", "kg", "ml", "l"]


class IngredientCreate(ApiModel):
    name: str
    manufacturer: Optional[str] = None
    category: Optional[str] = None
    unit: Unit
    stock_quantity: float = 0
    cost_per_unit: float = 0
    reorder_level: float = 0
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("manufacturer", "category")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)

    @field_validator("stock_quantity", "cost_per_unit", "reorder_level")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        return non_negative(v)


class IngredientUpdate(ApiModel):
    """Stock is not writable here; use adjust-stock so the ledger stays complete."""

    name: Optional[str] = None
    manufacturer: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[Unit] = None
    cost_per_unit: Optional[float] = None
    reorder_level: Optional[float] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return strip_required(v)

    @field_validator("manufacturer", "category")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)

    @field_validator("cost_per_unit", "reorder_level")
    @classmethod
    def _non_negative(cls, v: Optional[float]) -> Optional[float]:
        return non_negative(v)

    @model_validator(mode="after")
    def _no_nulls(self):
        reject_explicit_nulls(self, ("name", "unit", "cost_per_unit", "reorder_level", "is_active"))
        return self
