from typing import Literal, Optional

from pydantic import field_validator, model_validator

from .base import ApiModel, non_negative

TransactionType = Literal["IN", "OUT", "ADJUST"]
ReferenceType = Literal["recipe", "manual", "purchase", "system"]


class AdjustStockRequest(ApiModel):
    """
    IN/OUT move `quantity` (> 0) in or out of stock.
    ADJUST sets an absolute `newStockQuantity` (>= 0), e.g. after a stock count.
    """

    type: TransactionType
    quantity: Optional[float] = None
    new_stock_quantity: Optional[float] = None
    reason: Optional[str] = None
    unit_cost: Optional[float] = None
    reference_type: ReferenceType = "manual"

    @field_validator("reason")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("unit_cost", "new_stock_quantity")
    @classmethod
    def _non_negative(cls, v: Optional[float]) -> Optional[float]:
        return non_negative(v)

    @model_validator(mode="after")
    def _validate_shape(self):
        if self.type in ("IN", "OUT"):
            if self.quantity is None or self.quantity <= 0:
                raise ValueError(f"{self.type} requires quantity > 0")
            if self.new_stock_quantity is not None:
                raise ValueError(f"{self.type} does not accept newStockQuantity")
        else:
            if self.new_stock_quantity is None:
                raise ValueError("ADJUST requires newStockQuantity >= 0")
            if self.quantity is not None:
                raise ValueError("ADJUST does not accept quantity")
        return self
