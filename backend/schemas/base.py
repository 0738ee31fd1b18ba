from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Request bodies use camelCase on the wire; unknown fields are rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid", allow_inf_nan=False
    )


def strip_required(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("is required and must be a non-empty string")
    return v


def strip_optional(v):
    if v is None:
        return None
    return v.strip()


def non_negative(v):
    if v is None:
        return None
    if v < 0:
        raise ValueError("must be a non-negative number")
    return v


def reject_explicit_nulls(model: BaseModel, fields) -> None:
    """Fields that may be omitted from a partial update but never set to null."""
    nulls = [
        to_camel(name) for name in fields if name in model.model_fields_set and getattr(model, name) is None
    ]
    if nulls:
        raise ValueError(f"{', '.join(nulls)} cannot be null")
