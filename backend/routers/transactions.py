from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import parse_uuid
from core.errors import InvalidIdError, ValidationError
from core.pagination import DEFAULT_PAGE, clamp_limit, parse_boolean, parse_positive_int
from db.database import get_async_session
from db.inventory.transaction import REFERENCE_TYPES, TRANSACTION_TYPES
from services import ledger

router = APIRouter()


def _invalid(detail: str) -> ValidationError:
    return ValidationError("Invalid transaction query", [detail])


def _parse_date(value: Optional[str], field: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise _invalid(f"{field} must be a valid date (ISO format recommended)")
    # Naive dates are taken as UTC
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@router.get("/", response_model=Dict)
async def list_transactions(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    ingredient_id: Optional[str] = Query(None, alias="ingredientId"),
    type: Optional[str] = None,
    reference_type: Optional[str] = Query(None, alias="referenceType"),
    reference_id: Optional[str] = Query(None, alias="referenceId"),
    reason: Optional[str] = None,
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    include_related: Optional[str] = Query(None, alias="includeRelated"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    db: AsyncSession = Depends(get_async_session),
):
    """List ledger entries (newest first by default) with filters"""
    ingredient_uuid = None
    if ingredient_id:
        try:
            ingredient_uuid = parse_uuid(ingredient_id)
        except InvalidIdError:
            raise _invalid("ingredientId must be a valid id")

    reference_uuid = None
    if reference_id:
        try:
            reference_uuid = parse_uuid(reference_id)
        except InvalidIdError:
            raise _invalid("referenceId must be a valid id")

    type_ = (type or "").strip().upper() or None
    if type_ and type_ not in TRANSACTION_TYPES:
        raise _invalid(f"type must be one of: {', '.join(TRANSACTION_TYPES)}")

    ref_type = (reference_type or "").strip().lower() or None
    if ref_type and ref_type not in REFERENCE_TYPES:
        raise _invalid(f"referenceType must be one of: {', '.join(REFERENCE_TYPES)}")

    start = _parse_date(date_from, "dateFrom")
    end = _parse_date(date_to, "dateTo")
    if start and end and start > end:
        raise _invalid("dateFrom must be earlier than or equal to dateTo")

    return await ledger.list_transactions(
        db,
        page=parse_positive_int(page, DEFAULT_PAGE),
        limit=clamp_limit(limit),
        ingredient_id=ingredient_uuid,
        type_=type_,
        reference_type=ref_type,
        reference_id=reference_uuid,
        reason=(reason or "").strip(),
        date_from=start,
        date_to=end,
        sort_by=sort_by,
        sort_order=sort_order,
        include_related=parse_boolean(include_related) is not False,
    )
