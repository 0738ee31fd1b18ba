DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def parse_positive_int(value, fallback: int) -> int:
    """Lenient query parsing: anything that is not an integer >= 1 falls back."""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return fallback
    return parsed if parsed >= 1 else fallback


def clamp_limit(value, fallback: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    return min(parse_positive_int(value, fallback), maximum)


def parse_boolean(value):
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in ("true", "1", "yes"):
        return True
    if normalized in ("false", "0", "no"):
        return False
    return None


def pagination_meta(page: int, limit: int, total) -> dict:
    total = int(total or 0)
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": max(1, -(-total // limit)),
    }
