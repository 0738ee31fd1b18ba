from decimal import Decimal
from typing import Any, Dict, Iterable

from core.converters import round2, round4


def compute_recipe_metrics(lines: Iterable[Any], ingredient_map: Dict[Any, Any], selling_price) -> Dict[str, float]:
    """Cost per serving, margin and margin percent; missing ingredients cost nothing."""
    cost = Decimal("0")
    for line in lines:
        ingredient = ingredient_map.get(line.ingredient_id)
        cost_per_unit = ingredient.cost_per_unit if ingredient is not None else 0
        cost += round4(line.quantity) * round4(cost_per_unit)

    price = round4(selling_price)
    margin = price - cost
    margin_percent = (margin / price) * 100 if price > 0 else Decimal("0")

    return {
        "costPerServing": float(round4(cost)),
        "margin": float(round4(margin)),
        "marginPercent": float(round2(margin_percent)),
    }
