"""
Cook Planner.

Pure computation of what cooking `servings` of a recipe requires and whether
the given ingredient snapshot can satisfy it. No I/O; the executor calls it
against whatever snapshot it loaded (and re-calls it inside the atomic unit).
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from core.converters import format_quantity, round4
from core.errors import ConfigurationError, InsufficientStockError


@dataclass
class Requirement:
    ingredient_id: UUID
    name: str
    unit: str
    required_quantity: Decimal
    available_quantity: Decimal
    cost_per_unit: Decimal
    # Snapshot row the requirement was resolved against
    ingredient: Any = None


@dataclass
class CookPlan:
    requirements: List[Requirement] = field(default_factory=list)
    configuration_errors: List[str] = field(default_factory=list)
    insufficient_errors: List[str] = field(default_factory=list)

    @property
    def is_feasible(self) -> bool:
        return not self.configuration_errors and not self.insufficient_errors

    def raise_for_errors(self) -> None:
        """Configuration problems win over stock problems: no restock can fix them."""
        if self.configuration_errors:
            raise ConfigurationError(details=self.configuration_errors)
        if self.insufficient_errors:
            raise InsufficientStockError(details=self.insufficient_errors)


@dataclass
class _MergedLine:
    ingredient_id: UUID
    unit: str
    required_quantity: Decimal


def merge_lines(lines: Iterable[Any], servings: int, configuration_errors: List[str]) -> List[_MergedLine]:
    """Merge lines per ingredient, scaling each by `servings` and rounding every step."""
    merged: Dict[UUID, _MergedLine] = {}
    for index, line in enumerate(lines):
        scaled = round4(round4(line.quantity) * servings)
        existing = merged.get(line.ingredient_id)
        if existing is None:
            merged[line.ingredient_id] = _MergedLine(line.ingredient_id, line.unit, scaled)
            continue
        if existing.unit != line.unit:
            configuration_errors.append(
                f"Recipe contains conflicting units for ingredient {line.ingredient_id} at line {index + 1}"
            )
            continue
        existing.required_quantity = round4(existing.required_quantity + scaled)
    return list(merged.values())


def build_cook_plan(lines: Iterable[Any], ingredients: Iterable[Any], servings: int) -> CookPlan:
    """
    Build the consumption plan for `servings` of a recipe.

    `lines` are recipe lines (ingredient_id, quantity per serving, unit) in
    recipe order; `ingredients` is the snapshot of referenced ingredient rows.
    All configuration and insufficiency problems are collected, so the caller
    sees the complete picture in one round trip.
    """
    plan = CookPlan()
    by_id = {ing.id: ing for ing in ingredients}

    for line in merge_lines(lines, servings, plan.configuration_errors):
        ingredient: Optional[Any] = by_id.get(line.ingredient_id)
        if ingredient is None:
            plan.configuration_errors.append(f"Ingredient {line.ingredient_id} no longer exists")
            continue
        if not ingredient.is_active:
            plan.configuration_errors.append(
                f'Ingredient "{ingredient.name}" is inactive and cannot be consumed'
            )
            continue
        if ingredient.unit != line.unit:
            plan.configuration_errors.append(
                f'Unit mismatch for ingredient "{ingredient.name}": recipe uses {line.unit}, '
                f"ingredient unit is {ingredient.unit}"
            )
            continue

        available = round4(ingredient.stock_quantity)
        if available < line.required_quantity:
            plan.insufficient_errors.append(
                f"{ingredient.name}: needed {format_quantity(line.required_quantity)} {line.unit}, "
                f"available {format_quantity(available)} {line.unit}"
            )

        plan.requirements.append(
            Requirement(
                ingredient_id=ingredient.id,
                name=ingredient.name,
                unit=line.unit,
                required_quantity=line.required_quantity,
                available_quantity=available,
                cost_per_unit=round4(ingredient.cost_per_unit),
                ingredient=ingredient,
            )
        )

    return plan
