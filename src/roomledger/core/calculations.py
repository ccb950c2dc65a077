"""Core business logic for calculations."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from roomledger.core.errors import ValidationError

ZERO = Decimal("0")


def calculate_consumption(
    current_index: Decimal, previous_index: Decimal
) -> Decimal:
    """
    Calculates the consumption between two meter indices.

    Args:
        current_index: The index read in this period.
        previous_index: The index carried over from the prior period.

    Returns:
        The consumed quantity.

    Raises:
        ValidationError: If either index is negative or the current index is
            below the previous one.
    """
    if current_index < ZERO or previous_index < ZERO:
        raise ValidationError("Meter indices cannot be negative.")
    if current_index < previous_index:
        raise ValidationError(
            f"Current index {current_index} is below previous index "
            f"{previous_index}."
        )
    return current_index - previous_index


def calculate_cost(consumption: Decimal, unit_price: Decimal) -> Decimal:
    """
    Calculates the monetary cost based on consumption and a unit price.

    Args:
        consumption: The amount of resource consumed.
        unit_price: The monetary rate per unit of consumption.

    Returns:
        The calculated cost.
    """
    if unit_price < ZERO:
        raise ValidationError("Unit price cannot be negative.")
    return consumption * unit_price


def calculate_subtotal(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def calculate_total(
    subtotal: Decimal, discount: Decimal = ZERO, late_fee: Decimal = ZERO
) -> Decimal:
    """Invoice total, never below zero."""
    return max(ZERO, subtotal - discount + late_fee)
