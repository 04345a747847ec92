"""Service for computing booking totals from line items."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from confroom.domain.errors import ValidationError
from confroom.domain.models import LineItem, Totals

_ZERO = Decimal("0")


def _validate_line_item(index: int, item: LineItem) -> None:
    if not item.description or not item.description.strip():
        raise ValidationError(
            f"Line item {index + 1}: description is required",
            field="line_items",
        )
    if item.quantity <= 0:
        raise ValidationError(
            f"Line item {index + 1}: quantity must be greater than zero",
            field="line_items",
        )
    if item.rate < 0:
        raise ValidationError(
            f"Line item {index + 1}: rate cannot be negative",
            field="line_items",
        )


def price_line_items(line_items: Iterable[LineItem]) -> list[LineItem]:
    """Validate line items and return copies with ``amount = quantity * rate``."""
    priced: list[LineItem] = []
    for index, item in enumerate(line_items):
        _validate_line_item(index, item)
        priced.append(item.model_copy(update={"amount": item.quantity * item.rate}))
    return priced


def compute_totals(line_items: Iterable[LineItem], discount: Decimal) -> Totals:
    """Return the total and the discounted final amount for a booking.

    ``total_amount`` is the sum of quantity * rate over every line item and
    ``final_amount`` is ``max(0, total_amount - discount)``. Raises
    ``ValidationError`` for an empty description, a non-positive quantity,
    a negative rate or a negative discount.
    """
    if discount < 0:
        raise ValidationError("Discount cannot be negative", field="discount_amount")

    total = sum((item.amount for item in price_line_items(line_items)), _ZERO)
    return Totals(total_amount=total, final_amount=max(_ZERO, total - discount))
