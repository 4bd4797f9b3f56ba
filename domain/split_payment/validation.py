"""
Split payment validation rules.

These checks are the only gate before any terminal call is made: a request
failing here never creates a split payment record.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence

from domain.common.exceptions import (
    SplitConfigurationException,
    TaxComplianceException,
)
from .entity import AMOUNT_FIELDS, PaymentMethod, SplitPart, TAX_PAIR_FIELDS

MAX_SPLIT_PARTS = 10
PERCENTAGE_TOLERANCE = Decimal("0.01")

_ALLOWED_METHODS = tuple(m.value for m in PaymentMethod)


def _as_decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def validate_split_configuration(
    parts: Sequence[SplitPart], *, max_parts: int = MAX_SPLIT_PARTS
) -> None:
    """Raise SplitConfigurationException on the first violation found."""
    if not parts:
        raise SplitConfigurationException("At least one split part is required")

    if len(parts) > max_parts:
        raise SplitConfigurationException(f"Maximum {max_parts} split parts allowed")

    for number, part in enumerate(parts, start=1):
        if not _is_numeric(part.percentage):
            raise SplitConfigurationException(
                f"Split part {number}: percentage must be between 0 and 100",
                part_number=number,
            )

    total = sum((_as_decimal(p.percentage) for p in parts), Decimal(0))
    if abs(total - 100) > PERCENTAGE_TOLERANCE:
        raise SplitConfigurationException(
            f"Split percentages must sum to 100%, got {total}%"
        )

    for number, part in enumerate(parts, start=1):
        percentage = _as_decimal(part.percentage)
        if percentage <= 0 or percentage > 100:
            raise SplitConfigurationException(
                f"Split part {number}: percentage must be between 0 and 100",
                part_number=number,
            )
        if part.payment_method not in _ALLOWED_METHODS:
            allowed = " or ".join(f"'{m}'" for m in _ALLOWED_METHODS)
            raise SplitConfigurationException(
                f"Split part {number}: payment_method must be {allowed}",
                part_number=number,
            )


def _is_numeric(value: Any) -> bool:
    try:
        return Decimal(str(value)).is_finite()
    except (InvalidOperation, ValueError):
        return False


def validate_tax_amounts(amounts: Mapping[str, Any]) -> None:
    """Check tax pairing on the total before it is split.

    If any of the four paired tax fields is present, all four must be, and
    each must be a numeric string. Use "0.00" when there are no items for a
    rate; an absent field makes the terminal reject the sale. Any other
    amount that is present must be numeric as well.
    """
    total = amounts.get("total")
    if total is None or total == "":
        raise TaxComplianceException("amounts.total is required", field="amounts.total")
    if not _is_numeric(total):
        raise TaxComplianceException(
            f'Amount value "{total}" is not a valid numeric string', field="amounts.total"
        )

    present = [name for name in TAX_PAIR_FIELDS if amounts.get(name) is not None]
    if present:
        for name in TAX_PAIR_FIELDS:
            if amounts.get(name) is None:
                raise TaxComplianceException(
                    f"Puerto Rico tax compliance: {name} is required when using tax fields. "
                    f'Set to "0.00" if no matching tax items.',
                    field=f"amounts.{name}",
                )
        for name in TAX_PAIR_FIELDS:
            value = amounts[name]
            if not _is_numeric(value):
                raise TaxComplianceException(
                    f'Tax field value "{value}" is not a valid numeric string',
                    field=f"amounts.{name}",
                )

    for name in AMOUNT_FIELDS:
        value = amounts.get(name)
        if value is not None and not _is_numeric(value):
            raise TaxComplianceException(
                f'Amount value "{value}" is not a valid numeric string',
                field=f"amounts.{name}",
            )
