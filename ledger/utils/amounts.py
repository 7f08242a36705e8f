"""
Amount calculation for weight/rate based transactions.

Weights and rates can each be expressed per kg or per quintal (100 kg).
"""
import math
from typing import Optional

from ledger.models.transaction import Unit
from ledger.services.errors import ValidationError

KG_PER_QUINTAL = 100
VALID_UNITS = {unit.value for unit in Unit}


def validate_quantity(value, field_name: str) -> float:
    if value is None or value == '':
        raise ValidationError(f'{field_name} is required')
    if isinstance(value, bool):
        raise ValidationError(f'{field_name} must be a number')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field_name} must be a number')
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f'{field_name} must be a number')
    if number < 0:
        raise ValidationError(f'{field_name} must not be negative')
    return number


def _coerce_unit(unit: Optional[str], field_name: str) -> str:
    if unit is None:
        return Unit.KG.value
    if unit not in VALID_UNITS:
        raise ValidationError(f"{field_name} must be one of: {', '.join(sorted(VALID_UNITS))}")
    return unit


def calculate_total_amount(weight, weight_unit, rate, rate_unit) -> float:
    """
    Compute the total amount for a weight at a rate.

    When both units match the product is taken as-is, so quintal x per-quintal
    is not normalized to kg. Mixed units are brought to a kg basis first.

    Raises:
        ValidationError: weight or rate missing, non-numeric or negative,
            or an unknown unit.
    """
    weight = validate_quantity(weight, 'Weight')
    rate = validate_quantity(rate, 'Rate')
    weight_unit = _coerce_unit(weight_unit, 'Weight unit')
    rate_unit = _coerce_unit(rate_unit, 'Rate unit')

    if weight_unit == rate_unit:
        return weight * rate

    weight_in_kg = weight * KG_PER_QUINTAL if weight_unit == Unit.QUINTAL.value else weight
    rate_per_kg = rate / KG_PER_QUINTAL if rate_unit == Unit.QUINTAL.value else rate
    return weight_in_kg * rate_per_kg
