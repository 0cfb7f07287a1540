"""
Points calculator.

Pure function of (amount, rule): no database access, no clock.

    raw = amount * points_per_unit * promo_multiplier

``floor`` truncates; ``nearest`` rounds half up (12.5 -> 13).
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from ledgerman.gates import Gates, as_decimal

_ROUNDING = {
    "floor": ROUND_FLOOR,
    "nearest": ROUND_HALF_UP,
}


def raw_points(amount, rule) -> Decimal:
    """Unrounded points for ``amount`` under ``rule``."""
    Gates.positive_amount(amount)
    return (
        as_decimal(amount)
        * Decimal(rule.points_per_unit)
        * Decimal(rule.promo_multiplier)
    )


def compute_points(amount, rule) -> int:
    """
    Points earned for a purchase.

    Args:
        amount: Positive purchase amount (Decimal, int, str or float)
        rule: Object with points_per_unit, promo_multiplier and rounding
            (normally a RuleVersion)

    Returns:
        Non-negative integer points

    Raises:
        GateError: If amount is not a positive number
        ValueError: If the rule's rounding mode is unknown
    """
    try:
        mode = _ROUNDING[rule.rounding]
    except KeyError:
        raise ValueError(f"Unknown rounding mode: {rule.rounding!r}") from None

    points = int(raw_points(amount, rule).to_integral_value(rounding=mode))
    return max(points, 0)
