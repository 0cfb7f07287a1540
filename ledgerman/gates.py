"""
Ledgerman Gates - Input validation rules.

Gates run before any transaction begins, so malformed input never leaves
partial state behind.

G1: IdempotencyKey - Key is a string within the configured length bounds
G2: PositiveAmount - Purchase amount is a finite decimal in (0, MAX_AMOUNT)
G3: PointsDelta - Adjustment delta is a non-zero integer within MAX_POINTS
G4: RuleParameters - Rate and multiplier > 0 and fit their columns, rounding mode is known
G5: Reason - Manual corrections carry a human-readable reason
G6: TokenType - Token type is one of the supported presentation types
G7: EarnedPoints - Computed points fit in a ledger entry (checked once the
    rule is resolved, inside the earn transaction)
G8: DeviceId - Session device id is a non-blank string of bounded length
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

# LedgerEntry.points_delta is a signed 32-bit IntegerField
MAX_POINTS = 2**31 - 1

MAX_AMOUNT = Decimal("1e15")

# Exclusive upper bounds of RuleVersion's DecimalFields (max_digits - decimal_places)
MAX_POINTS_PER_UNIT = Decimal("1e8")
MAX_PROMO_MULTIPLIER = Decimal("1e4")


class GateError(Exception):
    """Gate validation error."""

    def __init__(self, gate_name: str, message: str, details: dict | None = None):
        self.gate_name = gate_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{gate_name}] {message}")


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


def as_decimal(value) -> Decimal | None:
    """Coerce int/str/Decimal/float to Decimal; None if not a finite number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Ledgerman validation gates."""

    # =========================================================================
    # G1: Idempotency Key
    # =========================================================================

    @classmethod
    def idempotency_key(cls, key) -> GateResult:
        """
        G1: Idempotency key must be a string of acceptable length.

        Args:
            key: Caller-supplied idempotency key

        Raises:
            GateError: If key is missing, not a string, too short or too long
        """
        from ledgerman.conf import ledgerman_settings

        min_length = ledgerman_settings.IDEMPOTENCY_KEY_MIN_LENGTH
        max_length = ledgerman_settings.IDEMPOTENCY_KEY_MAX_LENGTH

        if not isinstance(key, str) or not key.strip():
            raise GateError("G1_IdempotencyKey", "Idempotency key is required.")

        if len(key) < min_length:
            raise GateError(
                "G1_IdempotencyKey",
                f"Idempotency key shorter than {min_length} characters.",
                {"length": len(key), "min_length": min_length},
            )

        if len(key) > max_length:
            raise GateError(
                "G1_IdempotencyKey",
                f"Idempotency key longer than {max_length} characters.",
                {"length": len(key), "max_length": max_length},
            )

        return GateResult(True, "G1_IdempotencyKey")

    @classmethod
    def check_idempotency_key(cls, key) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.idempotency_key(key)
            return True
        except GateError:
            return False

    # =========================================================================
    # G2: Positive Amount
    # =========================================================================

    @classmethod
    def positive_amount(cls, amount) -> GateResult:
        """
        G2: Purchase amount must be a finite number greater than zero.

        Floats are accepted through their repr, so 12.99 means Decimal("12.99").

        Raises:
            GateError: If amount is not numeric, not finite, <= 0 or too large
        """
        value = as_decimal(amount)
        if value is None:
            raise GateError(
                "G2_PositiveAmount",
                "Amount must be a number.",
                {"amount": str(amount)},
            )
        if value <= 0:
            raise GateError(
                "G2_PositiveAmount",
                "Amount must be positive.",
                {"amount": str(value)},
            )
        if value >= MAX_AMOUNT:
            raise GateError(
                "G2_PositiveAmount",
                "Amount is too large.",
                {"amount": str(value), "max_amount": str(MAX_AMOUNT)},
            )
        return GateResult(True, "G2_PositiveAmount")

    @classmethod
    def check_positive_amount(cls, amount) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.positive_amount(amount)
            return True
        except GateError:
            return False

    # =========================================================================
    # G3: Points Delta
    # =========================================================================

    @classmethod
    def points_delta(cls, delta) -> GateResult:
        """
        G3: Adjustment delta must be a non-zero integer (sign is free).

        Raises:
            GateError: If delta is not an int, is zero, or exceeds MAX_POINTS
        """
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise GateError(
                "G3_PointsDelta",
                "Points delta must be an integer.",
                {"points_delta": repr(delta)},
            )
        if delta == 0:
            raise GateError("G3_PointsDelta", "Points delta must not be zero.")
        if abs(delta) > MAX_POINTS:
            raise GateError(
                "G3_PointsDelta",
                f"Points delta must be between -{MAX_POINTS} and {MAX_POINTS}.",
                {"points_delta": delta},
            )
        return GateResult(True, "G3_PointsDelta")

    @classmethod
    def check_points_delta(cls, delta) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.points_delta(delta)
            return True
        except GateError:
            return False

    # =========================================================================
    # G4: Rule Parameters
    # =========================================================================

    @classmethod
    def rule_parameters(cls, points_per_unit, rounding, promo_multiplier=1) -> GateResult:
        """
        G4: Rule rate and multiplier must be positive and fit their columns;
        rounding must be known.

        Raises:
            GateError: On the first invalid parameter
        """
        from ledgerman.models import RoundingMode

        rate = as_decimal(points_per_unit)
        if rate is None or rate <= 0:
            raise GateError(
                "G4_RuleParameters",
                "points_per_unit must be a positive number.",
                {"points_per_unit": str(points_per_unit)},
            )
        if rate >= MAX_POINTS_PER_UNIT:
            raise GateError(
                "G4_RuleParameters",
                f"points_per_unit must be below {MAX_POINTS_PER_UNIT:f}.",
                {"points_per_unit": str(points_per_unit)},
            )

        multiplier = as_decimal(promo_multiplier)
        if multiplier is None or multiplier <= 0:
            raise GateError(
                "G4_RuleParameters",
                "promo_multiplier must be a positive number.",
                {"promo_multiplier": str(promo_multiplier)},
            )
        if multiplier >= MAX_PROMO_MULTIPLIER:
            raise GateError(
                "G4_RuleParameters",
                f"promo_multiplier must be below {MAX_PROMO_MULTIPLIER:f}.",
                {"promo_multiplier": str(promo_multiplier)},
            )

        if rounding not in RoundingMode.values:
            raise GateError(
                "G4_RuleParameters",
                f"Unknown rounding mode: {rounding}",
                {"allowed": list(RoundingMode.values)},
            )

        return GateResult(True, "G4_RuleParameters")

    @classmethod
    def check_rule_parameters(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.rule_parameters(*args, **kwargs)
            return True
        except GateError:
            return False

    # =========================================================================
    # G5: Reason
    # =========================================================================

    @classmethod
    def reason(cls, reason) -> GateResult:
        """
        G5: Manual corrections must say why.

        Raises:
            GateError: If reason is empty or blank
        """
        if not isinstance(reason, str) or not reason.strip():
            raise GateError("G5_Reason", "A reason is required.")
        return GateResult(True, "G5_Reason")

    @classmethod
    def check_reason(cls, reason) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.reason(reason)
            return True
        except GateError:
            return False

    # =========================================================================
    # G6: Token Type
    # =========================================================================

    @classmethod
    def token_type(cls, token_type: str) -> GateResult:
        """
        G6: Token type must be a supported presentation type.

        Raises:
            GateError: If type is unknown
        """
        from ledgerman.models import TokenType

        if token_type not in TokenType.values:
            raise GateError(
                "G6_TokenType",
                f"Token type not allowed: {token_type}",
                {"allowed": list(TokenType.values)},
            )
        return GateResult(True, "G6_TokenType")

    @classmethod
    def check_token_type(cls, token_type: str) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.token_type(token_type)
            return True
        except GateError:
            return False

    # =========================================================================
    # G7: Earned Points
    # =========================================================================

    @classmethod
    def earned_points(cls, points) -> GateResult:
        """
        G7: Points computed for a purchase must fit in a ledger entry.

        Zero is allowed: a small purchase still records an entry.

        Raises:
            GateError: If points are negative or exceed MAX_POINTS
        """
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise GateError(
                "G7_EarnedPoints",
                "Earned points must be a non-negative integer.",
                {"points": repr(points)},
            )
        if points > MAX_POINTS:
            raise GateError(
                "G7_EarnedPoints",
                "Purchase earns more points than a ledger entry can hold.",
                {"points": points, "max_points": MAX_POINTS},
            )
        return GateResult(True, "G7_EarnedPoints")

    @classmethod
    def check_earned_points(cls, points) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.earned_points(points)
            return True
        except GateError:
            return False

    # =========================================================================
    # G8: Device Id
    # =========================================================================

    @classmethod
    def device_id(cls, device_id) -> GateResult:
        """
        G8: Device id must be a non-blank string that fits CustomerDevice.

        Raises:
            GateError: If missing, blank, or longer than 128 characters
        """
        if not isinstance(device_id, str) or not device_id.strip():
            raise GateError("G8_DeviceId", "Device id is required.")
        if len(device_id) > 128:
            raise GateError(
                "G8_DeviceId",
                "Device id longer than 128 characters.",
                {"length": len(device_id)},
            )
        return GateResult(True, "G8_DeviceId")

    @classmethod
    def check_device_id(cls, device_id) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.device_id(device_id)
            return True
        except GateError:
            return False
