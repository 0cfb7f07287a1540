"""Ledgerman exceptions."""


class BaseError(Exception):
    """
    Structured error with a machine-readable code and free-form data.

    Subclasses declare ``_default_messages`` keyed by code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class LedgermanError(BaseError):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            LedgerService.redeem(merchant_id, customer_id, reward_id, key)
        except LedgermanError as e:
            if e.code == "INSUFFICIENT_POINTS":
                show_balance(e.data["balance"])
    """

    _default_messages = {
        "MERCHANT_NOT_FOUND": "Merchant not found",
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "CUSTOMER_BLOCKED": "Customer is blocked",
        "TOKEN_NOT_FOUND": "Token not found",
        "TOKEN_INACTIVE": "Token is not active",
        "REWARD_NOT_FOUND": "Reward not found",
        "REDEMPTION_NOT_FOUND": "Redemption not found",
        "REDEMPTION_ALREADY_REVERSED": "Redemption already reversed",
        "RULES_MISSING": "No active rules available",
        "INSUFFICIENT_POINTS": "Not enough points",
        "IDEMPOTENCY_CONFLICT": "Idempotency conflict",
        "CONSTRAINT_VIOLATION": "Constraint violation",
        "LOCK_TIMEOUT": "Timed out waiting for customer lock",
        "LEDGER_IMMUTABLE": "Ledger entries are immutable",
    }

    RETRYABLE_CODES = frozenset({"CONSTRAINT_VIOLATION", "LOCK_TIMEOUT"})

    @property
    def retryable(self) -> bool:
        """True when retrying with the same idempotency key is safe and may succeed."""
        return self.code in self.RETRYABLE_CODES
