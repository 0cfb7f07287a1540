"""
Django Ledgerman - Loyalty points ledger.

Usage:
    from ledgerman import LedgerService
    from ledgerman.gates import Gates, GateError, GateResult

    LedgerService.create_rule_version(merchant.id, points_per_unit="1", rounding="floor")
    result = LedgerService.earn(merchant.id, customer.id, "12.99", "pos-1234-0001")
    balance = LedgerService.get_balance(merchant.id, customer.id)
    LedgerService.redeem(merchant.id, customer.id, reward.id, "pos-1234-0002")
"""


def __getattr__(name):
    if name == "LedgerService":
        from ledgerman.service import LedgerService

        return LedgerService
    if name == "LedgermanError":
        from ledgerman.exceptions import LedgermanError

        return LedgermanError
    if name == "Gates":
        from ledgerman.gates import Gates

        return Gates
    if name == "GateError":
        from ledgerman.gates import GateError

        return GateError
    if name == "GateResult":
        from ledgerman.gates import GateResult

        return GateResult
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LedgerService", "LedgermanError", "Gates", "GateError", "GateResult"]
__version__ = "0.1.0"
