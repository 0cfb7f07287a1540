"""Ledgerman services.

Module-level functions; every write that touches more than one row runs
inside transaction.atomic(). The classmethod facade lives in
ledgerman.service.LedgerService.
"""

from ledgerman.services import audit
from ledgerman.services import customers
from ledgerman.services import ledger
from ledgerman.services import operations
from ledgerman.services import redemption
from ledgerman.services import rewards
from ledgerman.services import rules
from ledgerman.services import tokens

__all__ = [
    "audit",
    "customers",
    "ledger",
    "operations",
    "redemption",
    "rewards",
    "rules",
    "tokens",
]
