"""Ledgerman models.

Balance is never stored: it is always derived from LedgerEntry rows.
"""

from ledgerman.models.merchant import Merchant
from ledgerman.models.customer import Customer, CustomerStatus
from ledgerman.models.device import CustomerDevice
from ledgerman.models.token import CustomerToken, TokenType, TokenStatus
from ledgerman.models.rules import RuleVersion, RoundingMode
from ledgerman.models.ledger import LedgerEntry, EntryType, EntrySource
from ledgerman.models.reward import Reward
from ledgerman.models.redemption import Redemption, RedemptionStatus
from ledgerman.models.audit import AuditLog

__all__ = [
    # Tenancy and identity
    "Merchant",
    "Customer",
    "CustomerStatus",
    "CustomerDevice",
    "CustomerToken",
    "TokenType",
    "TokenStatus",
    # Points policy
    "RuleVersion",
    "RoundingMode",
    # Ledger (source of truth for balances)
    "LedgerEntry",
    "EntryType",
    "EntrySource",
    # Rewards
    "Reward",
    "Redemption",
    "RedemptionStatus",
    # Audit
    "AuditLog",
]
