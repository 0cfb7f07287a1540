"""Audit protocol - where redeem/adjust/rule/token audit records go."""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class AuditRecord:
    """One audited action."""

    merchant_id: int
    actor: str
    action: str  # "redemption_created", "adjustment_created", ...
    target_type: str
    target_id: str
    metadata: dict = field(default_factory=dict)


@runtime_checkable
class AuditBackend(Protocol):
    """
    Protocol for audit record delivery.

    Called synchronously inside the same transaction as the mutating
    write: if the backend raises, the write is rolled back.

    Configuration in settings.py:
        LEDGERMAN = {
            "AUDIT_BACKEND": "ledgerman.adapters.db_audit.DatabaseAuditBackend",
        }
    """

    def record(self, entry: AuditRecord) -> None:
        """Persist or forward one audit record."""
        ...
