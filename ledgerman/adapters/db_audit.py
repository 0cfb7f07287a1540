"""Database AuditBackend adapter."""

from ledgerman.models import AuditLog
from ledgerman.protocols.audit import AuditRecord


class DatabaseAuditBackend:
    """
    Adapter that implements AuditBackend by writing AuditLog rows.

    Uses the caller's connection, so the row commits or rolls back
    together with the audited write.
    """

    def record(self, entry: AuditRecord) -> None:
        AuditLog.objects.create(
            merchant_id=entry.merchant_id,
            actor=entry.actor,
            action=entry.action,
            target_type=entry.target_type,
            target_id=entry.target_id,
            metadata=entry.metadata,
        )
