"""Audit service - forwards audit records to the configured backend."""

import logging

from django.utils.module_loading import import_string

from ledgerman.conf import ledgerman_settings
from ledgerman.protocols.audit import AuditBackend, AuditRecord

logger = logging.getLogger(__name__)


def get_backend() -> AuditBackend:
    """Instantiate the configured AuditBackend."""
    backend_class = import_string(ledgerman_settings.AUDIT_BACKEND)
    return backend_class()


def record(
    merchant_id: int,
    action: str,
    target_type: str,
    target_id,
    actor: str = "",
    metadata: dict | None = None,
) -> AuditRecord:
    """
    Emit one audit record.

    Must be called inside the transaction of the audited write; a backend
    failure propagates and rolls the write back.
    """
    entry = AuditRecord(
        merchant_id=merchant_id,
        actor=actor or "",
        action=action,
        target_type=target_type,
        target_id=str(target_id),
        metadata=metadata or {},
    )
    get_backend().record(entry)
    logger.debug("Audit %s %s:%s by %r", action, target_type, target_id, actor)
    return entry
