"""Ledgerman protocols."""

from ledgerman.protocols.audit import AuditBackend, AuditRecord

__all__ = [
    "AuditBackend",
    "AuditRecord",
]
