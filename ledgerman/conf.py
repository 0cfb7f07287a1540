"""
Ledgerman configuration.

Usage in settings.py:
    LEDGERMAN = {
        "IDEMPOTENCY_KEY_MIN_LENGTH": 8,
        "LOCK_TIMEOUT_MS": 5000,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class LedgermanSettings:
    """Ledgerman configuration settings."""

    # Idempotency keys shorter than this are rejected before any write
    IDEMPOTENCY_KEY_MIN_LENGTH: int = 8
    IDEMPOTENCY_KEY_MAX_LENGTH: int = 255

    # list_ledger() paging
    LEDGER_LIST_DEFAULT: int = 50
    LEDGER_LIST_MAX: int = 100

    # Public token entropy, in bytes
    TOKEN_BYTES: int = 16

    # Attempts at assigning the next rule version number
    RULE_VERSION_RETRIES: int = 3

    # PostgreSQL lock_timeout for the per-customer lock (0 = store default)
    LOCK_TIMEOUT_MS: int = 0

    # Audit backend (dotted path to an AuditBackend implementation)
    AUDIT_BACKEND: str = "ledgerman.adapters.db_audit.DatabaseAuditBackend"


def get_ledgerman_settings() -> LedgermanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LEDGERMAN", {})
    return LedgermanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_ledgerman_settings(), name)


ledgerman_settings = _LazySettings()
