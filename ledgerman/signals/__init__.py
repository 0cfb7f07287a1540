"""
Ledgerman signals - public event API.

All signals are sent from transaction.on_commit(), so receivers only
ever observe committed state.

Emitted signals:
- ledger_entry_created: sender=LedgerEntry, entry=LedgerEntry
- redemption_created: sender=Redemption, redemption=Redemption
- redemption_reversed: sender=Redemption, redemption=Redemption
- rule_version_created: sender=RuleVersion, rule=RuleVersion
"""

from django.dispatch import Signal

ledger_entry_created = Signal()
redemption_created = Signal()
redemption_reversed = Signal()
rule_version_created = Signal()
