"""
Ledgerman public API.

CORE (essential):
    LedgerService.earn(...)                 - Award points for a purchase
    LedgerService.redeem(...)               - Grant a reward, charge its cost
    LedgerService.adjust(...)               - Manual correction
    LedgerService.get_balance(...)          - Derived balance
    LedgerService.list_ledger(...)          - Ledger history, newest first
    LedgerService.resolve_active_rule(...)  - Rule version in force
    LedgerService.create_rule_version(...)  - Append a rule version

CONVENIENCE (helpers):
    LedgerService.reverse_redemption(...)
    LedgerService.resolve_token(...) / issue_token(...) / revoke_token(...)
    LedgerService.init_session(...) / create_customer(...)
    LedgerService.list_rewards(...) / affordable_rewards(...)
"""

from datetime import datetime

from ledgerman.models import (
    Customer,
    CustomerToken,
    EntrySource,
    LedgerEntry,
    Reward,
    RoundingMode,
    RuleVersion,
    TokenType,
)
from ledgerman.services import customers, ledger, operations, redemption, rewards, rules, tokens
from ledgerman.services.customers import SessionResult
from ledgerman.services.operations import AdjustResult, EarnResult
from ledgerman.services.redemption import RedeemResult, ReversalResult
from ledgerman.services.tokens import ResolvedIdentity


class LedgerService:
    """
    Ledgerman public API.

    Uses @classmethod for extensibility. Callers pass an already-resolved
    merchant and customer; role checks (owner/manager/cashier) are the
    caller's job.

    Every mutating call is one transaction and is safe to retry with the
    same idempotency key.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def earn(
        cls,
        merchant_id: int,
        customer_id: int,
        amount,
        idempotency_key: str,
        at: datetime | None = None,
        source: str = EntrySource.TERMINAL,
    ) -> EarnResult:
        """
        Award points for a purchase amount.

        Returns:
            EarnResult(entry_id, balance, points_delta, idempotent, rule_version)
        """
        return operations.earn(merchant_id, customer_id, amount, idempotency_key, at=at, source=source)

    @classmethod
    def redeem(
        cls,
        merchant_id: int,
        customer_id: int,
        reward_id: int,
        idempotency_key: str,
        actor: str = "",
    ) -> RedeemResult:
        """
        Redeem a reward against the customer's balance.

        Returns:
            RedeemResult(redemption_id, balance, idempotent, points_cost)
        """
        return redemption.redeem(merchant_id, customer_id, reward_id, idempotency_key, actor=actor)

    @classmethod
    def adjust(
        cls,
        merchant_id: int,
        customer_id: int,
        points_delta: int,
        idempotency_key: str,
        reason: str,
        actor: str = "",
    ) -> AdjustResult:
        """Owner correction by any non-zero signed delta."""
        return operations.adjust(
            merchant_id, customer_id, points_delta, idempotency_key, reason, actor=actor
        )

    @classmethod
    def get_balance(cls, merchant_id: int, customer_id: int) -> int:
        """Current balance (0 when the customer has no entries)."""
        return ledger.get_balance(merchant_id, customer_id)

    @classmethod
    def list_ledger(
        cls,
        merchant_id: int,
        customer_id: int,
        limit: int | None = None,
    ) -> list[LedgerEntry]:
        """Ledger entries for a customer, newest first."""
        return ledger.list_ledger(merchant_id, customer_id, limit)

    @classmethod
    def resolve_active_rule(cls, merchant_id: int, at: datetime | None = None) -> RuleVersion:
        """Rule version in force at ``at`` (default: now)."""
        return rules.resolve_active_rule(merchant_id, at)

    @classmethod
    def create_rule_version(
        cls,
        merchant_id: int,
        points_per_unit,
        rounding: str = RoundingMode.FLOOR,
        promo_multiplier=1,
        effective_from: datetime | None = None,
        actor: str = "",
    ) -> RuleVersion:
        """Append rule version N+1 for the merchant."""
        return rules.create_rule_version(
            merchant_id,
            points_per_unit,
            rounding=rounding,
            promo_multiplier=promo_multiplier,
            effective_from=effective_from,
            actor=actor,
        )

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    @classmethod
    def reverse_redemption(
        cls,
        merchant_id: int,
        redemption_id: int,
        idempotency_key: str,
        actor: str = "",
        reason: str = "",
    ) -> ReversalResult:
        """Refund a redemption with a compensating reversal entry."""
        return redemption.reverse_redemption(
            merchant_id, redemption_id, idempotency_key, actor=actor, reason=reason
        )

    @classmethod
    def resolve_token(cls, public_token: str, merchant_id: int | None = None) -> ResolvedIdentity:
        """Resolve a presented token to (merchant, customer)."""
        return tokens.resolve_token(public_token, merchant_id)

    @classmethod
    def issue_token(
        cls,
        merchant_id: int,
        customer_id: int,
        token_type: str = TokenType.QR,
        metadata: dict | None = None,
    ) -> CustomerToken:
        """Issue a new random token for a customer."""
        return tokens.issue_token(merchant_id, customer_id, token_type, metadata)

    @classmethod
    def revoke_token(
        cls,
        merchant_id: int,
        public_token: str,
        actor: str = "",
        reason: str = "",
    ) -> CustomerToken:
        """Revoke a token (idempotent)."""
        return tokens.revoke_token(merchant_id, public_token, actor=actor, reason=reason)

    @classmethod
    def create_customer(cls, merchant_id: int) -> Customer:
        """Create an anonymous customer."""
        return customers.create_customer(merchant_id)

    @classmethod
    def init_session(cls, merchant_slug: str, device_id: str) -> SessionResult:
        """Resolve a device to its customer and token, creating them on first contact."""
        return customers.init_session(merchant_slug, device_id)

    @classmethod
    def list_rewards(cls, merchant_id: int) -> list[Reward]:
        """Active rewards, cheapest first."""
        return rewards.list_rewards(merchant_id)

    @classmethod
    def affordable_rewards(cls, merchant_id: int, customer_id: int) -> list[Reward]:
        """Active rewards the customer can redeem right now."""
        balance = ledger.get_balance(merchant_id, customer_id)
        return rewards.list_rewards(merchant_id, max_cost=balance)
