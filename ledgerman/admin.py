"""Ledgerman admin.

Ledger entries, rule versions and audit logs are read-only here: the
ledger is append-only and changes go through the services.
"""

from django.contrib import admin
from django.utils.html import format_html

from ledgerman.models import (
    AuditLog,
    Customer,
    CustomerDevice,
    CustomerToken,
    LedgerEntry,
    Merchant,
    Redemption,
    Reward,
    RuleVersion,
)
from ledgerman.services import ledger


class ReadOnlyAdminMixin:
    """No add, change or delete from the admin."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# Merchant / Reward Admin
# ===========================================


@admin.register(Merchant)
class MerchantAdmin(admin.ModelAdmin):
    list_display = ["slug", "name", "created_at"]
    search_fields = ["slug", "name"]
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Reward)
class RewardAdmin(admin.ModelAdmin):
    list_display = ["name", "merchant", "points_cost", "active"]
    list_filter = ["active", "merchant"]
    search_fields = ["name"]

    def has_delete_permission(self, request, obj=None):
        # Redemptions reference rewards; deactivate instead
        return False


# ===========================================
# Inline Classes (must be defined before CustomerAdmin)
# ===========================================


class CustomerTokenInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = CustomerToken
    extra = 0
    fields = ["type", "status", "issued_at", "revoked_at"]
    readonly_fields = fields


class CustomerDeviceInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = CustomerDevice
    extra = 0
    fields = ["device_id", "created_at", "last_seen_at"]
    readonly_fields = fields


class LedgerEntryInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = LedgerEntry
    extra = 0
    fields = ["created_at", "type", "points_delta", "source", "idempotency_key"]
    readonly_fields = fields
    ordering = ["-created_at"]


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ["id", "merchant", "status", "balance", "created_at"]
    list_filter = ["status", "merchant"]
    readonly_fields = ["created_at", "blocked_at", "balance"]
    inlines = [CustomerTokenInline, CustomerDeviceInline, LedgerEntryInline]

    def balance(self, obj):
        return ledger.get_balance(obj.merchant_id, obj.pk)

    balance.short_description = "Balance"


# ===========================================
# Ledger Admin (read-only)
# ===========================================


@admin.register(LedgerEntry)
class LedgerEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "created_at",
        "merchant",
        "customer_id",
        "type",
        "points_display",
        "source",
        "idempotency_key",
    ]
    list_filter = ["type", "source", "merchant"]
    search_fields = ["idempotency_key", "external_id"]
    date_hierarchy = "created_at"

    def points_display(self, obj):
        if obj.points_delta > 0:
            return format_html('<span style="color:green">+{}</span>', obj.points_delta)
        return format_html('<span style="color:red">{}</span>', obj.points_delta)

    points_display.short_description = "Points"


@admin.register(RuleVersion)
class RuleVersionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "merchant",
        "version",
        "points_per_unit",
        "promo_multiplier",
        "rounding",
        "effective_from",
    ]
    list_filter = ["merchant", "rounding"]


@admin.register(Redemption)
class RedemptionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["created_at", "merchant", "customer_id", "reward", "points_cost", "status"]
    list_filter = ["status", "merchant"]
    search_fields = ["uuid"]


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["created_at", "merchant", "actor", "action", "target_type", "target_id"]
    list_filter = ["action", "merchant"]
    search_fields = ["actor", "target_id"]
    date_hierarchy = "created_at"
