# Generated migration for the ledger core models

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Merchant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("slug", models.SlugField(max_length=80, unique=True, verbose_name="slug")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
            ],
            options={
                "verbose_name": "merchant",
                "verbose_name_plural": "merchants",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("blocked", "Blocked")],
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("blocked_at", models.DateTimeField(blank=True, null=True, verbose_name="blocked at")),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="customers",
                        to="ledgerman.merchant",
                        verbose_name="merchant",
                    ),
                ),
            ],
            options={
                "verbose_name": "customer",
                "verbose_name_plural": "customers",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="CustomerToken",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("qr", "QR code"),
                            ("barcode", "Barcode"),
                            ("nfc", "NFC"),
                            ("apple_wallet", "Apple Wallet"),
                            ("google_wallet", "Google Wallet"),
                            ("samsung_wallet", "Samsung Wallet"),
                        ],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("public_token", models.CharField(max_length=128, verbose_name="public token")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("revoked", "Revoked")],
                        default="active",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("issued_at", models.DateTimeField(auto_now_add=True, verbose_name="issued at")),
                ("revoked_at", models.DateTimeField(blank=True, null=True, verbose_name="revoked at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tokens",
                        to="ledgerman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tokens",
                        to="ledgerman.merchant",
                        verbose_name="merchant",
                    ),
                ),
            ],
            options={
                "verbose_name": "customer token",
                "verbose_name_plural": "customer tokens",
                "ordering": ["-issued_at"],
                "indexes": [models.Index(fields=["public_token"], name="ledgerman_token_public_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("merchant", "public_token"),
                        name="ledgerman_token_merchant_public_token_uq",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="RuleVersion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("version", models.PositiveIntegerField(verbose_name="version")),
                (
                    "points_per_unit",
                    models.DecimalField(decimal_places=4, max_digits=12, verbose_name="points per currency unit"),
                ),
                (
                    "rounding",
                    models.CharField(
                        choices=[("floor", "Floor"), ("nearest", "Nearest (half up)")],
                        default="floor",
                        max_length=10,
                        verbose_name="rounding",
                    ),
                ),
                (
                    "promo_multiplier",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("1"),
                        max_digits=8,
                        verbose_name="promotional multiplier",
                    ),
                ),
                (
                    "effective_from",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="effective from"),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rule_versions",
                        to="ledgerman.merchant",
                        verbose_name="merchant",
                    ),
                ),
            ],
            options={
                "verbose_name": "rule version",
                "verbose_name_plural": "rule versions",
                "ordering": ["merchant", "-version"],
                "indexes": [
                    models.Index(fields=["merchant", "effective_from"], name="ledgerman_rule_effective_idx")
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("merchant", "version"),
                        name="ledgerman_rule_merchant_version_uq",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("points_per_unit__gt", 0)),
                        name="ledgerman_rule_points_per_unit_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("promo_multiplier__gt", 0)),
                        name="ledgerman_rule_promo_multiplier_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Reward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("points_cost", models.PositiveIntegerField(verbose_name="points cost")),
                ("active", models.BooleanField(default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rewards",
                        to="ledgerman.merchant",
                        verbose_name="merchant",
                    ),
                ),
            ],
            options={
                "verbose_name": "reward",
                "verbose_name_plural": "rewards",
                "ordering": ["points_cost", "name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("points_cost__gt", 0)),
                        name="ledgerman_reward_points_cost_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("earn", "Earn"),
                            ("redeem", "Redeem"),
                            ("adjust", "Adjust"),
                            ("reversal", "Reversal"),
                            ("expire", "Expire"),
                        ],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                (
                    "points_delta",
                    models.IntegerField(
                        help_text="Positive for earn/reversal, negative for redeem/expire",
                        verbose_name="points delta",
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[("terminal", "Terminal"), ("pos", "Point of sale"), ("admin", "Admin")],
                        max_length=20,
                        verbose_name="source",
                    ),
                ),
                (
                    "external_id",
                    models.CharField(
                        blank=True,
                        help_text="Correlation id (e.g. redemption id)",
                        max_length=100,
                        null=True,
                        verbose_name="external id",
                    ),
                ),
                ("idempotency_key", models.CharField(max_length=255, verbose_name="idempotency key")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="ledgerman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="ledgerman.merchant",
                        verbose_name="merchant",
                    ),
                ),
                (
                    "rule_version",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="ledgerman.ruleversion",
                        verbose_name="rule version",
                    ),
                ),
            ],
            options={
                "verbose_name": "ledger entry",
                "verbose_name_plural": "ledger entries",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["merchant", "customer", "created_at"],
                        name="ledgerman_ledger_cust_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("merchant", "idempotency_key"),
                        name="ledgerman_ledger_merchant_idempotency_uq",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Redemption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("points_cost", models.PositiveIntegerField(verbose_name="points cost")),
                (
                    "status",
                    models.CharField(
                        choices=[("approved", "Approved"), ("reversed", "Reversed")],
                        default="approved",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("reversed_at", models.DateTimeField(blank=True, null=True, verbose_name="reversed at")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="ledgerman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="ledgerman.merchant",
                        verbose_name="merchant",
                    ),
                ),
                (
                    "reward",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="ledgerman.reward",
                        verbose_name="reward",
                    ),
                ),
            ],
            options={
                "verbose_name": "redemption",
                "verbose_name_plural": "redemptions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["merchant", "customer", "created_at"],
                        name="ledgerman_redemption_cust_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "actor",
                    models.CharField(
                        blank=True,
                        help_text="Staff user or system that performed the action",
                        max_length=100,
                        verbose_name="actor",
                    ),
                ),
                ("action", models.CharField(db_index=True, max_length=50, verbose_name="action")),
                ("target_type", models.CharField(max_length=50, verbose_name="target type")),
                ("target_id", models.CharField(max_length=100, verbose_name="target id")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_logs",
                        to="ledgerman.merchant",
                        verbose_name="merchant",
                    ),
                ),
            ],
            options={
                "verbose_name": "audit log",
                "verbose_name_plural": "audit logs",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["merchant", "-created_at"], name="ledgerman_audit_merchant_idx")
                ],
            },
        ),
    ]
