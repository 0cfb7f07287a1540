# Lazy customer creation per (merchant, device) session

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("ledgerman", "0002_ledger_immutability_triggers"),
    ]

    operations = [
        migrations.CreateModel(
            name="CustomerDevice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("device_id", models.CharField(max_length=128, verbose_name="device id")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "last_seen_at",
                    models.DateTimeField(default=django.utils.timezone.now, verbose_name="last seen at"),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="devices",
                        to="ledgerman.customer",
                        verbose_name="customer",
                    ),
                ),
                (
                    "merchant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="devices",
                        to="ledgerman.merchant",
                        verbose_name="merchant",
                    ),
                ),
            ],
            options={
                "verbose_name": "customer device",
                "verbose_name_plural": "customer devices",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("merchant", "device_id"),
                        name="ledgerman_device_merchant_device_uq",
                    ),
                ],
            },
        ),
    ]
