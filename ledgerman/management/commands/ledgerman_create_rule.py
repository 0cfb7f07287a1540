"""Management command to append a points rule version for a merchant."""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ledgerman.exceptions import LedgermanError
from ledgerman.gates import GateError
from ledgerman.models import RoundingMode
from ledgerman.services import customers, rules


class Command(BaseCommand):
    help = "Create the next rule version for a merchant (versions are append-only)"

    def add_arguments(self, parser):
        parser.add_argument("merchant", help="Merchant slug")
        parser.add_argument(
            "--points-per-unit",
            required=True,
            help="Points per currency unit, e.g. 1 or 1.5",
        )
        parser.add_argument(
            "--rounding",
            choices=RoundingMode.values,
            default=RoundingMode.FLOOR,
        )
        parser.add_argument(
            "--multiplier",
            default="1",
            help="Promotional multiplier (default 1)",
        )
        parser.add_argument(
            "--effective-from",
            default=None,
            help="ISO-8601 datetime; defaults to now",
        )
        parser.add_argument("--actor", default="cli", help="Recorded in the audit log")

    def handle(self, *args, **options):
        effective_from = None
        if options["effective_from"]:
            effective_from = parse_datetime(options["effective_from"])
            if effective_from is None:
                raise CommandError(f"Invalid datetime: {options['effective_from']}")
            if timezone.is_naive(effective_from):
                effective_from = timezone.make_aware(effective_from)

        try:
            merchant = customers.get_merchant(options["merchant"])
            rule = rules.create_rule_version(
                merchant.pk,
                options["points_per_unit"],
                rounding=options["rounding"],
                promo_multiplier=options["multiplier"],
                effective_from=effective_from,
                actor=options["actor"],
            )
        except (LedgermanError, GateError) as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(
            self.style.SUCCESS(
                f"Created rule v{rule.version} for {merchant.slug}: "
                f"{rule.points_per_unit}/unit x{rule.promo_multiplier} ({rule.rounding}), "
                f"effective {rule.effective_from.isoformat()}"
            )
        )
