# payments/management/commands/expire_stale_payments.py

from django.core.management.base import BaseCommand

from payments.services import build_engine


class Command(BaseCommand):
    help = "Cancel pending payments with no provider result after the TTL and release their stock"

    def add_arguments(self, parser):
        parser.add_argument(
            "--minutes",
            type=int,
            default=None,
            help="Age threshold in minutes (default: PAYMENTS['PENDING_TTL_MINUTES'])",
        )

    def handle(self, *args, **options):
        count = build_engine().expire_stale_payments(older_than_minutes=options["minutes"])
        self.stdout.write(self.style.SUCCESS(f"Expired {count} stale payment(s)"))
