# products/management/commands/seed_products.py

from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from products.models import Product
from products.services import InventoryLedger


PRODUCTS_DATA = [
    ("MAIZE-2KG", "Maize Flour 2kg", "210.00", 120),
    ("MILK-500", "Fresh Milk 500ml", "65.00", 200),
    ("EGGS-TRAY", "Eggs (Tray of 30)", "480.00", 40),
    ("HONEY-1KG", "Raw Honey 1kg", "950.00", 25),
    ("AVOC-1KG", "Hass Avocado 1kg", "180.00", 60),
]


class Command(BaseCommand):
    help = "Seed catalog products and receive opening stock through the inventory ledger"

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-stock",
            action="store_true",
            help="Create products only; do not receive opening stock",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding products and stock..."))

        ledger = InventoryLedger()
        created_count = 0

        for sku, name, price, opening_stock in PRODUCTS_DATA:
            product, created = Product.objects.get_or_create(
                sku=sku,
                defaults={"name": name, "unit_price": Decimal(price)},
            )
            if not created:
                continue

            created_count += 1
            if not options.get("skip_stock") and opening_stock > 0:
                ledger.receive(product_id=product.pk, quantity=opening_stock)

        self.stdout.write(self.style.SUCCESS(f"Seeded {created_count} new products."))
