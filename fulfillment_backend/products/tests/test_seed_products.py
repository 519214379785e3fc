from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from products.models import Product, StockMovement


class SeedProductsCommandTests(TestCase):
    def test_seed_creates_catalog_with_opening_stock(self):
        call_command("seed_products", stdout=StringIO())

        self.assertEqual(Product.objects.count(), 5)
        maize = Product.objects.get(sku="MAIZE-2KG")
        self.assertEqual(maize.stock, 120)
        self.assertTrue(
            StockMovement.objects.filter(product=maize, reason=StockMovement.Reason.RESTOCK).exists()
        )

    def test_skip_stock(self):
        call_command("seed_products", "--skip-stock", stdout=StringIO())

        self.assertEqual(Product.objects.filter(stock=0).count(), 5)
        self.assertFalse(StockMovement.objects.exists())
