import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, TransactionTestCase

from orders.models import Order
from products.models import Product, StockMovement
from products.services import InventoryLedger
from products.services.exceptions import InsufficientStock, ProductNotFound
from products.services.inventory import aggregate_lines
from products.tests.helpers import run_concurrently


class InventoryLedgerTests(TestCase):
    """
    GUARANTEES:
    - Reservation is a conditional decrement (never below zero)
    - reserve + restore leaves stock unchanged
    - Every change writes one StockMovement
    - reserve_many is all-or-nothing
    """

    def setUp(self):
        self.ledger = InventoryLedger()
        self.maize = Product.objects.create(
            sku="MAIZE-2KG", name="Maize Flour 2kg", unit_price=Decimal("210.00"), stock=5
        )
        self.milk = Product.objects.create(
            sku="MILK-500", name="Fresh Milk 500ml", unit_price=Decimal("65.00"), stock=1
        )
        self.order = Order.objects.create(payment_method="mpesa", payer_phone="254712345678")

    def _stock(self, product):
        product.refresh_from_db(fields=["stock"])
        return product.stock

    # --------------------------------------------------
    # RESERVE
    # --------------------------------------------------

    def test_reserve_decrements_and_audits(self):
        self.ledger.reserve(product_id=self.maize.pk, quantity=3, order=self.order)

        self.assertEqual(self._stock(self.maize), 2)
        movement = StockMovement.objects.get(product=self.maize)
        self.assertEqual(movement.reason, StockMovement.Reason.RESERVATION)
        self.assertEqual(movement.movement_type, StockMovement.MovementType.OUT)
        self.assertEqual(movement.quantity, 3)
        self.assertEqual(movement.order, self.order)

    def test_reserve_more_than_available_is_refused(self):
        with self.assertRaises(InsufficientStock) as ctx:
            self.ledger.reserve(product_id=self.maize.pk, quantity=6, order=self.order)

        self.assertEqual(ctx.exception.requested, 6)
        self.assertEqual(ctx.exception.available, 5)
        self.assertEqual(self._stock(self.maize), 5)
        self.assertFalse(StockMovement.objects.exists())

    def test_reserve_exact_stock_reaches_zero_then_refuses(self):
        self.ledger.reserve(product_id=self.maize.pk, quantity=5, order=self.order)
        self.assertEqual(self._stock(self.maize), 0)

        with self.assertRaises(InsufficientStock):
            self.ledger.reserve(product_id=self.maize.pk, quantity=1, order=self.order)
        self.assertEqual(self._stock(self.maize), 0)

    def test_sequential_reservations_never_oversell(self):
        # stock=5, two orders of 3 -> exactly one succeeds
        self.ledger.reserve(product_id=self.maize.pk, quantity=3, order=self.order)
        with self.assertRaises(InsufficientStock):
            self.ledger.reserve(product_id=self.maize.pk, quantity=3, order=self.order)

        self.assertEqual(self._stock(self.maize), 2)

    def test_unknown_product(self):
        with self.assertRaises(ProductNotFound):
            self.ledger.reserve(product_id=uuid.uuid4(), quantity=1, order=self.order)

    def test_invalid_quantities_rejected(self):
        for bad in (0, -1, True, "abc", 1.5):
            with self.assertRaises(ValueError):
                self.ledger.reserve(product_id=self.maize.pk, quantity=bad, order=self.order)
        self.assertEqual(self._stock(self.maize), 5)

    # --------------------------------------------------
    # RESTORE / RECEIVE
    # --------------------------------------------------

    def test_reserve_then_restore_is_identity(self):
        before = self._stock(self.maize)

        self.ledger.reserve(product_id=self.maize.pk, quantity=4, order=self.order)
        self.ledger.restore(product_id=self.maize.pk, quantity=4, order=self.order)

        self.assertEqual(self._stock(self.maize), before)
        reasons = list(
            StockMovement.objects.filter(product=self.maize).values_list("reason", flat=True)
        )
        self.assertEqual(
            reasons,
            [StockMovement.Reason.RESERVATION, StockMovement.Reason.CANCELLATION],
        )

    def test_receive_writes_restock_movement(self):
        self.ledger.receive(product_id=self.milk.pk, quantity=10)

        self.assertEqual(self._stock(self.milk), 11)
        movement = StockMovement.objects.get(product=self.milk)
        self.assertEqual(movement.reason, StockMovement.Reason.RESTOCK)
        self.assertEqual(movement.movement_type, StockMovement.MovementType.IN)
        self.assertIsNone(movement.order)

    def test_available(self):
        self.assertEqual(self.ledger.available(product_id=self.maize.pk), 5)

    # --------------------------------------------------
    # MULTI-LINE
    # --------------------------------------------------

    def test_reserve_many_rolls_back_earlier_lines(self):
        with self.assertRaises(InsufficientStock):
            self.ledger.reserve_many(
                [(self.maize.pk, 2), (self.milk.pk, 3)],
                order=self.order,
            )

        self.assertEqual(self._stock(self.maize), 5)
        self.assertEqual(self._stock(self.milk), 1)
        self.assertFalse(StockMovement.objects.exists())

    def test_reserve_many_merges_duplicate_lines(self):
        self.ledger.reserve_many(
            [(self.maize.pk, 1), (self.maize.pk, 2)],
            order=self.order,
        )

        self.assertEqual(self._stock(self.maize), 2)
        self.assertEqual(StockMovement.objects.filter(product=self.maize).count(), 1)

    def test_aggregate_lines_orders_by_product_id(self):
        a = uuid.UUID("00000000-0000-0000-0000-00000000000a")
        b = uuid.UUID("00000000-0000-0000-0000-00000000000b")

        lines = aggregate_lines([(b, 1), (a, 2), (b, 3)])

        self.assertEqual(lines, [(a, 2), (b, 4)])

    def test_aggregate_lines_merges_string_and_uuid_ids(self):
        lines = aggregate_lines([(str(self.maize.pk), 1), (self.maize.pk, 2)])

        self.assertEqual(lines, [(self.maize.pk, 3)])

    def test_aggregate_lines_rejects_malformed_id(self):
        with self.assertRaises(ProductNotFound):
            aggregate_lines([("not-a-uuid", 1)])


class ConcurrentReservationTests(TransactionTestCase):
    """
    Threads hit the same stock counter at once, each on its own connection.
    """

    def setUp(self):
        self.ledger = InventoryLedger()
        self.maize = Product.objects.create(
            sku="MAIZE-2KG", name="Maize Flour 2kg", unit_price=Decimal("210.00"), stock=5
        )
        self.order = Order.objects.create(payment_method="mpesa", payer_phone="254712345678")

    def _stock(self):
        self.maize.refresh_from_db(fields=["stock"])
        return self.maize.stock

    def test_simultaneous_reservations_never_oversell(self):
        def reserve_three():
            self.ledger.reserve(product_id=self.maize.pk, quantity=3, order=self.order)
            return True

        results, errors = run_concurrently(reserve_three, count=2)

        self.assertEqual(len(results), 1)
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], InsufficientStock)
        self.assertEqual(self._stock(), 2)

    def test_many_single_unit_reservations_stop_at_zero(self):
        def reserve_one():
            self.ledger.reserve(product_id=self.maize.pk, quantity=1, order=self.order)
            return True

        results, errors = run_concurrently(reserve_one, count=8)

        self.assertEqual(len(results), 5)
        self.assertEqual(len(errors), 3)
        self.assertTrue(all(isinstance(exc, InsufficientStock) for exc in errors))
        self.assertEqual(self._stock(), 0)

    def test_interleaved_reserve_restore_is_identity(self):
        def reserve_and_restore():
            done = 0
            for _ in range(5):
                try:
                    self.ledger.reserve(product_id=self.maize.pk, quantity=2, order=self.order)
                except InsufficientStock:
                    continue
                self.ledger.restore(product_id=self.maize.pk, quantity=2, order=self.order)
                done += 1
            return done

        results, errors = run_concurrently(reserve_and_restore, count=4)

        self.assertEqual(errors, [])
        self.assertEqual(self._stock(), 5)
        movements = StockMovement.objects.filter(product=self.maize)
        self.assertEqual(
            movements.filter(reason=StockMovement.Reason.RESERVATION).count(),
            movements.filter(reason=StockMovement.Reason.CANCELLATION).count(),
        )
        self.assertEqual(movements.filter(reason=StockMovement.Reason.RESERVATION).count(), sum(results))


class StockMovementImmutabilityTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(
            sku="EGGS-TRAY", name="Eggs", unit_price=Decimal("480.00"), stock=0
        )
        InventoryLedger().receive(product_id=self.product.pk, quantity=3)
        self.movement = StockMovement.objects.get(product=self.product)

    def test_update_rejected(self):
        self.movement.quantity = 99
        with self.assertRaises(ValidationError):
            self.movement.save()

    def test_delete_rejected(self):
        with self.assertRaises(ValidationError):
            self.movement.delete()

    def test_order_reason_requires_order(self):
        with self.assertRaises(ValidationError):
            StockMovement.objects.create(
                product=self.product,
                reason=StockMovement.Reason.RESERVATION,
                quantity=1,
            )


class ProductModelTests(TestCase):
    def test_price_must_be_positive(self):
        product = Product(sku="X-1", name="Free thing", unit_price=Decimal("0.00"))
        with self.assertRaises(ValidationError):
            product.full_clean()
