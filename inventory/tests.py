from decimal import Decimal
from unittest.mock import Mock, patch

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from audit.models import ActivityLog
from base.exceptions import (
    InsufficientStock,
    ItemInactive,
    ItemNotFound,
    PersistenceFailure,
    ValidationFailed,
)
from user.models import CustomUser

from .models import Category, Item, StockMovement
from .services import StockLedger
from .signals import stock_low


class StockLedgerTestMixin:
    def create_item(self, code, stock, price="10.00", min_stock_level=0, **extra):
        item = Item.objects.create(
            item_code=code,
            name=f"Book {code}",
            category=self.category,
            price=Decimal(price),
            stock_quantity=stock,
            min_stock_level=min_stock_level,
            **extra,
        )
        StockLedger.record_initial_stock(item, self.user)
        return item

    def setUp(self):
        self.user = CustomUser.objects.create_user("clerk", password="secret")
        self.category = Category.objects.create(name="fiction")
        self.item = self.create_item("BK1", 10, min_stock_level=2)


class ReserveAndDebitTestCase(StockLedgerTestMixin, TestCase):
    def test_debit_reduces_stock_and_records_sale(self):
        movement = StockLedger.reserve_and_debit(
            self.item.pk, 3, reference_id=41, line_total=Decimal("30.00"), user=self.user
        )

        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 7)
        self.assertEqual(self.item.total_sold, 3)
        self.assertEqual(self.item.total_revenue, Decimal("30.00"))

        self.assertEqual(movement.movement_type, StockMovement.MovementType.OUT)
        self.assertEqual(movement.reference_type, StockMovement.ReferenceType.SALE)
        self.assertEqual(movement.quantity, -3)
        self.assertEqual(movement.balance_after, 7)
        self.assertEqual(movement.reference_id, 41)
        self.assertTrue(StockLedger.reconcile(self.item))

    def test_insufficient_stock_changes_nothing(self):
        with self.assertRaises(InsufficientStock) as cm:
            StockLedger.reserve_and_debit(self.item.pk, 11)

        self.assertEqual(cm.exception.available, 10)
        self.assertEqual(cm.exception.requested, 11)
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 10)
        self.assertEqual(StockMovement.objects.for_item(self.item).count(), 1)

    def test_exact_stock_can_be_sold(self):
        StockLedger.reserve_and_debit(self.item.pk, 10)
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 0)

    def test_inactive_item_is_rejected(self):
        Item.objects.filter(pk=self.item.pk).update(status=Item.ItemStatus.DISCONTINUED)
        with self.assertRaises(ItemInactive):
            StockLedger.reserve_and_debit(self.item.pk, 1)

    def test_unknown_item_is_rejected(self):
        with self.assertRaises(ItemNotFound):
            StockLedger.reserve_and_debit(self.item.pk + 999, 1)

    def test_quantity_must_be_positive_integer(self):
        for quantity in (0, -1, 1.5, True):
            with self.assertRaises(ValidationFailed):
                StockLedger.reserve_and_debit(self.item.pk, quantity)

    def test_stale_read_cannot_oversell(self):
        # Both callers saw 10 units; only the first request for 8 may succeed
        stale = Item.objects.get(pk=self.item.pk)
        self.assertEqual(stale.stock_quantity, 10)

        StockLedger.reserve_and_debit(stale.pk, 8)
        with self.assertRaises(InsufficientStock) as cm:
            StockLedger.reserve_and_debit(stale.pk, 8)

        self.assertEqual(cm.exception.available, 2)
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 2)
        self.assertTrue(StockLedger.reconcile(self.item))

    def test_low_stock_signal_after_commit(self):
        handler = Mock()
        stock_low.connect(handler, weak=False)
        self.addCleanup(stock_low.disconnect, handler)

        with self.assertLogs("inventory.signals", level="WARNING"):
            with self.captureOnCommitCallbacks(execute=True):
                StockLedger.reserve_and_debit(self.item.pk, 8)
                handler.assert_not_called()

        handler.assert_called_once()
        self.assertEqual(handler.call_args.kwargs["item_id"], self.item.pk)
        self.assertEqual(handler.call_args.kwargs["stock_quantity"], 2)


class RestoreTestCase(StockLedgerTestMixin, TestCase):
    def test_restore_is_inverse_of_debit(self):
        StockLedger.reserve_and_debit(
            self.item.pk, 4, reference_id=7, line_total=Decimal("40.00")
        )
        movement = StockLedger.restore(
            self.item.pk, 4, reference_id=7, line_total=Decimal("40.00")
        )

        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 10)
        self.assertEqual(self.item.total_sold, 0)
        self.assertEqual(self.item.total_revenue, Decimal("0.00"))
        self.assertEqual(movement.movement_type, StockMovement.MovementType.IN)
        self.assertEqual(movement.reference_type, StockMovement.ReferenceType.RETURN)
        self.assertEqual(movement.quantity, 4)

        ledger = StockLedger.movements_for(StockMovement.ReferenceType.SALE, 7)
        self.assertEqual([m.quantity for m in ledger], [-4])
        self.assertTrue(StockLedger.reconcile(self.item))

    def test_sales_totals_are_floored_at_zero(self):
        StockLedger.restore(self.item.pk, 2, line_total=Decimal("20.00"))
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 12)
        self.assertEqual(self.item.total_sold, 0)
        self.assertEqual(self.item.total_revenue, Decimal("0.00"))

    def test_restore_unknown_item(self):
        with self.assertRaises(ItemNotFound):
            StockLedger.restore(self.item.pk + 999, 1)


class ReceiveAndAdjustTestCase(StockLedgerTestMixin, TestCase):
    def test_receive_stock(self):
        movement = StockLedger.receive_stock(self.item.pk, 5, user=self.user)

        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 15)
        self.assertEqual(movement.reference_type, StockMovement.ReferenceType.PURCHASE)
        self.assertEqual(movement.balance_after, 15)
        self.assertEqual(StockLedger.ledger_balance(self.item), 15)

    def test_adjust_records_signed_difference_and_audit(self):
        movement = StockLedger.adjust_stock(self.item.pk, 7, "Stocktake", self.user)

        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 7)
        self.assertEqual(movement.movement_type, StockMovement.MovementType.ADJUSTMENT)
        self.assertEqual(movement.quantity, -3)
        self.assertEqual(movement.notes, "Stocktake")
        self.assertTrue(StockLedger.reconcile(self.item))
        self.assertTrue(
            ActivityLog.objects.filter(
                action=ActivityLog.Actions.STOCK_ADJUSTMENT, entity_id=self.item.pk
            ).exists()
        )

    def test_adjust_to_same_quantity_is_noop(self):
        self.assertIsNone(StockLedger.adjust_stock(self.item.pk, 10))
        self.assertEqual(StockMovement.objects.for_item(self.item).count(), 1)

    def test_adjust_rejects_bad_quantity(self):
        with self.assertRaises(ValidationFailed):
            StockLedger.adjust_stock(self.item.pk, -1)
        with self.assertRaises(ItemNotFound):
            StockLedger.adjust_stock(self.item.pk + 999, 3)

    def test_adjust_retries_after_concurrent_change(self):
        real_swap = Item.objects.swap_stock
        seen = []

        def flaky_swap(pk, expected, new_quantity):
            seen.append(expected)
            if len(seen) == 1:
                return 0
            return real_swap(pk, expected, new_quantity)

        with patch.object(Item.objects, "swap_stock", side_effect=flaky_swap):
            StockLedger.adjust_stock(self.item.pk, 4)

        self.assertEqual(len(seen), 2)
        self.item.refresh_from_db()
        self.assertEqual(self.item.stock_quantity, 4)

    def test_adjust_gives_up_when_always_conflicting(self):
        with patch.object(Item.objects, "swap_stock", return_value=0):
            with self.assertRaises(PersistenceFailure):
                StockLedger.adjust_stock(self.item.pk, 4)

        self.assertEqual(StockMovement.objects.for_item(self.item).count(), 1)

    def test_reconcile_detects_tampering(self):
        Item.objects.filter(pk=self.item.pk).update(stock_quantity=9)
        with self.assertLogs("inventory.services", level="WARNING"):
            self.assertFalse(StockLedger.reconcile(self.item))


class StockMovementTestCase(StockLedgerTestMixin, TestCase):
    def test_movements_are_append_only(self):
        movement = StockMovement.objects.for_item(self.item).get()
        movement.notes = "edited"
        with self.assertRaises(ValidationError):
            movement.save()
        with self.assertRaises(ValidationError):
            movement.delete()

    def test_item_helpers(self):
        self.assertTrue(self.item.is_active)
        self.assertFalse(self.item.is_low_stock)
        self.assertEqual(Item.objects.low_stock().count(), 0)
        StockLedger.reserve_and_debit(self.item.pk, 9)
        self.assertEqual(list(Item.objects.low_stock()), [self.item])


class ItemMovementsApiTestCase(StockLedgerTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_movements_listing(self):
        StockLedger.reserve_and_debit(self.item.pk, 2, reference_id=5)

        response = self.client.get(
            reverse("inventory:item_movements", args=[self.item.pk])
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "success")
        self.assertTrue(body["balanced"])
        self.assertEqual(body["count"], 2)
        self.assertEqual([m["quantity"] for m in body["results"]], [10, -2])
        self.assertEqual(body["results"][0]["created_by"], "clerk")

    def test_unknown_item(self):
        response = self.client.get(
            reverse("inventory:item_movements", args=[self.item.pk + 999])
        )
        self.assertEqual(response.status_code, 404)

    def test_authentication_required(self):
        self.client.force_authenticate(None)
        response = self.client.get(
            reverse("inventory:item_movements", args=[self.item.pk])
        )
        self.assertIn(response.status_code, (401, 403))
