from django.db import transaction
import logging

from audit.models import ActivityLog
from audit.services import AuditService
from base.exceptions import (
    InsufficientStock,
    ItemInactive,
    ItemNotFound,
    PersistenceFailure,
    ValidationFailed,
)
from .models import Item, StockMovement
from .signals import stock_low

logger = logging.getLogger(__name__)

ADJUST_RETRIES = 5


class StockLedger:
    """
    Owner of item stock. Every change to ``Item.stock_quantity`` goes through
    here and is paired with a ``StockMovement`` row in the same transaction.
    """

    @staticmethod
    def reserve_and_debit(
        item_id, quantity, reference_id=None, line_total=0, user=None, notes=""
    ):
        """
        Take ``quantity`` units out of stock for a sale.

        The availability check and the decrement are one UPDATE, so two
        callers can never both pass the check on the same units. The row
        stays locked until the caller's transaction ends.
        """
        StockLedger._check_quantity(quantity)

        with transaction.atomic():
            updated = Item.objects.debit_stock(item_id, quantity, line_total)
            if not updated:
                StockLedger._raise_debit_failure(item_id, quantity)

            balance, min_level = Item.objects.stock_levels(item_id)
            movement = StockMovement.objects.create(
                item_id=item_id,
                movement_type=StockMovement.MovementType.OUT,
                quantity=-quantity,
                balance_after=balance,
                reference_type=StockMovement.ReferenceType.SALE,
                reference_id=reference_id,
                notes=notes or f"Sale - Bill: {reference_id}",
                created_by=user,
            )

            if balance <= min_level:
                transaction.on_commit(
                    lambda: stock_low.send(
                        sender=Item,
                        item_id=item_id,
                        stock_quantity=balance,
                        min_stock_level=min_level,
                    )
                )

        return movement

    @staticmethod
    def restore(item_id, quantity, reference_id=None, line_total=0, user=None, notes=""):
        """Put sold units back (bill cancellation)."""
        StockLedger._check_quantity(quantity)

        with transaction.atomic():
            if not Item.objects.credit_stock(item_id, quantity, line_total):
                raise ItemNotFound(item_id)

            balance, _ = Item.objects.stock_levels(item_id)
            return StockMovement.objects.create(
                item_id=item_id,
                movement_type=StockMovement.MovementType.IN,
                quantity=quantity,
                balance_after=balance,
                reference_type=StockMovement.ReferenceType.RETURN,
                reference_id=reference_id,
                notes=notes or f"Bill Cancelled - Bill: {reference_id}",
                created_by=user,
            )

    @staticmethod
    def record_initial_stock(item, user=None, notes=""):
        """Opening balance of a newly created item."""
        return StockMovement.objects.create(
            item=item,
            movement_type=StockMovement.MovementType.IN,
            quantity=item.stock_quantity,
            balance_after=item.stock_quantity,
            reference_type=StockMovement.ReferenceType.INITIAL,
            notes=notes or f"Initial Stock: {item.stock_quantity} units",
            created_by=user,
        )

    @staticmethod
    def receive_stock(item_id, quantity, user=None, notes=""):
        StockLedger._check_quantity(quantity)

        with transaction.atomic():
            if not Item.objects.receive_stock(item_id, quantity):
                raise ItemNotFound(item_id)

            balance, _ = Item.objects.stock_levels(item_id)
            return StockMovement.objects.create(
                item_id=item_id,
                movement_type=StockMovement.MovementType.IN,
                quantity=quantity,
                balance_after=balance,
                reference_type=StockMovement.ReferenceType.PURCHASE,
                notes=notes or f"Stock In: {quantity} units",
                created_by=user,
            )

    @staticmethod
    def adjust_stock(item_id, new_quantity, reason="", user=None):
        """
        Set stock to an absolute count (stocktake). Records the signed
        difference as an ADJUSTMENT movement and an audit entry. Returns
        None when the count already matches.
        """
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
            raise ValidationFailed({"new_quantity": "Quantity must be a whole number"})
        if new_quantity < 0:
            raise ValidationFailed({"new_quantity": "Quantity cannot be negative"})

        for _ in range(ADJUST_RETRIES):
            with transaction.atomic():
                levels = Item.objects.stock_levels(item_id)
                if levels is None:
                    raise ItemNotFound(item_id)
                current = levels[0]
                change = new_quantity - current
                if change == 0:
                    return None

                if not Item.objects.swap_stock(item_id, current, new_quantity):
                    # Someone else moved the stock in between; read again
                    continue

                movement = StockMovement.objects.create(
                    item_id=item_id,
                    movement_type=StockMovement.MovementType.ADJUSTMENT,
                    quantity=change,
                    balance_after=new_quantity,
                    reference_type=StockMovement.ReferenceType.ADJUSTMENT,
                    notes=reason or f"Stock adjusted from {current} to {new_quantity}",
                    created_by=user,
                )
            break
        else:
            logger.error("Stock adjustment of item %s kept conflicting", item_id)
            raise PersistenceFailure(
                f"Stock of item {item_id} changed concurrently, adjustment not applied"
            )

        AuditService.record(
            user,
            ActivityLog.Actions.STOCK_ADJUSTMENT,
            ActivityLog.EntityTypes.ITEMS,
            item_id,
            reason or f"Stock adjusted from {current} to {new_quantity}",
        )
        logger.info("Stock of item %s adjusted %s -> %s", item_id, current, new_quantity)
        return movement

    @staticmethod
    def movements_for(reference_type, reference_id):
        return StockMovement.objects.by_reference(reference_type, reference_id)

    @staticmethod
    def ledger_balance(item):
        return StockMovement.objects.for_item(item).balance()

    @staticmethod
    def reconcile(item):
        """True when the movements of ``item`` add up to its stored stock."""
        stock = Item.objects.filter(pk=getattr(item, "pk", item)).values_list(
            "stock_quantity", flat=True
        ).first()
        if stock is None:
            raise ItemNotFound(getattr(item, "pk", item))
        balance = StockLedger.ledger_balance(item)
        if balance != stock:
            logger.warning(
                "Ledger mismatch for item %s: stock %s, movements %s",
                getattr(item, "pk", item),
                stock,
                balance,
            )
        return balance == stock

    @staticmethod
    def _check_quantity(quantity):
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationFailed({"quantity": "Quantity must be a positive whole number"})

    @staticmethod
    def _raise_debit_failure(item_id, quantity):
        item = (
            Item.objects.filter(pk=item_id)
            .values("name", "status", "stock_quantity")
            .first()
        )
        if item is None:
            raise ItemNotFound(item_id)
        if item["status"] != Item.ItemStatus.ACTIVE:
            raise ItemInactive(item_id, item["name"])
        logger.warning(
            "Insufficient stock for item %s: available %s, requested %s",
            item_id,
            item["stock_quantity"],
            quantity,
        )
        raise InsufficientStock(item_id, item["stock_quantity"], quantity, item["name"])
