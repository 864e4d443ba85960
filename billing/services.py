from decimal import Decimal
from typing import NamedTuple

from django.db import DatabaseError, transaction
from django.utils import timezone
import logging

from audit.models import ActivityLog
from audit.services import AuditService
from base.exceptions import (
    BillNotFound,
    BillingError,
    CustomerNotFound,
    InvalidState,
    PersistenceFailure,
    ValidationFailed,
)
from base.utility import is_valid_percentage, to_decimal
from customer.models import Customer
from inventory.services import StockLedger

from .calculator import calculate_line, calculate_totals, to_money
from .choices import BillStatusChoices, PaymentMethodChoices, PaymentStatusChoices
from .config import BillingConfig
from .models import Bill, BillItem
from .numbering import BillNumberAllocator
from .signals import bill_cancelled, bill_created

logger = logging.getLogger(__name__)


class BillLine(NamedTuple):
    """A validated line of a bill request"""

    item_id: int
    quantity: int
    unit_price: Decimal
    discount_percentage: Decimal


def _exceeds_cents(value):
    return value is not None and value != to_money(value)


def _percentage(value):
    # absent means zero, anything unparsable stays None and fails validation
    if value is None or value == "":
        return Decimal("0")
    return to_decimal(value)


def _positive_int(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value)
        return number if number > 0 else None
    return None


class BillingService:
    """
    Bill creation and cancellation.

    ``create_bill`` is all-or-nothing: stock debits, ledger rows, the bill
    header, its lines and the customer totals are written in one database
    transaction, so any failure leaves no trace except a skipped bill
    number. Audit entries and signals are emitted only after commit.
    """

    def __init__(self, config=None, allocator=None):
        self.config = config or BillingConfig.from_settings()
        self.allocator = allocator or BillNumberAllocator(self.config)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_bill(
        self,
        customer_id,
        lines,
        actor,
        discount_percentage=0,
        tax_percentage=None,
        payment_method=None,
        payment_status=PaymentStatusChoices.PAID,
        notes="",
        bill_number=None,
    ):
        if tax_percentage is None:
            tax_percentage = self.config.default_tax_percentage
        if payment_method is None:
            payment_method = self.config.default_payment_method

        bill_lines, discount_percentage, tax_percentage = self._validate(
            customer_id,
            lines,
            discount_percentage,
            tax_percentage,
            payment_method,
            payment_status,
            bill_number,
        )

        if not Customer.objects.exists(customer_id):
            logger.warning(f"Bill rejected, unknown customer {customer_id}")
            raise CustomerNotFound(customer_id)

        if not bill_number:
            bill_number = self.allocator.next()

        try:
            bill = self._persist_bill(
                customer_id=customer_id,
                bill_lines=bill_lines,
                actor=actor,
                bill_number=bill_number,
                discount_percentage=discount_percentage,
                tax_percentage=tax_percentage,
                payment_method=payment_method,
                payment_status=payment_status,
                notes=notes,
            )
        except BillingError as e:
            logger.warning(f"Bill {bill_number} rejected: {e.message}")
            raise
        except DatabaseError as e:
            logger.exception(f"Failed to persist bill {bill_number}")
            raise PersistenceFailure(f"Failed to create bill: {e}") from e

        AuditService.record(
            actor,
            ActivityLog.Actions.BILL_CREATED,
            ActivityLog.EntityTypes.BILLS,
            bill.pk,
            f"Bill created: {bill.bill_number}",
        )
        logger.info(
            f"Bill {bill.bill_number} created for customer {customer_id}: "
            f"{bill.total_amount}"
        )
        return self.get_bill(bill.pk)

    def _persist_bill(
        self,
        customer_id,
        bill_lines,
        actor,
        bill_number,
        discount_percentage,
        tax_percentage,
        payment_method,
        payment_status,
        notes,
    ):
        amounts = [
            calculate_line(line.unit_price, line.quantity, line.discount_percentage)
            for line in bill_lines
        ]
        totals = calculate_totals(
            [a.line_total for a in amounts], discount_percentage, tax_percentage
        )

        with transaction.atomic():
            bill = Bill.objects.create(
                bill_number=bill_number,
                customer_id=customer_id,
                subtotal=totals.subtotal,
                discount_percentage=discount_percentage,
                discount_amount=totals.discount_amount,
                tax_percentage=tax_percentage,
                tax_amount=totals.tax_amount,
                total_amount=totals.total_amount,
                payment_method=payment_method,
                payment_status=payment_status,
                notes=notes or "",
                created_by=actor,
            )

            # Lock rows in item id order so bills sharing items cannot deadlock
            for line, line_amounts in sorted(
                zip(bill_lines, amounts), key=lambda pair: pair[0].item_id
            ):
                StockLedger.reserve_and_debit(
                    line.item_id,
                    line.quantity,
                    reference_id=bill.pk,
                    line_total=line_amounts.line_total,
                    user=actor,
                    notes=f"Sale - Bill: {bill.bill_number}",
                )

            BillItem.objects.bulk_create(
                [
                    BillItem(
                        bill=bill,
                        item_id=line.item_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        discount_percentage=line.discount_percentage,
                        discount_amount=line_amounts.discount_amount,
                        line_total=line_amounts.line_total,
                    )
                    for line, line_amounts in zip(bill_lines, amounts)
                ]
            )

            Customer.objects.record_bill(customer_id, totals.total_amount)

            transaction.on_commit(
                lambda: bill_created.send(sender=Bill, bill=bill, actor=actor)
            )

        return bill

    def _validate(
        self,
        customer_id,
        lines,
        discount_percentage,
        tax_percentage,
        payment_method,
        payment_status,
        bill_number,
    ):
        errors = {}

        if _positive_int(customer_id) is None:
            errors["customer_id"] = "Valid customer is required"

        bill_lines = []
        if not lines:
            errors["lines"] = "At least one item is required"
        else:
            for i, line in enumerate(lines):
                if not hasattr(line, "get"):
                    errors[f"lines[{i}]"] = "Invalid line"
                    continue
                item_id = _positive_int(line.get("item_id"))
                quantity = _positive_int(line.get("quantity"))
                unit_price = to_decimal(line.get("unit_price"))
                line_discount = _percentage(line.get("discount_percentage"))

                if item_id is None:
                    errors[f"lines[{i}].item_id"] = "Valid item is required"
                if quantity is None:
                    errors[f"lines[{i}].quantity"] = "Quantity must be positive"
                if unit_price is None or unit_price <= 0:
                    errors[f"lines[{i}].unit_price"] = "Unit price must be positive"
                elif _exceeds_cents(unit_price):
                    errors[f"lines[{i}].unit_price"] = (
                        "Unit price cannot have more than 2 decimal places"
                    )
                if not is_valid_percentage(line_discount):
                    errors[f"lines[{i}].discount_percentage"] = (
                        "Discount percentage must be between 0 and 100"
                    )
                elif _exceeds_cents(line_discount):
                    errors[f"lines[{i}].discount_percentage"] = (
                        "Discount percentage cannot have more than 2 decimal places"
                    )
                bill_lines.append(BillLine(item_id, quantity, unit_price, line_discount))

        discount = _percentage(discount_percentage)
        if not is_valid_percentage(discount):
            errors["discount_percentage"] = "Discount percentage must be between 0 and 100"
        elif _exceeds_cents(discount):
            errors["discount_percentage"] = (
                "Discount percentage cannot have more than 2 decimal places"
            )

        tax = _percentage(tax_percentage)
        if not is_valid_percentage(tax):
            errors["tax_percentage"] = "Tax percentage must be between 0 and 100"
        elif _exceeds_cents(tax):
            errors["tax_percentage"] = "Tax percentage cannot have more than 2 decimal places"

        if payment_method not in PaymentMethodChoices.values:
            errors["payment_method"] = "Unknown payment method"
        if payment_status not in PaymentStatusChoices.values or (
            payment_status == PaymentStatusChoices.CANCELLED
        ):
            errors["payment_status"] = "Invalid payment status for a new bill"

        if bill_number and self.allocator.owns(bill_number):
            errors["bill_number"] = "Bill numbers with the automatic prefix are reserved"
        elif bill_number and Bill.objects.filter(bill_number=bill_number).exists():
            errors["bill_number"] = "Bill number already exists"

        if errors:
            logger.warning(f"Bill validation failed: {errors}")
            raise ValidationFailed(errors)

        return bill_lines, discount, tax

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel_bill(self, bill_id, actor, reason=""):
        """
        Cancel an active bill, returning its stock and reversing the
        customer totals. Amounts on the bill are kept as issued.
        """
        try:
            with transaction.atomic():
                try:
                    bill = (
                        Bill.objects.select_related(None)
                        .select_for_update()
                        .get(pk=bill_id)
                    )
                except Bill.DoesNotExist:
                    raise BillNotFound(bill_id)

                if not bill.is_active:
                    raise InvalidState("Only active bills can be cancelled")

                bill.status = BillStatusChoices.CANCELLED
                bill.payment_status = PaymentStatusChoices.CANCELLED
                bill.cancelled_at = timezone.now()
                bill.cancelled_by = actor
                bill.cancellation_reason = reason or ""
                bill.save(
                    update_fields=[
                        "status",
                        "payment_status",
                        "cancelled_at",
                        "cancelled_by",
                        "cancellation_reason",
                        "updated_at",
                    ]
                )

                for line in BillItem.objects.by_bill(bill).order_by("item_id"):
                    StockLedger.restore(
                        line.item_id,
                        line.quantity,
                        reference_id=bill.pk,
                        line_total=line.line_total,
                        user=actor,
                        notes=f"Bill Cancelled - Bill: {bill.bill_number}",
                    )

                Customer.objects.reverse_bill(bill.customer_id, bill.total_amount)

                transaction.on_commit(
                    lambda: bill_cancelled.send(sender=Bill, bill=bill, actor=actor)
                )
        except BillingError as e:
            logger.warning(f"Cancellation of bill {bill_id} rejected: {e.message}")
            raise
        except DatabaseError as e:
            logger.exception(f"Failed to cancel bill {bill_id}")
            raise PersistenceFailure(f"Failed to cancel bill: {e}") from e

        AuditService.record(
            actor,
            ActivityLog.Actions.BILL_CANCELLED,
            ActivityLog.EntityTypes.BILLS,
            bill.pk,
            f"Bill cancelled: {bill.bill_number}"
            + (f" - {reason}" if reason else ""),
        )
        logger.info(f"Bill {bill.bill_number} cancelled")
        return self.get_bill(bill.pk)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_bill(self, bill_id):
        try:
            return Bill.objects.with_lines().get(pk=bill_id)
        except Bill.DoesNotExist:
            raise BillNotFound(bill_id)

    def get_bill_by_number(self, bill_number):
        try:
            return Bill.objects.with_lines().get(bill_number=bill_number)
        except Bill.DoesNotExist:
            raise BillNotFound(bill_number)

    def generate_bill_number(self):
        return self.allocator.next()

    def list_bills(self):
        return Bill.objects.with_lines()

    def bills_for_customer(self, customer_id):
        if not Customer.all_objects.filter(pk=customer_id).exists():
            raise CustomerNotFound(customer_id)
        return Bill.objects.by_customer(customer_id).with_lines()

    def bills_between(self, start_date, end_date):
        if start_date > end_date:
            raise ValidationFailed({"date_range": "Start date must not be after end date"})
        return Bill.objects.between(start_date, end_date).with_lines()
