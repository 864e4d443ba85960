from django.db import models
from django.conf import settings
from decimal import Decimal
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone

from customer.models import Customer
from inventory.models import Item

from .choices import BillStatusChoices, PaymentMethodChoices, PaymentStatusChoices
from .constraints import BillConstraints, BillIndexes, BillItemConstraints
from .managers import BillItemManager, BillManager
from .mixins import BillImmutabilityMixin, BillStatusMixin

User = settings.AUTH_USER_MODEL

PERCENTAGE_VALIDATORS = [
    MinValueValidator(Decimal("0")),
    MaxValueValidator(Decimal("100")),
]


def current_time():
    return timezone.localtime().time()


class Bill(BillStatusMixin, BillImmutabilityMixin, models.Model):
    """
    A sale to a customer.

    Amounts are fixed when the bill is issued; afterwards the only permitted
    change is cancellation (see ``BillImmutabilityMixin``).
    """

    Status = BillStatusChoices
    PaymentMethod = PaymentMethodChoices
    PaymentStatus = PaymentStatusChoices

    bill_number = models.CharField(max_length=50, unique=True)
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="bills",
    )
    bill_date = models.DateField(default=timezone.localdate)
    bill_time = models.TimeField(default=current_time)

    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of line totals",
    )
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=PERCENTAGE_VALIDATORS,
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=PERCENTAGE_VALIDATORS,
    )
    tax_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Tax on the amount after bill discount",
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethodChoices.choices,
        default=PaymentMethodChoices.CASH,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatusChoices.choices,
        default=PaymentStatusChoices.PAID,
    )
    status = models.CharField(
        max_length=20,
        choices=BillStatusChoices.choices,
        default=BillStatusChoices.ACTIVE,
    )
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="bills_created",
    )

    # Cancellation tracking
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bills_cancelled",
    )
    cancellation_reason = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BillManager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = BillIndexes.get_all_indexes()
        constraints = BillConstraints.get_all_constraints()

    def __str__(self):
        return self.bill_number or f"Bill-{self.id}"

    def save(self, *args, **kwargs):
        self.check_update_allowed(kwargs.get("update_fields"))
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ValidationError("Bills cannot be deleted, cancel them instead")


class BillItem(models.Model):
    """Bill line. Price and discount are snapshots taken at sale time."""

    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name="bill_items")
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="bill_items")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=PERCENTAGE_VALIDATORS,
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    line_total = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = BillItemManager()

    class Meta:
        ordering = ["id"]
        indexes = BillItemConstraints.get_all_indexes()
        constraints = BillItemConstraints.get_all_constraints()

    def __str__(self):
        return f"{self.item_id} x {self.quantity}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Bill lines cannot be modified")
        super().save(*args, **kwargs)


class BillNumberCounter(models.Model):
    """Last sequence issued per (prefix, period)"""

    prefix = models.CharField(max_length=20)
    period = models.CharField(max_length=20)
    last_number = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["prefix", "period"], name="unique_bill_counter_period"
            ),
        ]

    def __str__(self):
        return f"{self.prefix}{self.period}: {self.last_number}"
