from django.db import models
from django.conf import settings
from base.utility import StringProcessor
from base.manager import SoftDeleteModel
from decimal import Decimal
from django.core.validators import MinValueValidator

from .managers import CustomerManager

User = settings.AUTH_USER_MODEL


class Customer(SoftDeleteModel):
    """Bookshop customer account."""

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"

    account_no = models.CharField(
        max_length=20, unique=True, help_text="Customer account number"
    )
    full_name = models.CharField(max_length=255, help_text="Customer's full name")
    address = models.TextField(blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    email = models.EmailField(blank=True, null=True)
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.ACTIVE
    )
    # Maintained by the billing workflow in the same transaction as the bill
    total_purchases = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    total_bills = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="customers",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CustomerManager()

    class Meta:
        ordering = ["full_name"]
        default_manager_name = "objects"
        indexes = [
            models.Index(fields=["status"], name="customer_status_idx"),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.account_no})"

    def save(self, *args, **kwargs):
        self.full_name = StringProcessor(self.full_name).toTitle()
        self.account_no = StringProcessor(self.account_no).toCode()
        super().save(*args, **kwargs)

    @property
    def average_bill_amount(self):
        if not self.total_bills:
            return Decimal("0.00")
        return (self.total_purchases / self.total_bills).quantize(Decimal("0.01"))
