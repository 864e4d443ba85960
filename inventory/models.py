from django.db import models
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.utils import timezone
from decimal import Decimal

from base.utility import StringProcessor
from .manager import ItemManager, StockMovementManager

User = settings.AUTH_USER_MODEL


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Categories"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.name = StringProcessor(self.name).toTitle()
        super().save(*args, **kwargs)


class Item(models.Model):
    """
    Catalog item (book, stationery, ...).

    ``stock_quantity``, ``total_sold`` and ``total_revenue`` are owned by
    ``inventory.services.StockLedger``; every change to them is paired with
    a ``StockMovement`` row.
    """

    class ItemStatus(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"
        DISCONTINUED = "DISCONTINUED", "Discontinued"

    item_code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name="items",
        null=True,
        blank=True,
    )
    isbn = models.CharField(max_length=20, blank=True, default="")
    author = models.CharField(max_length=255, blank=True, default="")
    publisher = models.CharField(max_length=255, blank=True, default="")
    publication_year = models.PositiveSmallIntegerField(null=True, blank=True)

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"), "Price must be greater than 0")],
        help_text="Current selling price",
    )
    cost_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    min_stock_level = models.PositiveIntegerField(
        default=0, help_text="Minimum stock level before reorder alert"
    )
    status = models.CharField(
        max_length=20, choices=ItemStatus.choices, default=ItemStatus.ACTIVE
    )

    # Running sales aggregates
    total_sold = models.PositiveIntegerField(default=0)
    total_revenue = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="items",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ItemManager()

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="item_status_idx"),
            models.Index(
                fields=["stock_quantity", "min_stock_level"], name="item_stock_level_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="item_stock_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(total_revenue__gte=0),
                name="item_revenue_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.item_code} - {self.name}"

    def save(self, *args, **kwargs):
        self.item_code = StringProcessor(self.item_code).toCode()
        self.name = " ".join(self.name.split())
        super().save(*args, **kwargs)

    @property
    def is_active(self):
        return self.status == self.ItemStatus.ACTIVE

    @property
    def is_low_stock(self):
        return self.stock_quantity <= self.min_stock_level


class StockMovement(models.Model):
    """
    Append-only inventory ledger.

    ``quantity`` is signed: OUT rows are negative, IN rows positive and
    ADJUSTMENT rows carry the signed difference, so the sum over an item
    equals its current stock.
    """

    class MovementType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"
        RETURN = "RETURN", "Return"

    class ReferenceType(models.TextChoices):
        PURCHASE = "PURCHASE", "Purchase"
        SALE = "SALE", "Sale"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"
        RETURN = "RETURN", "Return"
        INITIAL = "INITIAL", "Initial Stock"

    item = models.ForeignKey(
        Item, on_delete=models.PROTECT, related_name="stock_movements"
    )
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)
    quantity = models.IntegerField()
    balance_after = models.IntegerField(
        null=True, blank=True, help_text="Item stock right after this movement"
    )
    reference_type = models.CharField(max_length=20, choices=ReferenceType.choices)
    reference_id = models.PositiveBigIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    movement_date = models.DateTimeField(default=timezone.now)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    objects = StockMovementManager()

    class Meta:
        ordering = ["movement_date", "id"]
        indexes = [
            models.Index(fields=["item", "movement_date"], name="movement_item_date_idx"),
            models.Index(
                fields=["reference_type", "reference_id"], name="movement_reference_idx"
            ),
        ]

    def __str__(self):
        return (
            f"{self.item_id} {self.movement_type} {self.quantity} "
            f"({self.reference_type} {self.reference_id or '-'})"
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Stock movements are append-only")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ValidationError("Stock movements cannot be deleted")
