from decimal import Decimal

from django.db import models
from django.db.models import F, Sum, Value
from django.db.models.functions import Coalesce, Greatest
from django.utils import timezone


class ItemQuerySet(models.QuerySet):
    def low_stock(self):
        """Get active items at or below their minimum stock level"""
        return self.filter(
            stock_quantity__lte=models.F("min_stock_level"),
            status="ACTIVE",
        )


class ItemManager(models.Manager.from_queryset(ItemQuerySet)):
    """
    Catalog access for the stock ledger.

    The stock mutators below are single UPDATE statements with the guard
    in the WHERE clause, so the check and the write happen under the row
    lock the database takes for the update. They return the number of rows
    changed (0 or 1).
    """

    def debit_stock(self, pk, quantity, revenue=Decimal("0.00")):
        return self.filter(
            pk=pk, status="ACTIVE", stock_quantity__gte=quantity
        ).update(
            stock_quantity=F("stock_quantity") - quantity,
            total_sold=F("total_sold") + quantity,
            total_revenue=F("total_revenue") + revenue,
            updated_at=timezone.now(),
        )

    def credit_stock(self, pk, quantity, revenue=Decimal("0.00")):
        """Inverse of ``debit_stock``; sales totals are floored at zero."""
        return self.filter(pk=pk).update(
            stock_quantity=F("stock_quantity") + quantity,
            total_sold=Greatest(
                F("total_sold") - quantity,
                Value(0),
                output_field=models.PositiveIntegerField(),
            ),
            total_revenue=Greatest(
                F("total_revenue") - revenue,
                Value(Decimal("0.00")),
                output_field=models.DecimalField(max_digits=14, decimal_places=2),
            ),
            updated_at=timezone.now(),
        )

    def receive_stock(self, pk, quantity):
        return self.filter(pk=pk).update(
            stock_quantity=F("stock_quantity") + quantity,
            updated_at=timezone.now(),
        )

    def swap_stock(self, pk, expected, new_quantity):
        """Compare-and-swap: set stock only if it still equals ``expected``."""
        return self.filter(pk=pk, stock_quantity=expected).update(
            stock_quantity=new_quantity,
            updated_at=timezone.now(),
        )

    def stock_levels(self, pk):
        """(stock_quantity, min_stock_level) as currently stored."""
        return self.filter(pk=pk).values_list(
            "stock_quantity", "min_stock_level"
        ).first()


class StockMovementQuerySet(models.QuerySet):
    def for_item(self, item):
        return self.filter(item=item)

    def by_reference(self, reference_type, reference_id):
        return self.filter(reference_type=reference_type, reference_id=reference_id)

    def sales(self):
        return self.filter(reference_type="SALE")

    def excluding_initial(self):
        return self.exclude(reference_type="INITIAL")

    def balance(self):
        """Signed sum of the selected movements."""
        return self.aggregate(total=Coalesce(Sum("quantity"), Value(0)))["total"]


class StockMovementManager(models.Manager.from_queryset(StockMovementQuerySet)):
    def get_queryset(self):
        return super().get_queryset().select_related("item")
