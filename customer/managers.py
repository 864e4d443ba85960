from decimal import Decimal

from django.db import models
from django.db.models import F, Value
from django.db.models.functions import Greatest

from base.manager import SoftDeleteManager


class CustomerManager(SoftDeleteManager):
    """Customer lookups used by the billing workflow."""

    def exists(self, pk):
        """True when a (not soft-deleted) customer with this id is on file."""
        if pk is None:
            return False
        return self.filter(pk=pk).exists()

    def record_bill(self, pk, amount):
        """Count a new bill against the customer's running totals."""
        return self.model.all_objects.filter(pk=pk).update(
            total_bills=F("total_bills") + 1,
            total_purchases=F("total_purchases") + amount,
        )

    def reverse_bill(self, pk, amount):
        """Undo ``record_bill`` for a cancelled bill, never going below zero."""
        return self.model.all_objects.filter(pk=pk).update(
            total_bills=Greatest(
                F("total_bills") - 1,
                Value(0),
                output_field=models.PositiveIntegerField(),
            ),
            total_purchases=Greatest(
                F("total_purchases") - amount,
                Value(Decimal("0.00")),
                output_field=models.DecimalField(max_digits=14, decimal_places=2),
            ),
        )
