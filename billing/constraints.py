"""
Bill model constraints and indexes
"""
from decimal import Decimal

from django.db import models

# Header arithmetic is compared with a half-cent tolerance; SQLite evaluates
# decimal columns as floating point.
CENT_TOLERANCE = Decimal("0.005")


class BillConstraints:
    """Bill model constraints"""

    @staticmethod
    def get_all_constraints():
        """Return all constraints for Bill model"""
        expected_total = (
            models.F("subtotal") - models.F("discount_amount") + models.F("tax_amount")
        )
        return [
            models.CheckConstraint(
                condition=models.Q(
                    total_amount__gte=expected_total - CENT_TOLERANCE,
                    total_amount__lte=expected_total + CENT_TOLERANCE,
                ),
                name="bill_total_matches_parts",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    subtotal__gte=0,
                    discount_amount__gte=0,
                    tax_amount__gte=0,
                    total_amount__gte=0,
                ),
                name="bill_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    discount_percentage__gte=0,
                    discount_percentage__lte=100,
                    tax_percentage__gte=0,
                    tax_percentage__lte=100,
                ),
                name="bill_percentages_in_range",
            ),
        ]


class BillIndexes:
    """Bill model indexes"""

    @staticmethod
    def get_all_indexes():
        """Return all indexes for Bill model"""
        return [
            models.Index(fields=["customer", "bill_date"], name="bill_customer_date_idx"),
            models.Index(fields=["bill_date"], name="bill_date_idx"),
            models.Index(fields=["status"], name="bill_status_idx"),
        ]


class BillItemConstraints:
    """BillItem model constraints"""

    @staticmethod
    def get_all_constraints():
        return [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="bill_item_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gt=0),
                name="bill_item_unit_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    discount_percentage__gte=0, discount_percentage__lte=100
                ),
                name="bill_item_discount_in_range",
            ),
        ]

    @staticmethod
    def get_all_indexes():
        """Return all indexes for BillItem model"""
        return [
            models.Index(fields=["bill", "item"], name="bill_item_bill_item_idx"),
            models.Index(fields=["item"], name="bill_item_item_idx"),
        ]
