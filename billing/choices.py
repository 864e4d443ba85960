"""
Bill-related choices and constants
"""

from django.db import models


class BillStatusChoices(models.TextChoices):
    """Bill lifecycle status"""

    ACTIVE = "ACTIVE", "Active"
    CANCELLED = "CANCELLED", "Cancelled"
    # Defined for reporting; no operation here produces it
    RETURNED = "RETURNED", "Returned"


class PaymentMethodChoices(models.TextChoices):
    """Payment method choices"""

    CASH = "CASH", "Cash"
    CARD = "CARD", "Card"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
    CHEQUE = "CHEQUE", "Cheque"


class PaymentStatusChoices(models.TextChoices):
    """Payment status choices"""

    PAID = "PAID", "Paid"
    PENDING = "PENDING", "Pending"
    PARTIAL = "PARTIAL", "Partially Paid"
    CANCELLED = "CANCELLED", "Cancelled"
