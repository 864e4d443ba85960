"""
Custom managers for Bill models
"""

from django.db import models


class BillQuerySet(models.QuerySet):
    def by_customer(self, customer):
        """Return bills for a customer (instance or id)"""
        return self.filter(customer=customer)

    def between(self, start_date, end_date):
        """Return bills dated within [start_date, end_date]"""
        return self.filter(bill_date__range=(start_date, end_date))

    def with_lines(self):
        return self.prefetch_related("bill_items__item")


class BillManager(models.Manager.from_queryset(BillQuerySet)):
    """Custom manager for Bill model"""

    def get_queryset(self):
        return super().get_queryset().select_related("customer", "created_by")


class BillItemManager(models.Manager):
    """Custom manager for BillItem model"""

    def get_queryset(self):
        return super().get_queryset().select_related("item", "bill")

    def by_bill(self, bill):
        return self.filter(bill=bill)
