from django.db import transaction
from django.db.models import F
import logging
import re

from base.utility import get_billing_period
from .config import BillingConfig
from .models import BillNumberCounter

logger = logging.getLogger(__name__)


class BillNumberAllocator:
    """
    Hands out bill numbers ``{prefix}{period}{sequence}``, e.g.
    ``BILL202410000001``. The sequence restarts every period and is never
    reused, even when the bill it was issued for fails to persist.
    """

    def __init__(self, config=None):
        self.config = config or BillingConfig.from_settings()

    def next(self, period=None):
        if period is None:
            period = get_billing_period(period_format=self.config.period_format)

        with transaction.atomic():
            counter, _ = BillNumberCounter.objects.select_for_update().get_or_create(
                prefix=self.config.prefix,
                period=period,
                defaults={"last_number": 0},
            )
            BillNumberCounter.objects.filter(pk=counter.pk).update(
                last_number=F("last_number") + 1
            )
            counter.refresh_from_db(fields=["last_number"])
            sequence = counter.last_number

        bill_number = self.format(period, sequence)
        logger.debug("Allocated bill number %s", bill_number)
        return bill_number

    def format(self, period, sequence):
        return f"{self.config.prefix}{period}{sequence:0{self.config.sequence_width}d}"

    def owns(self, bill_number):
        """True when ``bill_number`` lies in the range this allocator issues"""
        pattern = rf"{re.escape(self.config.prefix)}\d+"
        return re.fullmatch(pattern, str(bill_number)) is not None
