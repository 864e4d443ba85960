import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent after commit with item_id, stock_quantity, min_stock_level
stock_low = Signal()


@receiver(stock_low)
def log_low_stock(sender, item_id, stock_quantity, min_stock_level, **kwargs):
    logger.warning(
        "Low stock alert for item %s: %s remaining (minimum %s)",
        item_id,
        stock_quantity,
        min_stock_level,
    )
