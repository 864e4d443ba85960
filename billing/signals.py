from django.dispatch import Signal

# Sent after the bill's transaction commits, with ``bill`` and ``actor``
bill_created = Signal()
bill_cancelled = Signal()
