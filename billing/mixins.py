"""
Mixins for Bill models
"""

from django.core.exceptions import ValidationError

from .choices import BillStatusChoices

# Fields a cancellation is allowed to touch on an issued bill
CANCELLATION_FIELDS = frozenset(
    {
        "status",
        "payment_status",
        "cancelled_at",
        "cancelled_by",
        "cancellation_reason",
        "updated_at",
    }
)


class BillStatusMixin:
    """Lifecycle shortcuts for Bill"""

    @property
    def is_active(self):
        return self.status == BillStatusChoices.ACTIVE

    @property
    def is_cancelled(self):
        return self.status == BillStatusChoices.CANCELLED


class BillImmutabilityMixin:
    """An issued bill only changes through cancellation"""

    def check_update_allowed(self, update_fields):
        if self._state.adding:
            return
        if not update_fields or not set(update_fields).issubset(CANCELLATION_FIELDS):
            raise ValidationError("Issued bills cannot be modified")

