from django.db import models
from django.conf import settings

User = settings.AUTH_USER_MODEL


class ActivityLog(models.Model):
    """Who did what to which record. Written best-effort by AuditService."""

    class Actions(models.TextChoices):
        CREATE = "CREATE", "Create"
        UPDATE = "UPDATE", "Update"
        DELETE = "DELETE", "Delete"
        BILL_CREATED = "BILL_CREATED", "Bill Created"
        BILL_CANCELLED = "BILL_CANCELLED", "Bill Cancelled"
        STOCK_ADJUSTMENT = "STOCK_ADJUSTMENT", "Stock Adjustment"

    class EntityTypes(models.TextChoices):
        CUSTOMERS = "customers", "Customers"
        ITEMS = "items", "Items"
        BILLS = "bills", "Bills"
        STOCK_MOVEMENTS = "stock_movements", "Stock Movements"

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activity_logs",
    )
    action = models.CharField(max_length=50, choices=Actions.choices)
    entity_type = models.CharField(max_length=50, choices=EntityTypes.choices)
    entity_id = models.PositiveBigIntegerField(null=True, blank=True)
    detail = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="activity_entity_idx"),
            models.Index(fields=["action"], name="activity_action_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}#{self.entity_id} by {self.user_id}"
