import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ActivityLog",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("CREATE", "Create"),
                            ("UPDATE", "Update"),
                            ("DELETE", "Delete"),
                            ("BILL_CREATED", "Bill Created"),
                            ("BILL_CANCELLED", "Bill Cancelled"),
                            ("STOCK_ADJUSTMENT", "Stock Adjustment"),
                        ],
                        max_length=50,
                    ),
                ),
                (
                    "entity_type",
                    models.CharField(
                        choices=[
                            ("customers", "Customers"),
                            ("items", "Items"),
                            ("bills", "Bills"),
                            ("stock_movements", "Stock Movements"),
                        ],
                        max_length=50,
                    ),
                ),
                ("entity_id", models.PositiveBigIntegerField(blank=True, null=True)),
                ("detail", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activity_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["entity_type", "entity_id"], name="activity_entity_idx"
                    ),
                    models.Index(fields=["action"], name="activity_action_idx"),
                ],
            },
        ),
    ]
