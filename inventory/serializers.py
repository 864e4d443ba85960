from rest_framework import serializers
from .models import Item, StockMovement


class ItemSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Item
        fields = ["id", "item_code", "name", "price", "stock_quantity", "status"]


class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only view of one ledger row"""

    created_by = serializers.CharField(source="created_by.username", read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "movement_type",
            "quantity",
            "balance_after",
            "reference_type",
            "reference_id",
            "notes",
            "movement_date",
            "created_by",
        ]
        read_only_fields = fields
