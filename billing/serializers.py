from decimal import Decimal

from rest_framework import serializers

from .choices import PaymentMethodChoices, PaymentStatusChoices
from .models import Bill, BillItem


class BillItemSerializer(serializers.ModelSerializer):
    """Serializer for BillItem model"""

    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)

    class Meta:
        model = BillItem
        fields = [
            "id",
            "item",
            "item_code",
            "item_name",
            "quantity",
            "unit_price",
            "discount_percentage",
            "discount_amount",
            "line_total",
        ]
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    """Serializer for Bill model with its lines"""

    customer_name = serializers.CharField(source="customer.full_name", read_only=True)
    created_by = serializers.CharField(source="created_by.username", read_only=True)
    cancelled_by = serializers.CharField(source="cancelled_by.username", read_only=True)
    bill_items = BillItemSerializer(many=True, read_only=True)

    class Meta:
        model = Bill
        fields = [
            "id",
            "bill_number",
            "customer",
            "customer_name",
            "bill_date",
            "bill_time",
            "subtotal",
            "discount_percentage",
            "discount_amount",
            "tax_percentage",
            "tax_amount",
            "total_amount",
            "payment_method",
            "payment_status",
            "status",
            "notes",
            "created_by",
            "created_at",
            "cancelled_at",
            "cancelled_by",
            "cancellation_reason",
            "bill_items",
        ]
        read_only_fields = fields


class BillLineInputSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.01")
    )
    discount_percentage = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        default=Decimal("0"),
    )


class BillCreateSerializer(serializers.Serializer):
    """Request body of bill creation"""

    customer_id = serializers.IntegerField(min_value=1)
    lines = BillLineInputSerializer(many=True, allow_empty=False)
    discount_percentage = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        default=Decimal("0"),
    )
    tax_percentage = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        required=False,
        allow_null=True,
        default=None,
    )
    payment_method = serializers.ChoiceField(
        choices=PaymentMethodChoices.choices, required=False
    )
    payment_status = serializers.ChoiceField(
        choices=[
            choice
            for choice in PaymentStatusChoices.choices
            if choice[0] != PaymentStatusChoices.CANCELLED
        ],
        default=PaymentStatusChoices.PAID,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    bill_number = serializers.CharField(
        required=False, allow_blank=True, max_length=50, default=""
    )


class BillCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
