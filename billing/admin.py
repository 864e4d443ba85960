from django.contrib import admin

from .models import Bill, BillItem, BillNumberCounter


class BillItemInline(admin.TabularInline):
    model = BillItem
    extra = 0
    can_delete = False
    readonly_fields = [
        "item",
        "quantity",
        "unit_price",
        "discount_percentage",
        "discount_amount",
        "line_total",
    ]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    """Bills are issued and cancelled through the API; admin only browses them."""

    list_display = [
        "bill_number",
        "customer",
        "bill_date",
        "total_amount",
        "payment_method",
        "payment_status",
        "status",
    ]
    list_filter = ["status", "payment_status", "payment_method", "bill_date"]
    search_fields = ["bill_number", "customer__full_name", "customer__account_no"]
    date_hierarchy = "bill_date"
    inlines = [BillItemInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(BillNumberCounter)
class BillNumberCounterAdmin(admin.ModelAdmin):
    list_display = ["prefix", "period", "last_number", "updated_at"]
    readonly_fields = ["prefix", "period", "last_number", "updated_at"]
