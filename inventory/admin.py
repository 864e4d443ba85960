from django.contrib import admin

from .models import Category, Item, StockMovement


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "description", "created_at", "updated_at"]
    search_fields = ["name", "description"]
    ordering = ["name"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = [
        "item_code",
        "name",
        "author",
        "category",
        "price",
        "stock_quantity",
        "min_stock_level",
        "status",
    ]
    list_filter = ["status", "category"]
    search_fields = ["item_code", "name", "isbn", "author"]
    ordering = ["name"]
    # Stock and sales figures move only through the ledger
    readonly_fields = [
        "stock_quantity",
        "total_sold",
        "total_revenue",
        "created_at",
        "updated_at",
    ]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = [
        "movement_date",
        "item",
        "movement_type",
        "quantity",
        "balance_after",
        "reference_type",
        "reference_id",
    ]
    list_filter = ["movement_type", "reference_type"]
    search_fields = ["item__item_code", "item__name", "notes"]
    date_hierarchy = "movement_date"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
