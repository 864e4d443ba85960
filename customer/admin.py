from django.contrib import admin
from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = (
        "account_no",
        "full_name",
        "phone",
        "status",
        "total_bills",
        "total_purchases",
    )
    list_filter = ("status",)
    search_fields = ("account_no", "full_name", "phone")
    readonly_fields = ("total_bills", "total_purchases", "created_at", "updated_at")
