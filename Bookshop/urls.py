"""
URL configuration for Bookshop project.

Routes the billing and stock ledger APIs plus the Django admin.
"""

from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("billing.urls")),
    path("api/", include("inventory.urls")),
]
