from django.urls import path
from . import views

app_name = "billing"

urlpatterns = [
    path("bills/", views.bill_list_create, name="bill_list_create"),
    path(
        "bills/generate-number/",
        views.generate_bill_number,
        name="generate_bill_number",
    ),
    path("bills/date-range/", views.bills_by_date_range, name="bills_by_date_range"),
    path(
        "bills/customer/<int:customer_id>/",
        views.customer_bills,
        name="customer_bills",
    ),
    path(
        "bills/number/<str:bill_number>/",
        views.bill_by_number,
        name="bill_by_number",
    ),
    path("bills/<int:pk>/", views.bill_detail, name="bill_detail"),
    path("bills/<int:pk>/cancel/", views.cancel_bill, name="cancel_bill"),
]
