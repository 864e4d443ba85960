from django.urls import path
from . import views

app_name = "inventory"

urlpatterns = [
    path("items/<int:pk>/movements/", views.item_movements, name="item_movements"),
]
