"""Cart URL routes (v1)."""

from django.urls import path

from .views import CartAddItemView, CartDetailView, CartRemoveItemView

app_name = "cart"

urlpatterns = [
    path("", CartDetailView.as_view(), name="cart-detail"),
    path("items/", CartAddItemView.as_view(), name="cart-add-item"),
    path("items/<str:product_id>/remove/", CartRemoveItemView.as_view(), name="cart-remove-item"),
]
