"""DRF views for cart operations.

The same endpoints serve guests and signed-in users: the owner is resolved
from the JWT user when present, otherwise from the guest session key
(`X-Session-Id` header or `cart_session` cookie).
"""

from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .identity import resolve_identity
from .selectors import get_cart
from .serializers import CartActionResultSerializer, CartItemInputSerializer, CartReadSerializer
from .services import add_item, remove_item

ERROR_STATUS = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "session_not_found": status.HTTP_400_BAD_REQUEST,
    "product_not_found": status.HTTP_404_NOT_FOUND,
    "cart_not_found": status.HTTP_404_NOT_FOUND,
    "item_not_found": status.HTTP_404_NOT_FOUND,
    "server_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

SESSION_HEADER_PARAMETER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Guest session identifier (falls back to the cart_session cookie; ignored when authenticated)",
    type=str,
)

CartActionError = inline_serializer(
    name="CartActionError",
    fields={
        "success": rf_serializers.BooleanField(),
        "error": rf_serializers.CharField(),
        "detail": rf_serializers.CharField(),
    },
)


def _result_response(result: dict) -> Response:
    if result["success"]:
        return Response({"success": True, "message": result["message"]}, status=status.HTTP_200_OK)
    body = {"success": False, "error": result["error"], "detail": result["message"]}
    if "fields" in result:
        body["fields"] = result["fields"]
    return Response(body, status=ERROR_STATUS.get(result["error"], status.HTTP_400_BAD_REQUEST))


class CartDetailView(APIView):
    """Return the caller's cart, or an empty cart when none exists yet."""

    permission_classes = [AllowAny]
    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get cart",
        description="Returns the current guest or user cart including lines and totals.",
        parameters=[SESSION_HEADER_PARAMETER],
        responses={200: CartReadSerializer},
        examples=[
            OpenApiExample(
                "Cart",
                value={
                    "id": 1,
                    "lines": [
                        {
                            "product_id": "42",
                            "name": "Beaded Necklace",
                            "slug": "beaded-necklace",
                            "image": "/images/beaded-necklace.jpg",
                            "quantity": 2,
                            "unit_price": "250.00",
                            "line_total": "500.00",
                        }
                    ],
                    "items_total": "500.00",
                    "shipping_total": "150.00",
                    "tax_total": "0.00",
                    "grand_total": "650.00",
                },
                response_only=True,
            )
        ],
    )
    def get(self, request):
        identity = resolve_identity(request)
        if identity is None:
            return Response({"detail": "Missing X-Session-Id."}, status=status.HTTP_400_BAD_REQUEST)
        cart = get_cart(identity=identity)
        return Response(CartReadSerializer.from_cart(cart=cart).data, status=status.HTTP_200_OK)


class CartAddItemView(APIView):
    """Add one unit of a product to the cart."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        description="Adds a product to the cart, or bumps its quantity by one if already present.",
        request=CartItemInputSerializer,
        parameters=[SESSION_HEADER_PARAMETER],
        responses={200: CartActionResultSerializer, 400: CartActionError, 404: CartActionError},
        examples=[
            OpenApiExample(
                "Add",
                value={
                    "product_id": "42",
                    "name": "Beaded Necklace",
                    "slug": "beaded-necklace",
                    "image": "/images/beaded-necklace.jpg",
                    "unit_price": "250.00",
                    "quantity": 1,
                },
                request_only=True,
            ),
            OpenApiExample("Added", value={"success": True, "message": "Beaded Necklace added to cart"}, response_only=True),
        ],
    )
    def post(self, request):
        result = add_item(identity=resolve_identity(request), item=request.data)
        return _result_response(result)


class CartRemoveItemView(APIView):
    """Remove one unit of a product from the cart."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Remove item from cart",
        description="Decrements the product's quantity; the line is deleted when its quantity was one.",
        request=None,
        parameters=[SESSION_HEADER_PARAMETER],
        responses={200: CartActionResultSerializer, 400: CartActionError, 404: CartActionError},
        examples=[
            OpenApiExample(
                "Removed", value={"success": True, "message": "Beaded Necklace was removed from cart"}, response_only=True
            )
        ],
    )
    def post(self, request, product_id: str):
        result = remove_item(identity=resolve_identity(request), product_id=product_id)
        return _result_response(result)
