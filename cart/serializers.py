"""Cart serializers for read and write operations."""

from rest_framework import serializers

from .models import CartLine

PRICE_PATTERN = r"^\d+(?:\.\d{1,2})?$"


class CartLineReadSerializer(serializers.ModelSerializer):
    """Read serializer for a cart line."""

    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartLine
        fields = [
            "product_id",
            "name",
            "slug",
            "image",
            "quantity",
            "unit_price",
            "line_total",
        ]


class CartReadSerializer(serializers.Serializer):
    """Read serializer for the cart summary and lines."""

    id = serializers.IntegerField(allow_null=True)
    lines = CartLineReadSerializer(many=True)
    items_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    shipping_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    grand_total = serializers.DecimalField(max_digits=12, decimal_places=2)

    @classmethod
    def from_cart(cls, *, cart):
        if cart is None:
            return cls(
                {
                    "id": None,
                    "lines": [],
                    "items_total": "0.00",
                    "shipping_total": "0.00",
                    "tax_total": "0.00",
                    "grand_total": "0.00",
                }
            )
        return cls(
            {
                "id": cart.id,
                "lines": list(cart.lines.all()),
                "items_total": cart.items_total,
                "shipping_total": cart.shipping_total,
                "tax_total": cart.tax_total,
                "grand_total": cart.grand_total,
            }
        )


class CartItemInputSerializer(serializers.Serializer):
    """Validates an add-to-cart payload as submitted by the product page."""

    product_id = serializers.CharField(max_length=64, error_messages={"blank": "Product is required"})
    name = serializers.CharField(max_length=200, error_messages={"blank": "Name is required"})
    slug = serializers.CharField(max_length=220, error_messages={"blank": "Slug is required"})
    image = serializers.CharField(max_length=500, error_messages={"blank": "Image is required"})
    unit_price = serializers.RegexField(
        PRICE_PATTERN,
        max_length=16,
        error_messages={
            "invalid": "Price must be a number with up to two decimal places",
            "blank": "Price is required",
        },
    )
    quantity = serializers.IntegerField(min_value=0, default=1)


class CartActionResultSerializer(serializers.Serializer):
    """Response body for add/remove actions."""

    success = serializers.BooleanField()
    message = serializers.CharField()
