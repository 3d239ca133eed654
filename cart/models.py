"""Cart app models.

A cart is owned either by an anonymous session key or by a user. Lines keep
a snapshot of the product (name, slug, image, unit price) taken when the
product was first added, so carts never silently reprice or relabel items.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Cart(TimeStampedModel):
    """Shopping cart bound to a guest session or a user.

    Totals are derived from the lines and rewritten on every mutation.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="carts",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
    )
    session_key = models.CharField(max_length=64, null=True, blank=True)
    items_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    grand_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(user__isnull=False),
                name="unique_cart_per_user",
            ),
            models.UniqueConstraint(
                fields=["session_key"],
                condition=models.Q(session_key__isnull=False),
                name="unique_cart_per_session",
            ),
            models.CheckConstraint(
                name="cart_has_owner",
                condition=models.Q(user__isnull=False) | models.Q(session_key__isnull=False),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        owner = f"user={self.user_id}" if self.user_id else f"session={self.session_key}"
        return f"Cart#{self.id} ({owner})"


class CartLine(TimeStampedModel):
    """One product's presence in a cart."""

    cart = models.ForeignKey(Cart, related_name="lines", on_delete=models.CASCADE)
    product_id = models.CharField(max_length=64)
    name = models.CharField(max_length=200)
    slug = models.CharField(max_length=220)
    image = models.CharField(max_length=500)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "product_id"], name="unique_product_per_cart"),
            models.CheckConstraint(
                name="cart_line_quantity_positive",
                condition=models.Q(quantity__gte=1),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartLine#{self.id} cart={self.cart_id} product={self.product_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity))


class CartMergeMarker(models.Model):
    """Records that the guest cart merge ran for one authenticated session.

    `auth_session` is the refresh token's `jti`; rows past `expires_at` are
    purged by the `cleanup_merge_markers` command.
    """

    auth_session = models.CharField(max_length=255, unique=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="cart_merge_markers", on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)

    def __str__(self) -> str:  # pragma: no cover
        return f"CartMergeMarker({self.auth_session}) user={self.user_id}"
