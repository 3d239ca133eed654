"""Catalog app models.

Products are the only catalog entity carts depend on: carts look a product
up by id to confirm it is still sold and to snapshot its display fields.
"""

from common.choices import ActiveInactive
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Sellable product with its current price and primary image."""

    STATUS_ACTIVE = ActiveInactive.ACTIVE
    STATUS_INACTIVE = ActiveInactive.INACTIVE
    STATUS_CHOICES = ActiveInactive.choices

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True)
    image = models.CharField(max_length=500, help_text="Primary image URL or static path")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                name="product_price_non_negative",
                condition=models.Q(price__gte=0),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name
