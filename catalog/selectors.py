"""Selectors for the catalog domain.

Read-only query helpers shared by the catalog API and the cart services.
"""

from typing import Iterable, Optional

from django.db.models import Q, QuerySet

from .models import Product


def list_products(*, search: Optional[str] = None, ordering: Optional[Iterable[str]] = None) -> QuerySet[Product]:
    """Return active products, optionally filtered by a text search."""

    qs = Product.objects.filter(status=Product.STATUS_ACTIVE)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(description__icontains=search))
    return qs.order_by(*(ordering or ("name",)))


def get_product(product_id) -> Optional[Product]:
    """Return an active product by id, or None if it is unknown or no longer sold.

    Ids arrive as opaque strings from carts; anything that is not a
    primary key value resolves to None.
    """

    if product_id is None or not str(product_id).strip().isdigit():
        return None
    try:
        return Product.objects.get(pk=int(product_id), status=Product.STATUS_ACTIVE)
    except Product.DoesNotExist:
        return None


def get_product_by_slug(slug: str) -> Optional[Product]:
    """Return a single active product by slug, or None if not found."""

    try:
        return Product.objects.get(slug=slug, status=Product.STATUS_ACTIVE)
    except Product.DoesNotExist:
        return None
