"""Product page cache and its invalidation signal.

Cart mutations send `product_page_stale` after commit so the cached product
page (which shows cart-dependent state to the storefront) is rebuilt.
"""

import logging

from django.core.cache import cache
from django.dispatch import Signal, receiver

logger = logging.getLogger("storefront.catalog")

# Sent with `slug=<product slug>`.
product_page_stale = Signal()


def product_page_cache_key(slug: str) -> str:
    return f"catalog:product-page:{slug}"


@receiver(product_page_stale)
def invalidate_product_page(sender, slug: str, **kwargs):
    cache.delete(product_page_cache_key(slug))
    logger.debug("catalog.product_page_invalidated", extra={"event": "catalog.product_page_invalidated", "slug": slug})
