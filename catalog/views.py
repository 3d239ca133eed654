"""Read-only product endpoints for storefront browsing."""

from django.conf import settings
from django.core.cache import cache
from django.http import Http404
from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import filters as drf_filters
from rest_framework import viewsets
from rest_framework.response import Response

from . import selectors
from .models import Product
from .serializers import ProductDetailSerializer, ProductListSerializer
from .signals import product_page_cache_key


class ProductFilterSet(filters.FilterSet):
    min_price = filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = filters.NumberFilter(field_name="price", lookup_expr="lte")

    class Meta:
        model = Product
        fields = ["min_price", "max_price"]


@extend_schema_view(
    list=extend_schema(
        summary="List products",
        description=(
            "Returns active products. Supports filtering by `min_price`/`max_price`, ordering by `name`, "
            "`price` or `created_at`, and search via `search`."
        ),
        tags=["Catalog Endpoints"],
        parameters=[
            OpenApiParameter("min_price", OpenApiTypes.DECIMAL, location="query", description="Lowest price"),
            OpenApiParameter("max_price", OpenApiTypes.DECIMAL, location="query", description="Highest price"),
            OpenApiParameter("ordering", OpenApiTypes.STR, location="query", description="Order by field"),
            OpenApiParameter("search", OpenApiTypes.STR, location="query", description="Search products by text"),
        ],
    ),
    retrieve=extend_schema(
        summary="Get product by slug",
        description="Returns an active product page. Responses are cached until a cart touches the product.",
        tags=["Catalog Endpoints"],
    ),
)
class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    lookup_field = "slug"
    lookup_value_regex = "[^/]+"
    filterset_class = ProductFilterSet
    throttle_scope = "catalog"
    filter_backends = [filters.DjangoFilterBackend, drf_filters.OrderingFilter, drf_filters.SearchFilter]
    ordering_fields = ["name", "price", "created_at"]
    search_fields = ["name", "description"]

    def get_queryset(self):
        return selectors.list_products()

    def get_serializer_class(self):
        return ProductDetailSerializer if self.action == "retrieve" else ProductListSerializer

    def retrieve(self, request, slug=None):
        key = product_page_cache_key(slug)
        data = cache.get(key)
        if data is None:
            product = selectors.get_product_by_slug(slug)
            if product is None:
                raise Http404("No product matches the given query.")
            data = ProductDetailSerializer(product).data
            cache.set(key, data, timeout=getattr(settings, "CATALOG_PRODUCT_CACHE_TIMEOUT", 300))
        return Response(data)
