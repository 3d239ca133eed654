"""Admin registration for cart models.

Carts are read-mostly in the admin: totals are derived, so they are shown
but never editable, and lines are listed inline for support lookups.
"""

from django.contrib import admin

from .models import Cart, CartLine, CartMergeMarker


class CartLineInline(admin.TabularInline):
    model = CartLine
    extra = 0
    fields = ("product_id", "name", "quantity", "unit_price", "created_at", "updated_at")
    readonly_fields = ("product_id", "name", "quantity", "unit_price", "created_at", "updated_at")
    can_delete = False


class OwnerTypeFilter(admin.SimpleListFilter):
    title = "owner type"
    parameter_name = "owner_type"

    def lookups(self, request, model_admin):
        return (
            ("user", "User carts"),
            ("guest", "Guest carts"),
        )

    def queryset(self, request, queryset):
        value = self.value()
        if value == "user":
            return queryset.filter(user__isnull=False)
        if value == "guest":
            return queryset.filter(user__isnull=True)
        return queryset


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "session_key", "items_total", "grand_total", "updated_at")
    list_filter = (OwnerTypeFilter,)
    search_fields = ("session_key", "user__username", "user__email")
    ordering = ("-updated_at",)
    readonly_fields = ("items_total", "shipping_total", "tax_total", "grand_total", "created_at", "updated_at")
    raw_id_fields = ("user",)
    list_select_related = ("user",)
    inlines = [CartLineInline]


@admin.register(CartMergeMarker)
class CartMergeMarkerAdmin(admin.ModelAdmin):
    list_display = ("id", "auth_session", "user", "created_at", "expires_at")
    search_fields = ("auth_session", "user__email")
    raw_id_fields = ("user",)
