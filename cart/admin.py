from django.contrib import admin

from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    readonly_fields = ("reservation",)


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "session_id", "status", "updated_at")
    list_filter = ("status",)
    search_fields = ("session_id",)
    inlines = [CartItemInline]
