"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Product, ProductVariant


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "low_stock_threshold", "is_discontinued", "allows_backorder")
    search_fields = ("title", "slug")
    list_filter = ("is_discontinued", "allows_backorder")
    prepopulated_fields = {"slug": ("title",)}
    inlines = [ProductVariantInline]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ("product", "sku", "status", "price")
    search_fields = ("sku",)
    list_filter = ("status",)
