from django.contrib import admin

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "user", "session_id", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("number", "session_id")
