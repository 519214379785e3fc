# orders/admin.py
"""
Orders admin (read-mostly).

Money fields and line items are frozen at creation, so they are read-only
here. Status changes belong to the API / reconciliation engine.
"""

from django.contrib import admin

from orders.models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ("product", "product_name", "sku", "quantity", "unit_price", "total_price")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_no",
        "user",
        "status",
        "payment_status",
        "payment_method",
        "total_amount",
        "refund_pending",
        "created_at",
    )
    list_filter = ("status", "payment_status", "payment_method", "refund_pending")
    search_fields = ("order_no", "tracking_number", "payer_phone", "user__email")
    inlines = [OrderItemInline]
    readonly_fields = (
        "order_no",
        "user",
        "status",
        "payment_status",
        "payment_method",
        "payer_phone",
        "subtotal_amount",
        "shipping_amount",
        "tax_amount",
        "discount_amount",
        "total_amount",
        "currency",
        "stock_reserved",
        "tracking_number",
        "created_at",
        "confirmed_at",
        "delivered_at",
        "cancelled_at",
    )

    def has_delete_permission(self, request, obj=None):
        return False
