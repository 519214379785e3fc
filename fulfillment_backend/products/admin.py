# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe stock):

- Product.stock is read-only in the admin.
- Deliveries are entered in the extra "restock quantity" field; it is routed
  through InventoryLedger.receive() so the counter moves with an UPDATE
  expression and a RESTOCK StockMovement is written.
- StockMovement rows are immutable: no add, no change, no delete.
"""

from __future__ import annotations

from django import forms
from django.contrib import admin

from products.models import Product, StockMovement
from products.services import InventoryLedger


class ProductAdminForm(forms.ModelForm):
    restock_quantity = forms.IntegerField(
        min_value=0,
        required=False,
        help_text="Units received in this delivery (added to stock).",
    )

    class Meta:
        model = Product
        fields = ("sku", "name", "unit_price", "is_active")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    form = ProductAdminForm
    list_display = ("name", "sku", "unit_price", "stock", "is_active", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("name", "sku")
    readonly_fields = ("stock", "created_at", "updated_at")

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)

        qty = form.cleaned_data.get("restock_quantity") or 0
        if qty > 0:
            InventoryLedger().receive(product_id=obj.pk, quantity=qty, user=request.user)
            obj.refresh_from_db(fields=["stock"])


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("product", "reason", "movement_type", "quantity", "order", "created_at")
    list_filter = ("reason", "movement_type")
    search_fields = ("product__name", "product__sku", "order__order_no")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
