# payments/admin.py
"""
Payments admin: audit view only. Every status change goes through the
reconciliation engine.
"""

from django.contrib import admin

from payments.models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("reference", "order", "provider", "amount", "status", "transaction_id", "created_at")
    list_filter = ("provider", "status")
    search_fields = ("reference", "transaction_id", "external_ref", "order__order_no", "phone_number")
    readonly_fields = [f.name for f in Payment._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
