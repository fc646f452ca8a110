from django.contrib import admin
from .models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['type', 'amount', 'description', 'farmer_name', 'session', 'created_by', 'transaction_date']
    list_filter = ['type', 'transaction_date']
    search_fields = ['description', 'farmer_name', 'destination']
    readonly_fields = ['created_at', 'updated_at']
