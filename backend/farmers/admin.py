from django.contrib import admin
from .models import Farmer, Box


@admin.register(Farmer)
class FarmerAdmin(admin.ModelAdmin):
    list_display = ['name', 'nickname', 'phone', 'type', 'total_amount_due', 'total_amount_paid', 'payment_status', 'date_added']
    list_filter = ['type', 'payment_status', 'date_added']
    search_fields = ['name', 'nickname', 'phone']
    ordering = ['name']
    readonly_fields = ['total_amount_due', 'total_amount_paid', 'payment_status', 'last_processing_date', 'created_at', 'updated_at']


@admin.register(Box)
class BoxAdmin(admin.ModelAdmin):
    list_display = ['id', 'type', 'status', 'current_farmer', 'current_weight', 'assigned_at', 'is_selected']
    list_filter = ['type', 'status', 'is_selected']
    search_fields = ['id', 'current_farmer__name']
    ordering = ['id']
