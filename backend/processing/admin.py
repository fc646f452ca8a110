from django.contrib import admin
from .models import ProcessingSession, SessionBox, PaymentTransaction


class SessionBoxInline(admin.TabularInline):
    model = SessionBox
    extra = 0
    readonly_fields = ['box_id', 'box_weight', 'box_type', 'created_at']


class PaymentTransactionInline(admin.TabularInline):
    model = PaymentTransaction
    extra = 0
    readonly_fields = ['created_at']


@admin.register(ProcessingSession)
class ProcessingSessionAdmin(admin.ModelAdmin):
    list_display = ['session_number', 'farmer', 'oil_weight', 'total_box_weight', 'box_count',
                    'total_price', 'amount_paid', 'processing_status', 'payment_status', 'created_at']
    list_filter = ['processing_status', 'payment_status', 'created_at']
    search_fields = ['session_number', 'farmer__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [SessionBoxInline, PaymentTransactionInline]


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ['session', 'amount', 'payment_method', 'payment_date', 'created_at']
    list_filter = ['payment_method', 'payment_date']
    search_fields = ['session__session_number', 'session__farmer__name']
