from django.contrib import admin
from .models import CollectorGroup, DailyCollection, CollectorPayment


@admin.register(CollectorGroup)
class CollectorGroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']


@admin.register(DailyCollection)
class DailyCollectionAdmin(admin.ModelAdmin):
    list_display = ['group', 'collection_date', 'location', 'client_name', 'chakra_count', 'galba_count',
                    'total_chakra', 'price_per_chakra', 'total_amount']
    list_filter = ['group', 'collection_date']
    search_fields = ['client_name', 'location', 'group__name']
    readonly_fields = ['total_chakra', 'total_amount', 'created_at', 'updated_at']


@admin.register(CollectorPayment)
class CollectorPaymentAdmin(admin.ModelAdmin):
    list_display = ['group', 'amount', 'payment_date']
    list_filter = ['group', 'payment_date']
