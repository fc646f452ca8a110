from django.contrib import admin
from .models import OilSafe, OlivePurchase, OilSale


@admin.register(OilSafe)
class OilSafeAdmin(admin.ModelAdmin):
    list_display = ['name', 'capacity', 'current_stock', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']
    readonly_fields = ['current_stock', 'created_at', 'updated_at']


@admin.register(OlivePurchase)
class OlivePurchaseAdmin(admin.ModelAdmin):
    list_display = ['farmer_name', 'safe', 'purchase_date', 'olive_weight', 'price_per_kg', 'total_cost',
                    'oil_produced', 'yield_percentage', 'is_base_purchase']
    list_filter = ['safe', 'is_base_purchase', 'purchase_date']
    search_fields = ['farmer_name', 'farmer_phone']
    readonly_fields = ['total_cost', 'yield_percentage', 'created_at', 'updated_at']


@admin.register(OilSale)
class OilSaleAdmin(admin.ModelAdmin):
    list_display = ['buyer_name', 'safe', 'sale_date', 'quantity', 'price_per_kg', 'total_revenue']
    list_filter = ['safe', 'sale_date']
    search_fields = ['buyer_name']
