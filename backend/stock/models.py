from decimal import Decimal
from django.db import models
from django.utils import timezone


class OilSafe(models.Model):
    """Oil storage tank; current_stock is kept in step with purchases and sales"""
    name = models.CharField(max_length=100, unique=True)
    capacity = models.DecimalField(max_digits=10, decimal_places=2)
    current_stock = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    description = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'oil_safes'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def available_capacity(self):
        return max(Decimal('0.00'), self.capacity - self.current_stock)

    @property
    def utilization_percentage(self):
        if not self.capacity:
            return Decimal('0.00')
        return (self.current_stock / self.capacity * 100).quantize(Decimal('0.01'))


class OlivePurchase(models.Model):
    """
    Olives bought from a supplier and pressed into a safe.
    oil_produced stays null until the oil is extracted.
    """
    safe = models.ForeignKey(OilSafe, on_delete=models.PROTECT, related_name='purchases')
    purchase_date = models.DateTimeField(default=timezone.now)
    farmer_name = models.CharField(max_length=100)
    farmer_phone = models.CharField(max_length=20, blank=True, null=True)
    olive_weight = models.DecimalField(max_digits=10, decimal_places=2)
    price_per_kg = models.DecimalField(max_digits=8, decimal_places=3)
    total_cost = models.DecimalField(max_digits=12, decimal_places=3)
    oil_produced = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    yield_percentage = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    is_base_purchase = models.BooleanField(default=False, help_text='Oil bought directly; priced per kg of oil')
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'olive_purchases'
        ordering = ['-purchase_date', '-id']
        indexes = [
            models.Index(fields=['safe', '-purchase_date'], name='purchases_safe_date_idx'),
        ]

    def __str__(self):
        return f"{self.farmer_name} - {self.olive_weight} kg ({self.purchase_date:%Y-%m-%d})"

    @property
    def is_pending_oil(self):
        return not self.oil_produced


class OilSale(models.Model):
    safe = models.ForeignKey(OilSafe, on_delete=models.PROTECT, related_name='sales')
    sale_date = models.DateTimeField(default=timezone.now)
    buyer_name = models.CharField(max_length=100)
    quantity = models.DecimalField(max_digits=10, decimal_places=2)
    price_per_kg = models.DecimalField(max_digits=8, decimal_places=3)
    total_revenue = models.DecimalField(max_digits=12, decimal_places=3)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'oil_sales'
        ordering = ['-sale_date', '-id']

    def __str__(self):
        return f"{self.buyer_name} - {self.quantity} kg"
