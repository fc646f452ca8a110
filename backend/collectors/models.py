from decimal import Decimal
from django.db import models
from django.utils import timezone


class CollectorGroup(models.Model):
    """A team collecting olives from clients on behalf of the mill"""
    name = models.CharField(max_length=100, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'collector_groups'
        ordering = ['name']

    def __str__(self):
        return self.name


class DailyCollection(models.Model):
    """Quantities collected by a group at one location for one client"""
    group = models.ForeignKey(CollectorGroup, on_delete=models.CASCADE, related_name='collections')
    collection_date = models.DateTimeField()
    location = models.CharField(max_length=255)
    client_name = models.CharField(max_length=255)
    chakra_count = models.PositiveIntegerField(default=0)
    galba_count = models.PositiveIntegerField(default=0)
    nchira_chakra_count = models.PositiveIntegerField(default=0)
    nchira_galba_count = models.PositiveIntegerField(default=0)
    total_chakra = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    price_per_chakra = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('0.000'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'daily_collections'
        ordering = ['-collection_date', '-id']
        indexes = [
            models.Index(fields=['group', '-collection_date'], name='collections_group_date_idx'),
        ]

    def __str__(self):
        return f"{self.group.name} - {self.client_name} ({self.collection_date:%Y-%m-%d})"


class CollectorPayment(models.Model):
    group = models.ForeignKey(CollectorGroup, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=3)
    notes = models.TextField(blank=True, null=True)
    payment_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'collector_payments'
        ordering = ['-payment_date', '-id']

    def __str__(self):
        return f"{self.group.name}: {self.amount}"
