from django.conf import settings
from django.db import models
from django.utils import timezone
from backend.farmers.models import Farmer
from backend.processing.models import ProcessingSession


class Transaction(models.Model):
    """Cash ledger entry; credits (money going out) are stored as negative amounts"""
    TYPE_CHOICES = [
        ('FARMER_PAYMENT', 'Farmer payment'),
        ('DEBIT', 'Debit'),
        ('CREDIT', 'Credit'),
    ]

    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=3)
    description = models.TextField()
    destination = models.CharField(max_length=255, blank=True, null=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='transactions')
    farmer_name = models.CharField(max_length=100, blank=True, null=True)
    farmer = models.ForeignKey(Farmer, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    session = models.ForeignKey(ProcessingSession, on_delete=models.SET_NULL, null=True, blank=True,
                                related_name='ledger_transactions')
    transaction_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'transactions'
        ordering = ['-transaction_date', '-id']
        indexes = [
            models.Index(fields=['type'], name='transactions_type_idx'),
            models.Index(fields=['-transaction_date'], name='transactions_date_idx'),
        ]

    def __str__(self):
        return f"{self.type} {self.amount} ({self.transaction_date:%Y-%m-%d})"
