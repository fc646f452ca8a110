from django.db import models
from django.utils import timezone
from decimal import Decimal
from backend.farmers.models import Farmer


class ProcessingSession(models.Model):
    """One pressing run for a farmer, consuming the boxes the farmer brought"""
    PROCESSING_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processed', 'Processed'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('unpaid', 'Unpaid'),
        ('partial', 'Partial'),
        ('paid', 'Paid'),
    ]

    session_number = models.CharField(max_length=50, db_index=True)
    farmer = models.ForeignKey(Farmer, on_delete=models.CASCADE, related_name='sessions')
    oil_weight = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    oil_unit = models.CharField(max_length=10, default='kg')
    total_box_weight = models.DecimalField(max_digits=10, decimal_places=2)
    box_count = models.PositiveIntegerField()
    total_price = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    price_per_kg = models.DecimalField(max_digits=6, decimal_places=3, null=True, blank=True)
    amount_paid = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    remaining_amount = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    processing_status = models.CharField(max_length=10, choices=PROCESSING_STATUS_CHOICES, default='pending')
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='unpaid')
    processing_date = models.DateTimeField(null=True, blank=True)
    payment_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'processing_sessions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['processing_status'], name='sessions_processing_idx'),
            models.Index(fields=['payment_status'], name='sessions_payment_idx'),
            models.Index(fields=['-created_at'], name='sessions_created_idx'),
        ]

    def __str__(self):
        return f"{self.session_number} - {self.farmer.name}"

    @property
    def is_processed(self):
        return self.processing_status == 'processed' or (self.oil_weight or 0) > 0

    @property
    def extraction_rate(self):
        """Oil obtained per 100 kg of olives"""
        if not self.total_box_weight or not self.oil_weight:
            return Decimal('0.00')
        return (self.oil_weight / self.total_box_weight * 100).quantize(Decimal('0.01'))


class SessionBox(models.Model):
    """Snapshot of a box consumed by a session (the box row itself is reused)"""
    session = models.ForeignKey(ProcessingSession, on_delete=models.CASCADE, related_name='session_boxes')
    box_id = models.CharField(max_length=20)
    box_weight = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    box_type = models.CharField(max_length=10)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'session_boxes'
        ordering = ['id']

    def __str__(self):
        return f"{self.session.session_number} / box {self.box_id}"


class PaymentTransaction(models.Model):
    """A payment received for a session"""
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('check', 'Check'),
        ('transfer', 'Bank transfer'),
    ]

    session = models.ForeignKey(ProcessingSession, on_delete=models.CASCADE, related_name='payment_transactions')
    amount = models.DecimalField(max_digits=12, decimal_places=3)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    notes = models.TextField(blank=True, default='')
    payment_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_transactions'
        ordering = ['-payment_date']

    def __str__(self):
        return f"{self.session.session_number}: {self.amount}"
