from django.conf import settings
from django.db import models
from django.utils import timezone
from decimal import Decimal


class Farmer(models.Model):
    """Olive farmer bringing boxes to be pressed"""
    TYPE_CHOICES = [
        ('small', 'Small'),
        ('large', 'Large'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('partial', 'Partial'),
        ('paid', 'Paid'),
    ]

    name = models.CharField(max_length=100)
    nickname = models.CharField(max_length=100, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='small')
    price_per_kg = models.DecimalField(max_digits=6, decimal_places=3, null=True, blank=True,
                                       help_text="Optional default; the actual price is chosen per session at payment")
    date_added = models.DateTimeField(default=timezone.now)
    total_amount_due = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    total_amount_paid = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='pending')
    last_processing_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'farmers'
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='farmers_name_idx'),
            models.Index(fields=['payment_status'], name='farmers_payment_status_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def remaining_amount(self):
        return max(Decimal('0.000'), self.total_amount_due - self.total_amount_paid)

    @property
    def suggested_price_per_kg(self):
        """The farmer's own price, else the default price for the farmer type"""
        if self.price_per_kg is not None:
            return self.price_per_kg
        price = settings.HUILERIE['FARMER_TYPE_PRICES'].get(self.type)
        return Decimal(price) if price is not None else None


class Box(models.Model):
    """
    A factory box (ids "1".."600") or a Chkara sack ("Chkara<n>").

    Lifecycle: AVAILABLE -> IN_USE (assigned to a farmer) -> AVAILABLE, either
    on release or when the box is consumed into a processing session.
    """
    TYPE_CHOICES = [
        ('normal', 'Normal'),
        ('nchira', 'Nchira'),
        ('chkara', 'Chkara'),
    ]

    STATUS_AVAILABLE = 'AVAILABLE'
    STATUS_IN_USE = 'IN_USE'
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_IN_USE, 'In use'),
    ]

    id = models.CharField(max_length=20, primary_key=True)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='normal')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)
    current_farmer = models.ForeignKey(Farmer, on_delete=models.SET_NULL, null=True, blank=True, related_name='boxes')
    current_weight = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    is_selected = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'boxes'
        verbose_name_plural = 'boxes'
        indexes = [
            models.Index(fields=['status'], name='boxes_status_idx'),
            models.Index(fields=['type'], name='boxes_type_idx'),
        ]

    def __str__(self):
        return f"Box {self.id} ({self.status})"

    @property
    def is_chkara(self):
        return self.type == 'chkara' or self.id.startswith('Chkara')

    @property
    def is_available(self):
        return self.status == self.STATUS_AVAILABLE

    def assign(self, farmer, weight=None, box_type=None):
        """Mark the box IN_USE for a farmer (caller saves)"""
        self.status = self.STATUS_IN_USE
        self.current_farmer = farmer
        self.current_weight = weight
        self.assigned_at = timezone.now()
        self.is_selected = False
        if box_type:
            self.type = box_type

    def clear(self):
        """Return the box to AVAILABLE with no farmer (caller saves)"""
        self.status = self.STATUS_AVAILABLE
        self.current_farmer = None
        self.current_weight = None
        self.assigned_at = None
        self.is_selected = False
