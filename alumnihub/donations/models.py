from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Campaign(models.Model):
    """Fundraising campaign of a college"""
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    goal_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    college = models.ForeignKey('core.College', on_delete=models.CASCADE, null=True, blank=True, related_name='campaigns')
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='campaigns_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'campaigns'
        ordering = ['-created_at']


class Donation(models.Model):
    CURRENCY_CHOICES = [
        ('INR', 'Indian Rupee'),
        ('USD', 'US Dollar'),
        ('EUR', 'Euro'),
        ('GBP', 'British Pound'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]
    DONATION_TYPE_CHOICES = [
        ('one-time', 'One Time'),
        ('recurring', 'Recurring'),
    ]
    # Allowed payment status changes
    STATUS_TRANSITIONS = {
        'pending': ('completed', 'failed'),
        'completed': ('refunded',),
    }

    donor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='donations')
    college = models.ForeignKey('core.College', on_delete=models.SET_NULL, null=True, blank=True, related_name='donations')
    campaign = models.ForeignKey(Campaign, on_delete=models.SET_NULL, null=True, blank=True, related_name='donations')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default='INR')
    payment_method = models.CharField(max_length=50, blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    donation_type = models.CharField(max_length=20, choices=DONATION_TYPE_CHOICES, default='one-time')
    message = models.TextField(max_length=500, blank=True)
    anonymous = models.BooleanField(default=False)
    transaction_id = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.amount} {self.currency} by {self.donor}"

    def can_transition_to(self, new_status):
        return new_status in self.STATUS_TRANSITIONS.get(self.payment_status, ())

    class Meta:
        db_table = 'donations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['payment_status'], name='donations_status_idx'),
            models.Index(fields=['-created_at'], name='donations_created_idx'),
        ]
