import django_filters
from .models import Donation


class DonationFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name='payment_status')
    campaign = django_filters.NumberFilter(field_name='campaign_id')
    donation_type = django_filters.CharFilter(field_name='donation_type')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    min_amount = django_filters.NumberFilter(field_name='amount', lookup_expr='gte')

    class Meta:
        model = Donation
        fields = ['status', 'campaign', 'donation_type', 'date_from', 'date_to', 'min_amount']
