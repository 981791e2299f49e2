import django_filters
from django.db.models import Q
from django.utils import timezone
from .models import Event


class EventFilter(django_filters.FilterSet):
    """Filter for event listings"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    type = django_filters.CharFilter(field_name='event_type')
    status = django_filters.CharFilter(field_name='status')
    is_online = django_filters.BooleanFilter(field_name='is_online')
    upcoming = django_filters.BooleanFilter(method='filter_upcoming', label='Upcoming')
    date_from = django_filters.DateFilter(field_name='start_date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='start_date', lookup_expr='date__lte')

    class Meta:
        model = Event
        fields = ['search', 'type', 'status', 'is_online', 'upcoming', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value) |
            Q(description__icontains=value) |
            Q(location__icontains=value)
        )

    def filter_upcoming(self, queryset, name, value):
        if value is None:
            return queryset
        now = timezone.now()
        if value:
            return queryset.filter(start_date__gte=now).exclude(status='cancelled')
        return queryset.filter(start_date__lt=now)
