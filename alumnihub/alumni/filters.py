import django_filters
from django.db.models import Q
from .models import AlumniProfile


class AlumniProfileFilter(django_filters.FilterSet):
    """Filter for the alumni directory"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    department = django_filters.CharFilter(field_name='department', lookup_expr='iexact')
    graduation_year = django_filters.NumberFilter(field_name='graduation_year')
    batch_year = django_filters.NumberFilter(field_name='batch_year')
    available_for_mentorship = django_filters.BooleanFilter(field_name='available_for_mentorship')

    class Meta:
        model = AlumniProfile
        fields = ['search', 'department', 'graduation_year', 'batch_year', 'available_for_mentorship']

    def filter_search(self, queryset, name, value):
        """Search names, username, email and current company"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(user__first_name__icontains=value) |
            Q(user__last_name__icontains=value) |
            Q(user__username__icontains=value) |
            Q(user__email__icontains=value) |
            Q(current_company__icontains=value)
        )
