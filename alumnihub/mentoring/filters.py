import django_filters
from django.db.models import Q

from .models import MenteeRegistration, MentoringProgram, MentorRegistration


class MentoringProgramFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    status = django_filters.CharFilter(field_name='status')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')

    class Meta:
        model = MentoringProgram
        fields = ['status', 'category']

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(name__icontains=value) | Q(short_description__icontains=value))


class RegistrationFilter(django_filters.FilterSet):
    """Approval queue filters: stage, program and free-text search"""
    stage = django_filters.CharFilter(field_name='status')
    program = django_filters.NumberFilter(field_name='program_id')
    search = django_filters.CharFilter(method='filter_search')

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(first_name__icontains=value) |
            Q(last_name__icontains=value) |
            Q(preferred_name__icontains=value) |
            Q(personal_email__icontains=value)
        )


class MentorRegistrationFilter(RegistrationFilter):
    class Meta:
        model = MentorRegistration
        fields = ['stage', 'program']


class MenteeRegistrationFilter(RegistrationFilter):
    class Meta:
        model = MenteeRegistration
        fields = ['stage', 'program']
