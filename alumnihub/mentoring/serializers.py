from django.core.validators import RegexValidator
from django.utils import timezone
from rest_framework import serializers

from alumnihub.core.conf import get_setting
from alumnihub.core.serializers import UserSummarySerializer
from .models import (
    ApprovalHistory, MenteeRegistration, MentoringProgram, MentorMenteeMatch, MentorRegistration,
    MentorshipCommunication,
)

mobile_validator = RegexValidator(r'^\+?[0-9]{10,15}$', 'Enter a valid mobile number (10-15 digits).')


def age_on(born, today):
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


class MentoringProgramSerializer(serializers.ModelSerializer):
    mentor_count = serializers.SerializerMethodField()
    mentee_count = serializers.SerializerMethodField()

    class Meta:
        model = MentoringProgram
        fields = [
            'id', 'name', 'category', 'short_description', 'description', 'areas_of_mentoring',
            'registration_end_date_mentor', 'registration_end_date_mentee', 'matching_end_date',
            'status', 'manager', 'college', 'mentor_count', 'mentee_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['college', 'created_at', 'updated_at']

    def get_mentor_count(self, obj):
        return obj.mentorregistrations.count()

    def get_mentee_count(self, obj):
        return obj.menteeregistrations.count()

    def validate_areas_of_mentoring(self, value):
        if not isinstance(value, list) or not all(isinstance(area, str) and area.strip() for area in value):
            raise serializers.ValidationError('Areas of mentoring must be a list of names.')
        return [area.strip() for area in value]

    def validate(self, attrs):
        matching_end = attrs.get('matching_end_date', getattr(self.instance, 'matching_end_date', None))
        for field in ('registration_end_date_mentor', 'registration_end_date_mentee'):
            end = attrs.get(field, getattr(self.instance, field, None))
            if matching_end and end and end > matching_end:
                raise serializers.ValidationError({field: 'Registration must close before the matching deadline.'})
        return attrs


class RegistrationSerializerMixin:
    """Field validation shared by mentor and mentee registrations"""

    def validate_first_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('First name is required.')
        return value

    def validate_last_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Last name is required.')
        return value

    def validate_date_of_birth(self, value):
        min_age = get_setting('MENTOR_MIN_AGE')
        if age_on(value, timezone.localdate()) < min_age:
            raise serializers.ValidationError(f'Registrants must be at least {min_age} years old.')
        return value

    def validate_class_of(self, value):
        max_year = timezone.localdate().year + 5
        min_year = get_setting('CLASS_OF_MIN_YEAR')
        if not min_year <= value <= max_year:
            raise serializers.ValidationError(f'Class of must be between {min_year} and {max_year}.')
        return value

    def validate_areas_of_mentoring(self, value):
        if not isinstance(value, list) or not value:
            raise serializers.ValidationError('Select at least one area of mentoring.')
        program = self.context.get('program')
        if program and program.areas_of_mentoring:
            unknown = [area for area in value if area not in program.areas_of_mentoring]
            if unknown:
                raise serializers.ValidationError(f"Not offered by this program: {', '.join(map(str, unknown))}")
        return value


class MentorRegistrationSerializer(RegistrationSerializerMixin, serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    program_name = serializers.CharField(source='program.name', read_only=True)
    title = serializers.ChoiceField(choices=MentorRegistration.TITLE_CHOICES)
    mobile_number = serializers.CharField(max_length=20, validators=[mobile_validator])

    class Meta:
        model = MentorRegistration
        fields = [
            'id', 'program', 'program_name', 'user', 'status', 'title', 'first_name', 'last_name',
            'preferred_name', 'mobile_number', 'date_of_birth', 'personal_email',
            'preferred_mailing_address', 'class_of', 'areas_of_mentoring', 'current_position',
            'current_company', 'approved_at', 'rejected_at', 'rejection_reason', 'submitted_at', 'updated_at'
        ]
        read_only_fields = [
            'program', 'status', 'approved_at', 'rejected_at', 'rejection_reason', 'submitted_at', 'updated_at'
        ]


class MenteeRegistrationSerializer(RegistrationSerializerMixin, serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    program_name = serializers.CharField(source='program.name', read_only=True)
    title = serializers.ChoiceField(choices=MenteeRegistration.TITLE_CHOICES)
    mobile_number = serializers.CharField(max_length=20, validators=[mobile_validator])

    class Meta:
        model = MenteeRegistration
        fields = [
            'id', 'program', 'program_name', 'user', 'status', 'title', 'first_name', 'last_name',
            'preferred_name', 'mobile_number', 'date_of_birth', 'personal_email',
            'preferred_mailing_address', 'class_of', 'areas_of_mentoring', 'student_id',
            'approved_at', 'rejected_at', 'rejection_reason', 'submitted_at', 'updated_at'
        ]
        read_only_fields = [
            'program', 'status', 'approved_at', 'rejected_at', 'rejection_reason', 'submitted_at', 'updated_at'
        ]


class ApprovalHistorySerializer(serializers.ModelSerializer):
    performed_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = ApprovalHistory
        fields = ['id', 'action', 'from_status', 'to_status', 'performed_by', 'performed_at', 'reason', 'notes']


class MentorshipCommunicationSerializer(serializers.ModelSerializer):
    from_user = UserSummarySerializer(read_only=True)
    to_user_detail = UserSummarySerializer(source='to_user', read_only=True)

    class Meta:
        model = MentorshipCommunication
        fields = ['id', 'program', 'from_user', 'to_user', 'to_user_detail', 'subject', 'body', 'sent_at', 'is_read']
        read_only_fields = ['sent_at', 'is_read']

    def validate_body(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Message body is required.')
        return value


class MentorSummarySerializer(serializers.ModelSerializer):
    """Public view of an approved mentor, shown to mentees choosing preferences"""
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = MentorRegistration
        fields = ['id', 'full_name', 'class_of', 'current_position', 'current_company', 'areas_of_mentoring']


class MenteeSummarySerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = MenteeRegistration
        fields = ['id', 'full_name', 'class_of', 'personal_email', 'areas_of_mentoring', 'preferred_mentors']


class MentorMenteeMatchSerializer(serializers.ModelSerializer):
    program_name = serializers.CharField(source='program.name', read_only=True)
    mentor = MentorSummarySerializer(source='mentor_registration', read_only=True)
    mentee = MenteeSummarySerializer(source='mentee_registration', read_only=True)

    class Meta:
        model = MentorMenteeMatch
        fields = [
            'id', 'program', 'program_name', 'mentor', 'mentee', 'match_type', 'status', 'score',
            'score_breakdown', 'preferred_order', 'respond_by', 'responded_at', 'rejection_reason',
            'matched_at', 'updated_at'
        ]


class MenteePreferencesSerializer(serializers.Serializer):
    preferred_mentors = serializers.ListField(child=serializers.IntegerField(min_value=1))

    def validate_preferred_mentors(self, value):
        count = get_setting('PREFERRED_MENTOR_COUNT')
        if len(value) != count:
            raise serializers.ValidationError(f'Exactly {count} preferred mentors are required.')
        if len(set(value)) != len(value):
            raise serializers.ValidationError('Cannot select the same mentor more than once.')
        program = self.context['program']
        approved = set(MentorRegistration.objects.filter(
            program=program, status=MentorRegistration.STATUS_APPROVED, id__in=value
        ).values_list('id', flat=True))
        if approved != set(value):
            raise serializers.ValidationError('All selected mentors must be approved mentors of this program.')
        return value
