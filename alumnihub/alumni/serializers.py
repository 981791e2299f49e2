from rest_framework import serializers
from alumnihub.core.serializers import UserSummarySerializer
from .models import AlumniProfile, AlumniNote, AlumniIssue, IssueResponse, AlumniFlag, Message


class AlumniProfileSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    college = serializers.IntegerField(source='user.college_id', read_only=True)
    college_name = serializers.CharField(source='user.college.name', read_only=True, default=None)

    class Meta:
        model = AlumniProfile
        fields = [
            'id', 'user', 'college', 'college_name', 'program', 'department', 'batch_year',
            'graduation_year', 'current_company', 'current_position', 'current_location',
            'linkedin_url', 'bio', 'skills', 'available_for_mentorship', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']


class AlumniNoteSerializer(serializers.ModelSerializer):
    staff = UserSummarySerializer(read_only=True)

    class Meta:
        model = AlumniNote
        fields = ['id', 'alumni', 'staff', 'content', 'category', 'is_private', 'created_at', 'updated_at']
        read_only_fields = ['alumni', 'created_at', 'updated_at']

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Note content is required.')
        return value


class IssueResponseSerializer(serializers.ModelSerializer):
    staff = UserSummarySerializer(read_only=True)

    class Meta:
        model = IssueResponse
        fields = ['id', 'staff', 'content', 'created_at', 'updated_at']


class AlumniIssueSerializer(serializers.ModelSerializer):
    raised_by = UserSummarySerializer(read_only=True)
    resolved_by = UserSummarySerializer(read_only=True)
    assigned_to_name = serializers.CharField(source='assigned_to.display_name', read_only=True, default=None)
    responses = IssueResponseSerializer(many=True, read_only=True)

    class Meta:
        model = AlumniIssue
        fields = [
            'id', 'alumni', 'raised_by', 'title', 'description', 'status', 'priority',
            'assigned_to', 'assigned_to_name', 'tags', 'resolved_at', 'resolved_by',
            'responses', 'created_at', 'updated_at'
        ]
        read_only_fields = ['alumni', 'resolved_at', 'created_at', 'updated_at']

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Title is required.')
        return value

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError('Tags must be a list of strings.')
        return value


class AlumniFlagSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = AlumniFlag
        fields = ['id', 'alumni', 'flag_type', 'flag_value', 'description', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['alumni', 'created_at', 'updated_at']
        # Upserts are keyed on (alumni, flag_type); uniqueness is handled in the view
        validators = []


class MessageSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)
    recipient_detail = UserSummarySerializer(source='recipient', read_only=True)

    class Meta:
        model = Message
        fields = ['id', 'sender', 'recipient', 'recipient_detail', 'subject', 'content', 'is_read', 'created_at']
        read_only_fields = ['is_read', 'created_at']
