from rest_framework import serializers
from alumnihub.core.serializers import UserSummarySerializer
from .models import Event, EventRegistration, EventFeedback


class EventSerializer(serializers.ModelSerializer):
    organizer = UserSummarySerializer(read_only=True)
    registered_count = serializers.SerializerMethodField()
    is_full = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = [
            'id', 'title', 'description', 'event_type', 'start_date', 'end_date', 'location',
            'is_online', 'meeting_link', 'max_attendees', 'registration_deadline', 'price',
            'organizer', 'college', 'tags', 'status', 'registered_count', 'is_full',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['college', 'created_at', 'updated_at']

    def get_registered_count(self, obj):
        return obj.active_registration_count()

    def get_is_full(self, obj):
        return obj.is_full()

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': 'End date must be after the start date.'})
        deadline = attrs.get('registration_deadline', getattr(self.instance, 'registration_deadline', None))
        if deadline and start and deadline > start:
            raise serializers.ValidationError({'registration_deadline': 'Registration must close before the event starts.'})
        is_online = attrs.get('is_online', getattr(self.instance, 'is_online', False))
        location = attrs.get('location', getattr(self.instance, 'location', ''))
        if not is_online and not location:
            raise serializers.ValidationError({'location': 'Location is required for offline events.'})
        return attrs


class EventSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Event
        fields = ['id', 'title', 'event_type', 'start_date', 'end_date', 'is_online', 'location', 'price', 'status']


class EventRegistrationSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    event = EventSummarySerializer(read_only=True)

    class Meta:
        model = EventRegistration
        fields = ['id', 'event', 'user', 'status', 'payment_status', 'amount_paid', 'registered_at', 'updated_at']


class EventFeedbackSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = EventFeedback
        fields = ['id', 'event', 'user', 'rating', 'comment', 'created_at']
        read_only_fields = ['event', 'created_at']
