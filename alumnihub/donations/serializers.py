from rest_framework import serializers
from alumnihub.core.serializers import UserSummarySerializer
from .models import Campaign, Donation


class CampaignSerializer(serializers.ModelSerializer):
    raised_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True, default=0)
    donor_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Campaign
        fields = [
            'id', 'title', 'description', 'goal_amount', 'college', 'start_date', 'end_date',
            'is_active', 'raised_amount', 'donor_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['college', 'created_at', 'updated_at']

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': 'End date must be after the start date.'})
        return attrs


class DonationSerializer(serializers.ModelSerializer):
    donor = serializers.SerializerMethodField()
    campaign_title = serializers.CharField(source='campaign.title', read_only=True, default=None)

    class Meta:
        model = Donation
        fields = [
            'id', 'donor', 'college', 'campaign', 'campaign_title', 'amount', 'currency',
            'payment_method', 'payment_status', 'donation_type', 'message', 'anonymous',
            'transaction_id', 'created_at', 'updated_at'
        ]
        read_only_fields = ['college', 'payment_status', 'created_at', 'updated_at']

    def get_donor(self, obj):
        request = self.context.get('request')
        viewer = getattr(request, 'user', None)
        # Anonymous donations only reveal the donor to the donor themselves
        if obj.anonymous and not (viewer and viewer.id == obj.donor_id):
            return None
        return UserSummarySerializer(obj.donor).data
