from rest_framework import serializers
from alumnihub.core.serializers import UserSummarySerializer
from .models import Community, CommunityMembership, CommunityPost


class CommunitySerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    my_membership = serializers.SerializerMethodField()

    class Meta:
        model = Community
        fields = [
            'id', 'name', 'description', 'category', 'type', 'created_by', 'college', 'tags',
            'rules', 'allow_member_posts', 'require_post_approval', 'member_count', 'post_count',
            'status', 'my_membership', 'created_at', 'updated_at'
        ]
        read_only_fields = ['college', 'member_count', 'post_count', 'status', 'created_at', 'updated_at']
        extra_kwargs = {
            'name': {'validators': []},
        }

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Community name is required.')
        duplicates = Community.objects.filter(name__iexact=value)
        if self.instance:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError('Community name already exists')
        return value

    def get_my_membership(self, obj):
        memberships = self.context.get('memberships')
        if memberships is None:
            return None
        membership = memberships.get(obj.id)
        if not membership:
            return None
        return {'id': membership.id, 'role': membership.role, 'status': membership.status}


class CommunityMembershipSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    community_name = serializers.CharField(source='community.name', read_only=True)

    class Meta:
        model = CommunityMembership
        fields = [
            'id', 'community', 'community_name', 'user', 'role', 'status', 'joined_at', 'left_at',
            'suspension_reason', 'suspension_end_date', 'created_at', 'updated_at'
        ]


class CommunityPostSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)
    liked_by_me = serializers.SerializerMethodField()

    class Meta:
        model = CommunityPost
        fields = [
            'id', 'community', 'author', 'title', 'content', 'post_type', 'status', 'is_pinned',
            'is_announcement', 'priority', 'tags', 'like_count', 'view_count', 'liked_by_me',
            'moderation_note', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'community', 'status', 'is_pinned', 'like_count', 'view_count', 'moderation_note',
            'created_at', 'updated_at'
        ]

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Post content is required.')
        return value

    def get_liked_by_me(self, obj):
        request = self.context.get('request')
        if not request or not request.user.is_authenticated:
            return False
        return obj.likes.filter(user=request.user).exists()
