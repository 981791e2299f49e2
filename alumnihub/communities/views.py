import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from alumnihub.core.pagination import paginated_response_data
from alumnihub.core.permissions import is_college_staff, is_super_admin, scope_to_college
from alumnihub.core.utils import create_audit_log
from .models import Community, CommunityMembership, CommunityPost, PostLike
from .serializers import CommunitySerializer, CommunityMembershipSerializer, CommunityPostSerializer

User = get_user_model()
logger = logging.getLogger(__name__)


def get_membership(user, community):
    return CommunityMembership.objects.filter(community=community, user=user).first()


def is_approved_member(user, community):
    return CommunityMembership.objects.filter(community=community, user=user, status='approved').exists()


def is_owner(user, community):
    return community.created_by_id == user.id


def can_moderate(user, community):
    """Owner, super admins and approved moderator/admin members"""
    if is_super_admin(user) or is_owner(user, community):
        return True
    membership = get_membership(user, community)
    return bool(membership and membership.is_moderator)


def can_administer(user, community):
    """Owner, super admins and approved admin members (manage moderators)"""
    if is_super_admin(user) or is_owner(user, community):
        return True
    return CommunityMembership.objects.filter(
        community=community, user=user, status='approved', role='admin'
    ).exists()


def lock_community(pk):
    """Lock the community row; membership changes and recounts run under it"""
    return Community.objects.select_for_update().get(pk=pk)


def can_read_posts(user, community, moderator=None):
    if community.type == 'open':
        return True
    if moderator is None:
        moderator = can_moderate(user, community)
    return moderator or is_approved_member(user, community)


def visible_communities(user):
    """Active communities of the user's college; hidden ones only to their members"""
    queryset = scope_to_college(user, Community.objects.filter(status='active').select_related('created_by'))
    if is_super_admin(user):
        return queryset
    member_of = CommunityMembership.objects.filter(user=user, status='approved').values('community_id')
    return queryset.filter(~Q(type='hidden') | Q(id__in=member_of))


def membership_context(request, communities=None):
    memberships = CommunityMembership.objects.filter(user=request.user)
    if communities is not None:
        memberships = memberships.filter(community__in=communities)
    return {'request': request, 'memberships': {m.community_id: m for m in memberships}}


# Communities
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def community_list_create(request):
    """List communities or create one (college admin, HOD, staff)"""
    if request.method == 'GET':
        communities = visible_communities(request.user)
        search = request.query_params.get('search', '').strip()
        if search:
            communities = communities.filter(Q(name__icontains=search) | Q(description__icontains=search))
        category = request.query_params.get('category')
        if category:
            communities = communities.filter(category=category)
        community_type = request.query_params.get('type')
        if community_type:
            communities = communities.filter(type=community_type)
        return Response(paginated_response_data(
            request, communities, CommunitySerializer, context=membership_context(request)
        ))

    if not is_college_staff(request.user):
        return Response({'error': 'Only college admins, HODs and staff can create communities'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CommunitySerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            community = serializer.save(created_by=request.user, college=request.user.college)
            CommunityMembership.objects.create(
                community=community, user=request.user, role='admin', status='approved',
                joined_at=timezone.now(), approved_by=request.user,
            )
            community.refresh_member_count()
        logger.info(f"Community created: {community.name} (ID: {community.id}) by {request.user.username}")
        create_audit_log(request=request, action='create', model_name='Community',
                         object_id=community.id, object_name=community.name)
        return Response(
            CommunitySerializer(community, context=membership_context(request, [community])).data,
            status=status.HTTP_201_CREATED
        )
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def community_detail(request, pk):
    """Retrieve, update or archive a community"""
    community = get_object_or_404(
        scope_to_college(request.user, Community.objects.filter(status='active')), pk=pk
    )

    if request.method == 'GET':
        if community.type == 'hidden' and not (is_super_admin(request.user) or is_approved_member(request.user, community)):
            return Response({'error': 'This community is only visible to its members'}, status=status.HTTP_403_FORBIDDEN)
        return Response(CommunitySerializer(community, context=membership_context(request, [community])).data)

    if request.method == 'DELETE':
        if not (is_owner(request.user, community) or is_super_admin(request.user)):
            return Response({'error': 'Only the owner can delete this community'}, status=status.HTTP_403_FORBIDDEN)
        community.status = 'archived'
        community.save(update_fields=['status', 'updated_at'])
        create_audit_log(request=request, action='delete', model_name='Community',
                         object_id=community.id, object_name=community.name)
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not can_moderate(request.user, community):
        return Response({'error': 'Only the owner or moderators can update this community'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CommunitySerializer(
        community, data=request.data, partial=request.method == 'PATCH',
        context=membership_context(request, [community])
    )
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request=request, action='update', model_name='Community',
                         object_id=community.id, object_name=community.name,
                         changes={'fields': sorted(serializer.validated_data)})
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_communities(request):
    """Communities the current user is an approved member of"""
    communities = Community.objects.filter(
        status='active', memberships__user=request.user, memberships__status='approved'
    ).select_related('created_by')
    return Response(CommunitySerializer(communities, many=True, context=membership_context(request)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def community_join(request, pk):
    """
    Join a community.

    Open communities approve immediately; closed and hidden communities
    create a pending request. Rows of members who left or were rejected
    are reused.
    """
    community = get_object_or_404(
        scope_to_college(request.user, Community.objects.filter(status='active')), pk=pk
    )

    with transaction.atomic():
        community = lock_community(community.pk)
        membership = CommunityMembership.objects.select_for_update().filter(
            community=community, user=request.user
        ).first()
        if membership and membership.status == 'approved':
            return Response({'error': 'You are already a member of this community'}, status=status.HTTP_400_BAD_REQUEST)
        if membership and membership.status == 'pending':
            return Response({'error': 'Your membership request is already pending'}, status=status.HTTP_400_BAD_REQUEST)
        if membership and membership.status == 'suspended':
            return Response({'error': 'Your membership is suspended'}, status=status.HTTP_403_FORBIDDEN)

        approved = community.type == 'open'
        if membership is None:
            membership = CommunityMembership(community=community, user=request.user)
        membership.role = 'member'
        membership.status = 'approved' if approved else 'pending'
        membership.joined_at = timezone.now() if approved else None
        membership.left_at = None
        membership.save()
        community.refresh_member_count()

    create_audit_log(request=request, action='membership_join', model_name='Community',
                     object_id=community.id, object_name=community.name,
                     changes={'status': membership.status}, college=community.college)
    message = 'Joined community' if approved else 'Membership request sent'
    return Response({
        'message': message,
        'membership': CommunityMembershipSerializer(membership).data,
    }, status=status.HTTP_201_CREATED if approved else status.HTTP_202_ACCEPTED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def community_leave(request, pk):
    """Leave a community (or withdraw a pending request)"""
    community = get_object_or_404(Community.objects.filter(status='active'), pk=pk)
    if is_owner(request.user, community):
        return Response({'error': 'The owner cannot leave the community'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        community = lock_community(community.pk)
        membership = CommunityMembership.objects.select_for_update().filter(
            community=community, user=request.user, status__in=['approved', 'pending']
        ).first()
        if membership is None:
            return Response({'error': 'You are not a member of this community'}, status=status.HTTP_400_BAD_REQUEST)
        membership.status = 'left'
        membership.left_at = timezone.now()
        membership.save(update_fields=['status', 'left_at', 'updated_at'])
        community.refresh_member_count()

    create_audit_log(request=request, action='membership_leave', model_name='Community',
                     object_id=community.id, object_name=community.name, college=community.college)
    return Response({'message': 'Left community'})


def _member_list(request, pk, **filters):
    community = get_object_or_404(visible_communities(request.user), pk=pk)
    if community.type == 'hidden' and not (is_super_admin(request.user) or is_approved_member(request.user, community)):
        return Response({'error': 'This community is only visible to its members'}, status=status.HTTP_403_FORBIDDEN)
    memberships = community.memberships.filter(**filters).select_related('user', 'community')
    return Response(paginated_response_data(request, memberships, CommunityMembershipSerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def community_members(request, pk):
    """Approved members"""
    return _member_list(request, pk, status='approved')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def community_moderators(request, pk):
    """Approved moderators and admins"""
    return _member_list(request, pk, status='approved', role__in=CommunityMembership.MODERATOR_ROLES)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def community_requests(request, pk):
    """Pending membership requests (moderators only)"""
    community = get_object_or_404(Community.objects.filter(status='active'), pk=pk)
    if not can_moderate(request.user, community):
        return Response({'error': 'Only moderators can view membership requests'}, status=status.HTTP_403_FORBIDDEN)
    memberships = community.memberships.filter(status='pending').select_related('user', 'community')
    return Response(CommunityMembershipSerializer(memberships, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def community_invite(request, pk):
    """Add a user directly as an approved member (moderators)"""
    community = get_object_or_404(Community.objects.filter(status='active'), pk=pk)
    if not can_moderate(request.user, community):
        return Response({'error': 'Only moderators can invite members'}, status=status.HTTP_403_FORBIDDEN)
    invitee = get_object_or_404(User, pk=request.data.get('user_id'), is_active=True)
    if community.college_id and invitee.college_id != community.college_id:
        return Response({'error': 'User belongs to another college'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        community = lock_community(community.pk)
        membership = CommunityMembership.objects.select_for_update().filter(
            community=community, user=invitee
        ).first()
        if membership and membership.status == 'approved':
            return Response({'error': 'User is already a member of this community'}, status=status.HTTP_400_BAD_REQUEST)
        if membership and membership.status == 'suspended':
            return Response({'error': 'User is suspended from this community'}, status=status.HTTP_400_BAD_REQUEST)
        if membership is None:
            membership = CommunityMembership(community=community, user=invitee)
        membership.role = 'member'
        membership.status = 'approved'
        membership.joined_at = timezone.now()
        membership.left_at = None
        membership.approved_by = request.user
        membership.save()
        community.refresh_member_count()

    create_audit_log(request=request, action='membership_approve', model_name='CommunityMembership',
                     object_id=membership.id, object_name=f'{invitee.display_name} @ {community.name}',
                     changes={'invited': True}, college=community.college)
    return Response(CommunityMembershipSerializer(membership).data, status=status.HTTP_201_CREATED)


# Membership moderation
MEMBERSHIP_ACTIONS = {
    # action: (allowed source statuses, requires admin rights)
    'approve': (('pending',), False),
    'reject': (('pending',), False),
    'suspend': (('approved',), False),
    'unsuspend': (('suspended',), False),
    'promote': (('approved',), True),
    'demote': (('approved',), True),
    'remove': (('approved', 'suspended', 'pending'), False),
}


def _apply_membership_action(request, pk, action):
    membership = get_object_or_404(CommunityMembership, pk=pk, community__status='active')
    with transaction.atomic():
        community = lock_community(membership.community_id)
        membership = CommunityMembership.objects.select_for_update(of=('self',)).select_related('user').get(pk=pk)
        previous = {'role': membership.role, 'status': membership.status}
        error = _membership_transition(request, community, membership, action)
        if error is not None:
            return error

    changes = {'from': previous, 'to': {'role': membership.role, 'status': membership.status}}
    create_audit_log(request=request, action=f'membership_{action}', model_name='CommunityMembership',
                     object_id=membership.id, object_name=f'{membership.user.display_name} @ {community.name}',
                     changes=changes, college=community.college)
    logger.info(f"Membership {membership.id} {action} by {request.user.username}")
    return Response(CommunityMembershipSerializer(membership).data)


def _membership_transition(request, community, membership, action):
    """Validate and apply an action to a locked membership; returns an error response or None"""
    allowed_statuses, needs_admin = MEMBERSHIP_ACTIONS[action]

    if not can_moderate(request.user, community):
        return Response({'error': 'Only moderators can manage members'}, status=status.HTTP_403_FORBIDDEN)
    if needs_admin and not can_administer(request.user, community):
        return Response({'error': 'Only community admins can change member roles'}, status=status.HTTP_403_FORBIDDEN)
    if action in ('suspend', 'demote', 'remove') and membership.user_id == request.user.id:
        return Response({'error': f'You cannot {action} yourself'}, status=status.HTTP_400_BAD_REQUEST)
    if action in ('suspend', 'demote', 'remove') and is_owner(membership.user, community):
        return Response({'error': f'Cannot {action} the community owner'}, status=status.HTTP_400_BAD_REQUEST)
    if membership.role in CommunityMembership.MODERATOR_ROLES and action in ('suspend', 'remove') \
            and not can_administer(request.user, community):
        return Response({'error': 'Only community admins can act on moderators'}, status=status.HTTP_403_FORBIDDEN)
    if membership.status not in allowed_statuses:
        return Response(
            {'error': f'Cannot {action} a membership that is {membership.status}'},
            status=status.HTTP_400_BAD_REQUEST
        )

    now = timezone.now()
    if action == 'approve':
        membership.status = 'approved'
        membership.joined_at = now
        membership.approved_by = request.user
    elif action == 'reject':
        membership.status = 'rejected'
    elif action == 'suspend':
        end_date = request.data.get('suspension_end_date')
        membership.status = 'suspended'
        membership.suspended_by = request.user
        membership.suspension_reason = str(request.data.get('reason') or '')[:200]
        membership.suspension_end_date = parse_datetime(end_date) if end_date else None
    elif action == 'unsuspend':
        membership.status = 'approved'
        membership.suspended_by = None
        membership.suspension_reason = ''
        membership.suspension_end_date = None
    elif action == 'promote':
        if membership.role != 'member':
            return Response({'error': 'Member is already a moderator'}, status=status.HTTP_400_BAD_REQUEST)
        membership.role = 'moderator'
    elif action == 'demote':
        if membership.role == 'member':
            return Response({'error': 'Member is not a moderator'}, status=status.HTTP_400_BAD_REQUEST)
        membership.role = 'member'
    elif action == 'remove':
        membership.status = 'left'
        membership.role = 'member'
        membership.left_at = now

    membership.save()
    community.refresh_member_count()
    return None


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def membership_action(request, pk, action):
    """approve / reject / suspend / unsuspend / promote / demote a membership"""
    if action not in MEMBERSHIP_ACTIONS or action == 'remove':
        return Response({'error': f'Unknown action: {action}'}, status=status.HTTP_400_BAD_REQUEST)
    return _apply_membership_action(request, pk, action)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def membership_remove(request, pk):
    """Remove a member from the community"""
    response = _apply_membership_action(request, pk, 'remove')
    if response.status_code == status.HTTP_200_OK:
        return Response(status=status.HTTP_204_NO_CONTENT)
    return response


# Posts
def is_announcement_data(data):
    return bool(data.get('is_announcement') or data.get('post_type') == 'announcement')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def community_posts(request, pk):
    """List posts (pinned first, then newest) or create a post"""
    community = get_object_or_404(visible_communities(request.user), pk=pk)
    moderator = can_moderate(request.user, community)

    if request.method == 'GET':
        if not can_read_posts(request.user, community, moderator):
            return Response({'error': 'Only members can view posts of this community'}, status=status.HTTP_403_FORBIDDEN)
        posts = community.posts.select_related('author')
        requested_status = request.query_params.get('status')
        if requested_status in ('pending', 'rejected') and moderator:
            posts = posts.filter(status=requested_status)
        else:
            posts = posts.filter(status='approved')
        if request.query_params.get('announcements') in ('true', '1'):
            posts = posts.filter(is_announcement=True)
        posts = posts.order_by('-is_pinned', '-created_at')
        return Response(paginated_response_data(request, posts, CommunityPostSerializer))

    if not is_approved_member(request.user, community) and not moderator:
        return Response({'error': 'Only approved members can post'}, status=status.HTTP_403_FORBIDDEN)
    if not community.allow_member_posts and not moderator:
        return Response({'error': 'Only moderators can post in this community'}, status=status.HTTP_403_FORBIDDEN)

    serializer = CommunityPostSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        announcement = is_announcement_data(serializer.validated_data)
        if announcement and not moderator:
            return Response({'error': 'Only moderators can publish announcements'}, status=status.HTTP_403_FORBIDDEN)
        post_status = 'pending' if community.require_post_approval and not moderator else 'approved'
        with transaction.atomic():
            post = serializer.save(
                community=community, author=request.user, status=post_status,
                is_announcement=bool(announcement),
            )
            community.refresh_post_count()
        return Response(CommunityPostSerializer(post, context={'request': request}).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def post_detail(request, pk):
    """Retrieve, edit or delete a post"""
    post = get_object_or_404(
        CommunityPost.objects.select_related('community', 'author').exclude(status='deleted'),
        pk=pk, community__in=visible_communities(request.user)
    )
    community = post.community
    moderator = can_moderate(request.user, community)
    is_author = post.author_id == request.user.id

    if not (is_author or can_read_posts(request.user, community, moderator)):
        return Response({'error': 'Only members can view posts of this community'}, status=status.HTTP_403_FORBIDDEN)
    if post.status != 'approved' and not (moderator or is_author):
        return Response({'error': 'Post not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        CommunityPost.objects.filter(pk=post.pk).update(view_count=F('view_count') + 1)
        post.refresh_from_db(fields=['view_count'])
        return Response(CommunityPostSerializer(post, context={'request': request}).data)

    if request.method == 'DELETE':
        if not (is_author or moderator):
            return Response({'error': 'Only the author or moderators can delete this post'}, status=status.HTTP_403_FORBIDDEN)
        with transaction.atomic():
            post.status = 'deleted'
            post.save(update_fields=['status', 'updated_at'])
            community.refresh_post_count()
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not is_author:
        return Response({'error': 'Only the author can edit this post'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CommunityPostSerializer(post, data=request.data, partial=request.method == 'PATCH', context={'request': request})
    if serializer.is_valid():
        if is_announcement_data(serializer.validated_data) and not moderator:
            return Response({'error': 'Only moderators can publish announcements'}, status=status.HTTP_403_FORBIDDEN)
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _set_like(request, pk, liked):
    post = get_object_or_404(CommunityPost, pk=pk, status='approved', community__status='active')
    if not is_approved_member(request.user, post.community) and not can_moderate(request.user, post.community):
        return Response({'error': 'Only members can like posts'}, status=status.HTTP_403_FORBIDDEN)

    with transaction.atomic():
        if liked:
            PostLike.objects.get_or_create(post=post, user=request.user)
        else:
            PostLike.objects.filter(post=post, user=request.user).delete()
        post.like_count = post.likes.count()
        post.save(update_fields=['like_count'])
    return Response({'liked': liked, 'like_count': post.like_count})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def post_like(request, pk):
    """Like a post"""
    return _set_like(request, pk, True)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def post_unlike(request, pk):
    """Remove the current user's like"""
    return _set_like(request, pk, False)


POST_MODERATION_ACTIONS = ('pin', 'unpin', 'announce', 'approve', 'reject')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def post_moderate(request, pk, action):
    """pin / unpin / announce / approve / reject a post (moderators)"""
    if action not in POST_MODERATION_ACTIONS:
        return Response({'error': f'Unknown action: {action}'}, status=status.HTTP_400_BAD_REQUEST)
    post = get_object_or_404(
        CommunityPost.objects.select_related('community').exclude(status='deleted'),
        pk=pk, community__status='active'
    )
    community = post.community
    if not can_moderate(request.user, community):
        return Response({'error': 'Only moderators can moderate posts'}, status=status.HTTP_403_FORBIDDEN)

    if action in ('approve', 'reject') and post.status != 'pending':
        return Response({'error': f'Only pending posts can be {action}d'}, status=status.HTTP_400_BAD_REQUEST)
    if action in ('pin', 'unpin', 'announce') and post.status != 'approved':
        return Response({'error': 'Only approved posts can be pinned or announced'}, status=status.HTTP_400_BAD_REQUEST)

    if action == 'pin':
        post.is_pinned = True
    elif action == 'unpin':
        post.is_pinned = False
    elif action == 'announce':
        priority = request.data.get('priority', 'high')
        if priority not in dict(CommunityPost.PRIORITY_CHOICES):
            return Response({'error': f'Invalid priority: {priority}'}, status=status.HTTP_400_BAD_REQUEST)
        post.is_announcement = True
        post.priority = priority
    elif action == 'approve':
        post.status = 'approved'
    elif action == 'reject':
        post.status = 'rejected'
        post.moderation_note = str(request.data.get('reason') or '')[:200]
    post.moderated_by = request.user

    with transaction.atomic():
        post.save()
        community.refresh_post_count()

    create_audit_log(request=request, action='post_moderate', model_name='CommunityPost',
                     object_id=post.id, object_name=str(post), changes={'action': action},
                     college=community.college)
    return Response(CommunityPostSerializer(post, context={'request': request}).data)
