"""
Test suite for Communities module
Tests: Community CRUD, Join/Leave, Membership moderation, Posts, Likes
"""
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from alumnihub.communities.models import Community, CommunityMembership, CommunityPost
from alumnihub.core.models import AuditLog, User
from alumnihub.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class CommunityTestCase(TestCase):

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.owner = TestDataFactory.create_staff(self.college)
        self.alumnus = TestDataFactory.create_alumni(self.college)
        self.other_alumnus = TestDataFactory.create_alumni(self.college)
        self.community = TestDataFactory.create_community(self.owner, name='Data Science Circle')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.alumnus)


class CommunityCrudTests(CommunityTestCase):
    """Test community creation, listing and visibility"""

    def test_staff_creates_community(self):
        """Test staff create a community and become its admin"""
        self.client.authenticate_user(self.owner)
        response = self.client.post('/api/v1/communities/', {
            'name': 'Robotics Alumni', 'description': 'Builders', 'category': 'professional', 'type': 'closed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['member_count'], 1)
        self.assertEqual(response.data['my_membership']['role'], 'admin')
        self.assertEqual(response.data['college'], self.college.id)

    def test_alumni_cannot_create_community(self):
        """Test alumni are refused"""
        response = self.client.post('/api/v1/communities/', {
            'name': 'Mine', 'description': 'x'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_duplicate_name_rejected(self):
        """Test names are unique regardless of case"""
        self.client.authenticate_user(self.owner)
        response = self.client.post('/api/v1/communities/', {
            'name': 'data science circle', 'description': 'Again'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Community name already exists', str(response.data['name']))

    def test_hidden_communities_not_listed(self):
        """Test hidden communities are listed only to members"""
        TestDataFactory.create_community(self.owner, name='Secret Society', type='hidden')
        response = self.client.get('/api/v1/communities/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [c['name'] for c in response.data['results']]
        self.assertIn('Data Science Circle', names)
        self.assertNotIn('Secret Society', names)

    def test_hidden_community_detail_forbidden(self):
        """Test a hidden community's detail is refused to non-members"""
        hidden = TestDataFactory.create_community(self.owner, type='hidden')
        response = self.client.get(f'/api/v1/communities/{hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_college_not_visible(self):
        """Test communities are scoped to the user's college"""
        other_college = TestDataFactory.create_college()
        other_owner = TestDataFactory.create_staff(other_college)
        foreign = TestDataFactory.create_community(other_owner)
        response = self.client.get(f'/api/v1/communities/{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_owner_archives_community(self):
        """Test delete archives the community"""
        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/communities/{self.community.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.community.refresh_from_db()
        self.assertEqual(self.community.status, 'archived')

    def test_member_cannot_update(self):
        """Test plain members cannot edit the community"""
        TestDataFactory.add_member(self.community, self.alumnus)
        response = self.client.patch(f'/api/v1/communities/{self.community.id}/', {
            'description': 'Changed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MembershipTests(CommunityTestCase):
    """Test joining and leaving"""

    def test_join_open_community(self):
        """Test open communities approve immediately"""
        response = self.client.post(f'/api/v1/communities/{self.community.id}/join/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['membership']['status'], 'approved')
        self.community.refresh_from_db()
        self.assertEqual(self.community.member_count, 2)
        self.assertTrue(AuditLog.objects.filter(action='membership_join').exists())

    def test_join_closed_community(self):
        """Test closed communities create a pending request"""
        closed = TestDataFactory.create_community(self.owner, type='closed')
        response = self.client.post(f'/api/v1/communities/{closed.id}/join/')
        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(response.data['membership']['status'], 'pending')
        closed.refresh_from_db()
        self.assertEqual(closed.member_count, 1)

    def test_join_twice(self):
        """Test duplicate join"""
        TestDataFactory.add_member(self.community, self.alumnus)
        response = self.client.post(f'/api/v1/communities/{self.community.id}/join/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_suspended_cannot_rejoin(self):
        """Test suspended members cannot join again"""
        TestDataFactory.add_member(self.community, self.alumnus, status='suspended')
        response = self.client.post(f'/api/v1/communities/{self.community.id}/join/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_rejoin_after_leaving(self):
        """Test a member who left reuses their membership row"""
        membership = TestDataFactory.add_member(self.community, self.alumnus, status='left')
        response = self.client.post(f'/api/v1/communities/{self.community.id}/join/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['membership']['id'], membership.id)

    def test_leave(self):
        """Test leaving updates the member count"""
        TestDataFactory.add_member(self.community, self.alumnus)
        response = self.client.post(f'/api/v1/communities/{self.community.id}/leave/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.community.refresh_from_db()
        self.assertEqual(self.community.member_count, 1)

    def test_owner_cannot_leave(self):
        """Test the owner cannot leave their community"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/communities/{self.community.id}/leave/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_communities(self):
        """Test the list of communities the user belongs to"""
        TestDataFactory.add_member(self.community, self.alumnus)
        TestDataFactory.create_community(self.owner)
        response = self.client.get('/api/v1/communities/mine/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['id'] for c in response.data], [self.community.id])

    def test_invite_member(self):
        """Test moderators add members directly"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/communities/{self.community.id}/invite/', {
            'user_id': self.alumnus.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'approved')

    def test_invite_other_college_user(self):
        """Test invitees must belong to the community's college"""
        stranger = TestDataFactory.create_alumni(TestDataFactory.create_college())
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/communities/{self.community.id}/invite/', {
            'user_id': stranger.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class MembershipModerationTests(CommunityTestCase):
    """Test approve/suspend/promote actions"""

    def setUp(self):
        super().setUp()
        self.closed = TestDataFactory.create_community(self.owner, type='closed')
        self.request = TestDataFactory.add_member(self.closed, self.alumnus, status='pending')
        self.moderator = TestDataFactory.create_alumni(self.college)
        self.moderator_membership = TestDataFactory.add_member(self.closed, self.moderator, role='moderator')

    def test_list_requests(self):
        """Test moderators see pending requests"""
        self.client.authenticate_user(self.moderator)
        response = self.client.get(f'/api/v1/communities/{self.closed.id}/requests/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['id'] for m in response.data], [self.request.id])

    def test_approve_request(self):
        """Test approving a pending request"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/memberships/{self.request.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.closed.refresh_from_db()
        self.assertEqual(self.closed.member_count, 3)

    def test_approve_withdrawn_request(self):
        """Test the stored status is checked, not the one the moderator last saw"""
        self.client.post(f'/api/v1/communities/{self.closed.id}/leave/')
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/memberships/{self.request.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.closed.refresh_from_db()
        self.assertEqual(self.closed.member_count, 2)

    def test_member_count_tracks_changes(self):
        """Test member_count equals the approved memberships after each change"""
        self.client.authenticate_user(self.owner)
        self.client.post(f'/api/v1/memberships/{self.request.id}/approve/')
        self.client.post(f'/api/v1/memberships/{self.moderator_membership.id}/suspend/')
        self.closed.refresh_from_db()
        approved = self.closed.memberships.filter(status='approved').count()
        self.assertEqual(approved, 2)
        self.assertEqual(self.closed.member_count, approved)

        log = AuditLog.objects.filter(action='membership_approve').latest('id')
        self.assertEqual(log.changes['from']['status'], 'pending')
        self.assertEqual(log.changes['to']['status'], 'approved')

    def test_member_cannot_approve(self):
        """Test plain members cannot moderate"""
        self.client.authenticate_user(self.other_alumnus)
        response = self.client.post(f'/api/v1/memberships/{self.request.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_action(self):
        """Test unknown membership actions"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/memberships/{self.request.id}/banish/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_suspend_self(self):
        """Test moderators cannot suspend themselves"""
        self.client.authenticate_user(self.moderator)
        response = self.client.post(f'/api/v1/memberships/{self.moderator_membership.id}/suspend/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_suspend_owner(self):
        """Test the owner is protected"""
        owner_membership = CommunityMembership.objects.get(community=self.closed, user=self.owner)
        self.client.authenticate_user(self.moderator)
        response = self.client.post(f'/api/v1/memberships/{owner_membership.id}/suspend/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_suspend_and_unsuspend(self):
        """Test suspending then restoring a member"""
        member = TestDataFactory.add_member(self.closed, self.other_alumnus)
        self.client.authenticate_user(self.moderator)
        response = self.client.post(f'/api/v1/memberships/{member.id}/suspend/', {
            'reason': 'Spam'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'suspended')
        self.assertEqual(response.data['suspension_reason'], 'Spam')
        response = self.client.post(f'/api/v1/memberships/{member.id}/unsuspend/')
        self.assertEqual(response.data['status'], 'approved')

    def test_promote_requires_admin(self):
        """Test moderators cannot change roles"""
        member = TestDataFactory.add_member(self.closed, self.other_alumnus)
        self.client.authenticate_user(self.moderator)
        response = self.client.post(f'/api/v1/memberships/{member.id}/promote/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/memberships/{member.id}/promote/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'moderator')

    def test_moderator_cannot_remove_moderator(self):
        """Test only admins act on moderators"""
        other_mod = TestDataFactory.add_member(self.closed, self.other_alumnus, role='moderator')
        self.client.authenticate_user(self.moderator)
        response = self.client.delete(f'/api/v1/memberships/{other_mod.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_remove_member(self):
        """Test removing a member"""
        member = TestDataFactory.add_member(self.closed, self.other_alumnus)
        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/memberships/{member.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        member.refresh_from_db()
        self.assertEqual(member.status, 'left')

    def test_wrong_source_status(self):
        """Test approving an already approved membership"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/memberships/{self.moderator_membership.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PostTests(CommunityTestCase):
    """Test posts, moderation and likes"""

    def setUp(self):
        super().setUp()
        TestDataFactory.add_member(self.community, self.alumnus)

    def test_member_creates_post(self):
        """Test approved members post directly"""
        response = self.client.post(f'/api/v1/communities/{self.community.id}/posts/', {
            'title': 'Hello', 'content': 'First post'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'approved')
        self.community.refresh_from_db()
        self.assertEqual(self.community.post_count, 1)

    def test_non_member_cannot_post(self):
        """Test non-members are refused"""
        self.client.authenticate_user(self.other_alumnus)
        response = self.client.post(f'/api/v1/communities/{self.community.id}/posts/', {
            'content': 'Hi'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_member_cannot_announce(self):
        """Test announcements are for moderators"""
        response = self.client.post(f'/api/v1/communities/{self.community.id}/posts/', {
            'content': 'Big news', 'is_announcement': True
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_post_approval_flow(self):
        """Test pending posts are approved by moderators"""
        self.community.require_post_approval = True
        self.community.save()
        response = self.client.post(f'/api/v1/communities/{self.community.id}/posts/', {
            'content': 'Needs review'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.community.refresh_from_db()
        self.assertEqual(self.community.post_count, 0)

        post_id = response.data['id']
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/posts/{post_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.community.refresh_from_db()
        self.assertEqual(self.community.post_count, 1)

    def test_pinned_posts_first(self):
        """Test pinned posts lead the listing"""
        older = CommunityPost.objects.create(community=self.community, author=self.alumnus, content='Old')
        CommunityPost.objects.create(community=self.community, author=self.alumnus, content='New')
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/posts/{older.id}/pin/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get(f'/api/v1/communities/{self.community.id}/posts/')
        self.assertEqual(response.data['results'][0]['id'], older.id)

    def test_like_and_unlike(self):
        """Test likes are counted once per user"""
        post = CommunityPost.objects.create(community=self.community, author=self.owner, content='Like me')
        self.client.post(f'/api/v1/posts/{post.id}/like/')
        response = self.client.post(f'/api/v1/posts/{post.id}/like/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['like_count'], 1)
        response = self.client.post(f'/api/v1/posts/{post.id}/unlike/')
        self.assertEqual(response.data['like_count'], 0)

    def test_author_deletes_post(self):
        """Test soft delete by the author"""
        post = CommunityPost.objects.create(community=self.community, author=self.alumnus, content='Oops')
        self.community.refresh_post_count()
        response = self.client.delete(f'/api/v1/posts/{post.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        post.refresh_from_db()
        self.assertEqual(post.status, 'deleted')
        self.community.refresh_from_db()
        self.assertEqual(self.community.post_count, 0)

    def test_member_cannot_moderate(self):
        """Test pin is refused to plain members"""
        post = CommunityPost.objects.create(community=self.community, author=self.alumnus, content='Mine')
        response = self.client.post(f'/api/v1/posts/{post.id}/pin/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_closed_community_posts_members_only(self):
        """Test non-members cannot read posts of a closed community"""
        closed = TestDataFactory.create_community(self.owner, type='closed')
        response = self.client.get(f'/api/v1/communities/{closed.id}/posts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_closed_community_post_detail_members_only(self):
        """Test a single post of a closed community is refused to non-members"""
        closed = TestDataFactory.create_community(self.owner, type='closed')
        post = CommunityPost.objects.create(community=closed, author=self.owner, content='Members only')
        response = self.client.get(f'/api/v1/posts/{post.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        TestDataFactory.add_member(closed, self.alumnus)
        response = self.client.get(f'/api/v1/posts/{post.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['content'], 'Members only')

    def test_hidden_community_post_not_found(self):
        """Test posts of hidden communities do not leak to non-members or other colleges"""
        hidden = TestDataFactory.create_community(self.owner, type='hidden')
        post = CommunityPost.objects.create(community=hidden, author=self.owner, content='secret plans')
        response = self.client.get(f'/api/v1/posts/{post.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        outsider = TestDataFactory.create_alumni(TestDataFactory.create_college())
        self.client.authenticate_user(outsider)
        response = self.client.get(f'/api/v1/posts/{post.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_other_college_post_not_found(self):
        """Test posts of open communities are scoped to the college"""
        post = CommunityPost.objects.create(community=self.community, author=self.owner, content='Campus news')
        outsider = TestDataFactory.create_alumni(TestDataFactory.create_college())
        self.client.authenticate_user(outsider)
        response = self.client.get(f'/api/v1/posts/{post.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_member_cannot_edit_post_into_announcement(self):
        """Test the announcement rule also applies when editing"""
        response = self.client.post(f'/api/v1/communities/{self.community.id}/posts/', {
            'content': 'Big news', 'post_type': 'announcement'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        post = CommunityPost.objects.create(community=self.community, author=self.alumnus, content='Plain')
        response = self.client.patch(f'/api/v1/posts/{post.id}/', {'post_type': 'announcement'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.patch(f'/api/v1/posts/{post.id}/', {'is_announcement': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        post.refresh_from_db()
        self.assertEqual(post.post_type, 'text')
        self.assertFalse(post.is_announcement)

    def test_view_count_increments(self):
        """Test each read of a post is counted"""
        post = CommunityPost.objects.create(community=self.community, author=self.owner, content='Read me')
        self.client.get(f'/api/v1/posts/{post.id}/')
        response = self.client.get(f'/api/v1/posts/{post.id}/')
        self.assertEqual(response.data['view_count'], 2)
        post.refresh_from_db()
        self.assertEqual(post.view_count, 2)


class CommunityModelTests(TestCase):
    """Test community counters"""

    def test_post_count_counts_approved(self):
        """Test pending and rejected posts are not counted"""
        college = TestDataFactory.create_college()
        owner = TestDataFactory.create_staff(college, role=User.ROLE_COLLEGE_ADMIN)
        community = TestDataFactory.create_community(owner)
        CommunityPost.objects.create(community=community, author=owner, content='a')
        CommunityPost.objects.create(community=community, author=owner, content='b', status='pending')
        CommunityPost.objects.create(community=community, author=owner, content='c', status='rejected')
        community.refresh_post_count()
        self.assertEqual(Community.objects.get(pk=community.pk).post_count, 1)

    def test_repair_command(self):
        """Test the repair command resets drifted counters"""
        college = TestDataFactory.create_college()
        owner = TestDataFactory.create_staff(college)
        community = TestDataFactory.create_community(owner)
        CommunityPost.objects.create(community=community, author=owner, content='a')
        Community.objects.filter(pk=community.pk).update(member_count=9, post_count=0)

        call_command('repair_community_counts', '--dry-run', stdout=StringIO())
        community.refresh_from_db()
        self.assertEqual(community.member_count, 9)

        out = StringIO()
        call_command('repair_community_counts', stdout=out)
        community.refresh_from_db()
        self.assertEqual(community.member_count, 1)
        self.assertEqual(community.post_count, 1)
        self.assertIn('Repaired 1 communities', out.getvalue())
