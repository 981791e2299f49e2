"""
Test suite for Alumni module
Tests: Directory, Profile resolution, Alumni 360, Notes, Issues, Flags,
Communications, Engagement, Analytics, Messages
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from alumnihub.alumni.engagement import calculate_engagement_score, engagement_level
from alumnihub.alumni.models import AlumniFlag, AlumniIssue, AlumniNote, AlumniProfile, Message
from alumnihub.core.models import AuditLog, User
from alumnihub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from alumnihub.mentoring.models import MentorshipCommunication


class AlumniTestCase(TestCase):
    """Shared fixtures: one college with staff, an admin and an alumnus"""

    def setUp(self):
        cache.clear()
        self.college = TestDataFactory.create_college()
        self.staff = TestDataFactory.create_staff(self.college)
        self.admin = TestDataFactory.create_staff(self.college, role=User.ROLE_COLLEGE_ADMIN)
        self.alumnus = TestDataFactory.create_alumni(self.college, first_name='Meera', last_name='Iyer')
        self.profile = self.alumnus.alumni_profile
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.staff)

    def url(self, suffix=''):
        return f'/api/v1/alumni/{self.profile.id}/{suffix}'


class AlumniDirectoryTests(AlumniTestCase):
    """Test alumni directory and profile endpoints"""

    def test_list_alumni(self):
        """Test staff can list alumni of their college"""
        TestDataFactory.create_alumni(TestDataFactory.create_college())
        response = self.client.get('/api/v1/alumni/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], self.profile.id)

    def test_search_alumni(self):
        """Test directory search by name"""
        TestDataFactory.create_alumni(self.college, first_name='Karan')
        response = self.client.get('/api/v1/alumni/?search=meera')
        self.assertEqual(response.data['count'], 1)

    def test_alumni_cannot_list_directory(self):
        """Test the directory is staff only"""
        self.client.authenticate_user(self.alumnus)
        response = self.client.get('/api/v1/alumni/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_profile(self):
        """Test staff can update an alumni profile"""
        response = self.client.patch(self.url(), {'current_company': 'Acme Corp'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.current_company, 'Acme Corp')

    def test_other_college_forbidden(self):
        """Test staff of another college cannot open the profile"""
        other_staff = TestDataFactory.create_staff(TestDataFactory.create_college())
        self.client.authenticate_user(other_staff)
        response = self.client.get(self.url())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_own_profile(self):
        """Test an alumnus can read and edit their own profile"""
        self.client.authenticate_user(self.alumnus)
        response = self.client.patch('/api/v1/alumni/me/', {'bio': 'Backend engineer'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['bio'], 'Backend engineer')

    def test_own_profile_requires_alumni_role(self):
        """Test staff have no alumni profile"""
        response = self.client.get('/api/v1/alumni/me/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProfileResolutionTests(TestCase):
    """Test resolving route ids that are user ids"""

    def setUp(self):
        cache.clear()
        self.college = TestDataFactory.create_college()
        self.staff = TestDataFactory.create_staff(self.college)
        self.alumnus = TestDataFactory.create_alumni(self.college, with_profile=False)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.staff)

    def test_user_id_creates_minimal_profile(self):
        """Test an alumni user without a profile gets one"""
        response = self.client.get(f'/api/v1/alumni/{self.alumnus.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(AlumniProfile.objects.filter(user=self.alumnus).exists())

    def test_non_alumni_user(self):
        """Test addressing a non-alumni user"""
        response = self.client.get(f'/api/v1/alumni/{self.staff.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_id(self):
        """Test an id matching neither profile nor user"""
        response = self.client.get('/api/v1/alumni/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class Alumni360Tests(AlumniTestCase):
    """Test the aggregated alumni view"""

    def test_360_sections(self):
        """Test the 360 view contains every section"""
        TestDataFactory.create_donation(self.alumnus)
        AlumniNote.objects.create(alumni=self.profile, staff=self.staff, content='Met at reunion')
        response = self.client.get(self.url('360/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        for key in ('profile', 'notes', 'issues', 'flags', 'donations', 'events', 'engagement', 'communication_history'):
            self.assertIn(key, response.data)
        self.assertEqual(len(response.data['notes']), 1)
        self.assertEqual(len(response.data['donations']), 1)
        self.assertEqual(response.data['engagement']['donation_count'], 1)

    def test_private_notes_hidden_from_other_staff(self):
        """Test private notes are only shown to their author and admins"""
        AlumniNote.objects.create(alumni=self.profile, staff=self.admin, content='Sensitive', is_private=True)
        response = self.client.get(self.url('360/'))
        self.assertEqual(len(response.data['notes']), 0)
        self.client.authenticate_user(self.admin)
        response = self.client.get(self.url('360/'))
        self.assertEqual(len(response.data['notes']), 1)


class AlumniNoteTests(AlumniTestCase):
    """Test staff notes"""

    def test_create_note(self):
        """Test adding a note writes an audit entry"""
        response = self.client.post(self.url('notes/'), {'content': 'Called about reunion', 'category': 'call'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['staff']['id'], self.staff.id)
        self.assertTrue(AuditLog.objects.filter(model_name='AlumniNote', action='create').exists())

    def test_blank_note_rejected(self):
        """Test whitespace-only notes are rejected"""
        response = self.client.post(self.url('notes/'), {'content': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_author_edits_note(self):
        """Test another staff member cannot edit a note"""
        note = AlumniNote.objects.create(alumni=self.profile, staff=self.admin, content='Original')
        response = self.client.patch(self.url(f'notes/{note.id}/'), {'content': 'Changed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_deletes_note(self):
        """Test admins can delete any note"""
        note = AlumniNote.objects.create(alumni=self.profile, staff=self.staff, content='Remove me')
        self.client.authenticate_user(self.admin)
        response = self.client.delete(self.url(f'notes/{note.id}/'))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(AlumniNote.objects.filter(pk=note.id).exists())


class AlumniIssueTests(AlumniTestCase):
    """Test issue tracking and responses"""

    def create_issue(self, **kwargs):
        return AlumniIssue.objects.create(
            alumni=self.profile, raised_by=self.staff, title='Transcript request',
            description='Needs a copy of transcript', **kwargs
        )

    def test_create_issue(self):
        """Test raising an issue"""
        response = self.client.post(self.url('issues/'), {
            'title': 'Certificate correction',
            'description': 'Name misspelt on degree certificate',
            'priority': 'high',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'open')
        self.assertIsNone(response.data['resolved_at'])

    def test_resolving_sets_resolution_fields(self):
        """Test moving to resolved stamps resolved_at and resolved_by"""
        issue = self.create_issue()
        response = self.client.patch(self.url(f'issues/{issue.id}/'), {'status': 'resolved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['resolved_at'])
        self.assertEqual(response.data['resolved_by']['id'], self.staff.id)

    def test_reopening_clears_resolution_fields(self):
        """Test reopening clears resolution fields"""
        issue = self.create_issue(status='resolved', resolved_at=timezone.now(), resolved_by=self.staff)
        response = self.client.patch(self.url(f'issues/{issue.id}/'), {'status': 'open'}, format='json')
        self.assertIsNone(response.data['resolved_at'])
        self.assertIsNone(response.data['resolved_by'])

    def test_add_edit_and_delete_response(self):
        """Test response management through issue updates"""
        issue = self.create_issue()
        response = self.client.patch(self.url(f'issues/{issue.id}/'), {'response': 'Sent to registrar'}, format='json')
        self.assertEqual(len(response.data['responses']), 1)
        response_id = response.data['responses'][0]['id']

        response = self.client.patch(self.url(f'issues/{issue.id}/'), {
            'response': 'Sent to registrar office', 'response_id': response_id
        }, format='json')
        self.assertEqual(response.data['responses'][0]['content'], 'Sent to registrar office')

        response = self.client.patch(self.url(f'issues/{issue.id}/'), {'response_id_to_delete': response_id}, format='json')
        self.assertEqual(response.data['responses'], [])

    def test_cannot_edit_others_response(self):
        """Test a response can only be edited by its author or an admin"""
        issue = self.create_issue()
        reply = issue.responses.create(staff=self.admin, content='Admin reply')
        response = self.client.patch(self.url(f'issues/{issue.id}/'), {
            'response': 'Hijacked', 'response_id': reply.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_filter_issues_by_status(self):
        """Test issue list status filter"""
        self.create_issue()
        self.create_issue(status='closed')
        response = self.client.get(self.url('issues/?status=closed'))
        self.assertEqual(len(response.data), 1)

    def test_only_creator_or_admin_deletes(self):
        """Test issue deletion rights"""
        issue = AlumniIssue.objects.create(alumni=self.profile, raised_by=self.admin, title='Admin issue', description='x')
        response = self.client.delete(self.url(f'issues/{issue.id}/'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AlumniFlagTests(AlumniTestCase):
    """Test flag upsert and removal"""

    def test_set_flag_then_update(self):
        """Test setting a flag twice updates it in place"""
        response = self.client.post(self.url('flags/'), {'flag_type': 'vip', 'flag_value': 'true'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.post(self.url('flags/'), {'flag_type': 'vip', 'flag_value': 'false'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(AlumniFlag.objects.filter(alumni=self.profile).count(), 1)
        self.assertEqual(AlumniFlag.objects.get(alumni=self.profile).flag_value, 'false')

    def test_flag_requires_type_and_value(self):
        """Test missing flag fields"""
        response = self.client.post(self.url('flags/'), {'flag_type': 'vip'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_flag(self):
        """Test removing a flag by type"""
        AlumniFlag.objects.create(alumni=self.profile, flag_type='do_not_contact', flag_value='email', created_by=self.staff)
        response = self.client.delete(self.url('flags/do_not_contact/'))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(AuditLog.objects.filter(action='flag_remove').exists())


class CommunicationTests(AlumniTestCase):
    """Test merged communication history"""

    def setUp(self):
        super().setUp()
        Message.objects.create(sender=self.staff, recipient=self.alumnus, subject='Reunion', content='Save the date')
        MentorshipCommunication.objects.create(
            from_user=self.alumnus, to_user=self.staff, subject='Mentoring', body='Happy to mentor'
        )

    def test_history_merges_sources(self):
        """Test messages and mentorship communications are merged"""
        response = self.client.get(self.url('communications/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual({item['type'] for item in response.data['results']}, {'message', 'mentorship'})

    def test_filter_by_type(self):
        """Test type filter"""
        response = self.client.get(self.url('communications/?type=mentorship'))
        self.assertEqual(response.data['count'], 1)

    def test_search(self):
        """Test free-text search over subject and content"""
        response = self.client.get(self.url('communications/'), {'search': 'Save the date'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['type'], 'message')


class EngagementTests(AlumniTestCase):
    """Test engagement scoring"""

    def test_score_components(self):
        """Test score weights"""
        now = timezone.now()
        self.assertEqual(calculate_engagement_score(0, Decimal('0'), 0, 0, None, now=now), 0)
        self.assertEqual(calculate_engagement_score(1, Decimal('500'), 0, 0, None, now=now), 30)
        self.assertEqual(calculate_engagement_score(2, Decimal('20000'), 0, 0, None, now=now), 50)
        self.assertEqual(calculate_engagement_score(1, Decimal('500'), 1, 1, now - timedelta(days=3), now=now), 70)

    def test_score_capped_at_100(self):
        """Test the score never exceeds 100"""
        now = timezone.now()
        self.assertEqual(calculate_engagement_score(5, Decimal('50000'), 10, 4, now, now=now), 100)

    def test_stale_interaction_not_counted(self):
        """Test interactions older than the recency window earn nothing"""
        now = timezone.now()
        self.assertEqual(calculate_engagement_score(0, Decimal('0'), 0, 1, now - timedelta(days=200), now=now), 10)

    def test_recency_window_excludes_boundary(self):
        """Test an interaction exactly 90 days old is no longer recent"""
        now = timezone.now()
        self.assertEqual(calculate_engagement_score(0, Decimal('0'), 0, 0, now - timedelta(days=90), now=now), 0)
        self.assertEqual(calculate_engagement_score(0, Decimal('0'), 0, 0, now - timedelta(days=89), now=now), 5)

    def test_levels(self):
        """Test level thresholds"""
        self.assertEqual(engagement_level(80), 'High')
        self.assertEqual(engagement_level(50), 'Medium')
        self.assertEqual(engagement_level(5), 'Low')
        self.assertEqual(engagement_level(0), 'Inactive')

    def test_engagement_endpoint_counts_completed_donations(self):
        """Test only completed donations count"""
        TestDataFactory.create_donation(self.alumnus, amount=Decimal('1500.00'))
        TestDataFactory.create_donation(self.alumnus, amount=Decimal('9000.00'), payment_status='pending')
        response = self.client.get(self.url('engagement/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['donation_count'], 1)
        self.assertEqual(response.data['total_donated'], Decimal('1500.00'))
        self.assertEqual(response.data['engagement_score'], 30)
        self.assertEqual(response.data['engagement_level'], 'Low')

    def test_new_donation_invalidates_cache(self):
        """Test cached engagement is refreshed after a donation"""
        self.client.get(self.url('engagement/'))
        TestDataFactory.create_donation(self.alumnus)
        response = self.client.get(self.url('engagement/'))
        self.assertEqual(response.data['donation_count'], 1)


class AnalyticsTests(AlumniTestCase):
    """Test per-alumnus analytics"""

    def test_analytics_breakdown(self):
        """Test summary stats and activity breakdown"""
        AlumniNote.objects.create(alumni=self.profile, staff=self.staff, content='Note')
        AlumniIssue.objects.create(alumni=self.profile, raised_by=self.staff, title='Issue', description='Open issue')
        TestDataFactory.create_donation(self.alumnus)
        response = self.client.get(self.url('analytics/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary_stats']['total_activities'], 3)
        self.assertEqual(response.data['summary_stats']['pending_items'], 1)
        self.assertEqual(response.data['summary_stats']['active_interactions'], 3)
        breakdown = {row['type']: row for row in response.data['activity_breakdown']}
        self.assertEqual(set(breakdown), {'notes', 'issues', 'donations'})
        self.assertEqual(breakdown['notes']['percentage'], 33.3)
        self.assertEqual(response.data['engagement_status']['level'], 'Low')

    def test_analytics_without_activity(self):
        """Test an inactive alumnus has an empty breakdown"""
        response = self.client.get(self.url('analytics/'))
        self.assertEqual(response.data['summary_stats']['total_activities'], 0)
        self.assertEqual(response.data['activity_breakdown'], [])
        self.assertEqual(response.data['engagement_status']['level'], 'Inactive')


class MessageTests(AlumniTestCase):
    """Test direct messages"""

    def test_send_and_read_message(self):
        """Test sending a message and marking it read"""
        response = self.client.post('/api/v1/messages/', {
            'recipient': self.alumnus.id, 'subject': 'Hello', 'content': 'Welcome back'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        message_id = response.data['id']

        self.client.authenticate_user(self.alumnus)
        inbox = self.client.get('/api/v1/messages/')
        self.assertEqual(inbox.data['count'], 1)
        response = self.client.post(f'/api/v1/messages/{message_id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_read'])

    def test_cannot_message_self(self):
        """Test sending a message to yourself"""
        response = self.client.post('/api/v1/messages/', {
            'recipient': self.staff.id, 'content': 'Note to self'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_message_other_college(self):
        """Test messages stay inside the college"""
        outsider = TestDataFactory.create_alumni(TestDataFactory.create_college())
        response = self.client.post('/api/v1/messages/', {
            'recipient': outsider.id, 'content': 'Hello'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_recipient_marks_read(self):
        """Test the sender cannot mark a message read"""
        message = Message.objects.create(sender=self.staff, recipient=self.alumnus, content='Hi')
        response = self.client.post(f'/api/v1/messages/{message.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_sent_box(self):
        """Test listing sent messages"""
        Message.objects.create(sender=self.staff, recipient=self.alumnus, content='Hi')
        response = self.client.get('/api/v1/messages/?box=sent')
        self.assertEqual(response.data['count'], 1)
