"""
Test suite for Mentoring module
Tests: Programs, Registrations, Approval workflow, History, Statistics, Notifications, Matching
"""
from datetime import date, timedelta
from io import StringIO

from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from alumnihub.core.models import AuditLog, User
from alumnihub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from alumnihub.mentoring.matching import (
    expire_pending_matches, industry_score, preference_score, programme_score, respond_to_match, run_matching,
    skills_score,
)
from alumnihub.mentoring.models import ApprovalHistory, MentorMenteeMatch, MentorRegistration
from alumnihub.mentoring.notifications import build_decision_email
from alumnihub.mentoring.workflow import WorkflowError, deadline_passed, transition_registration


class MentoringTestCase(TestCase):

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.staff = TestDataFactory.create_staff(self.college)
        self.alumnus = TestDataFactory.create_alumni(self.college)
        self.student = TestDataFactory.create_user(role=User.ROLE_STUDENT, college=self.college)
        self.program = TestDataFactory.create_program(self.college, name='Career Launchpad')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.alumnus)


class ProgramTests(MentoringTestCase):
    """Test mentoring program management"""

    def program_payload(self, **overrides):
        today = timezone.localdate()
        data = {
            'name': 'Founders Circle',
            'category': 'Entrepreneurship',
            'areas_of_mentoring': ['Fundraising', 'Hiring'],
            'registration_end_date_mentor': (today + timedelta(days=20)).isoformat(),
            'registration_end_date_mentee': (today + timedelta(days=25)).isoformat(),
            'matching_end_date': (today + timedelta(days=40)).isoformat(),
            'status': 'published',
        }
        data.update(overrides)
        return data

    def test_staff_creates_program(self):
        """Test staff create a program in their college"""
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/programs/', self.program_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['college'], self.college.id)
        self.assertEqual(response.data['mentor_count'], 0)

    def test_alumni_cannot_create_program(self):
        """Test alumni are refused"""
        response = self.client.post('/api/v1/programs/', self.program_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_registration_must_close_before_matching(self):
        """Test registration end dates cannot pass the matching deadline"""
        self.client.authenticate_user(self.staff)
        late = (timezone.localdate() + timedelta(days=60)).isoformat()
        response = self.client.post('/api/v1/programs/', self.program_payload(
            registration_end_date_mentor=late
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('registration_end_date_mentor', response.data)

    def test_drafts_hidden_from_alumni(self):
        """Test alumni only see published programs"""
        TestDataFactory.create_program(self.college, name='Hidden Draft', status='draft')
        response = self.client.get('/api/v1/programs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['results']], ['Career Launchpad'])

        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/programs/')
        self.assertEqual(response.data['count'], 2)

    def test_other_college_program_not_found(self):
        """Test programs are scoped to the user's college"""
        foreign = TestDataFactory.create_program(TestDataFactory.create_college())
        response = self.client.get(f'/api/v1/programs/{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class RegistrationTests(MentoringTestCase):
    """Test mentor and mentee registration"""

    def mentor_url(self, program=None):
        return f'/api/v1/programs/{(program or self.program).id}/mentor-registrations/'

    def mentee_url(self, program=None):
        return f'/api/v1/programs/{(program or self.program).id}/mentee-registrations/'

    def test_mentor_registration(self):
        """Test an alumnus registers as mentor"""
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(
            current_position='Engineering Manager', current_company='Acme'
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'submitted')
        self.assertEqual(response.data['user']['id'], self.alumnus.id)
        self.assertEqual(response.data['program'], self.program.id)
        self.assertTrue(AuditLog.objects.filter(model_name='MentorRegistration', action='create').exists())

    def test_only_alumni_register_as_mentor(self):
        """Test students cannot register as mentors"""
        self.client.authenticate_user(self.student)
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_mentee_registration(self):
        """Test a student registers as mentee"""
        self.client.authenticate_user(self.student)
        response = self.client.post(self.mentee_url(), TestDataFactory.registration_payload(
            student_id='CS-2024-17', class_of=date.today().year + 1
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['student_id'], 'CS-2024-17')

    def test_duplicate_mentor_registration(self):
        """Test one mentor registration per program and user"""
        TestDataFactory.create_mentor_registration(self.program, self.alumnus)
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_mentee_email(self):
        """Test mentee duplicates are detected by email"""
        TestDataFactory.create_mentee_registration(self.program, personal_email='asha@example.com')
        response = self.client.post(self.mentee_url(), TestDataFactory.registration_payload(
            personal_email='ASHA@example.com'
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_registration_closed(self):
        """Test registration after the program's end date"""
        closed = TestDataFactory.create_program(self.college, days_open=-1)
        response = self.client.post(self.mentor_url(closed), TestDataFactory.registration_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_draft_program_not_found(self):
        """Test alumni cannot register for draft programs"""
        draft = TestDataFactory.create_program(self.college, status='draft')
        response = self.client.post(self.mentor_url(draft), TestDataFactory.registration_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_draft_program_refused_to_staff(self):
        """Test draft programs do not accept registrations"""
        draft = TestDataFactory.create_program(self.college, status='draft')
        self.client.authenticate_user(self.staff)
        response = self.client.post(self.mentee_url(draft), TestDataFactory.registration_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_too_young(self):
        """Test the minimum age"""
        born = (date.today() - timedelta(days=365 * 15)).isoformat()
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(
            date_of_birth=born
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('date_of_birth', response.data)

    def test_class_of_range(self):
        """Test class of year bounds"""
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(class_of=1900), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('class_of', response.data)

    def test_class_of_upper_bound_follows_local_date(self):
        """Test class of may be at most five years after the current local year"""
        limit = timezone.localdate().year + 5
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(class_of=limit + 1), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('class_of', response.data)
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(class_of=limit), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_area_not_offered(self):
        """Test areas must be offered by the program"""
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(
            areas_of_mentoring=['Astrology']
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('areas_of_mentoring', response.data)

    def test_areas_required(self):
        """Test at least one area"""
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(
            areas_of_mentoring=[]
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_mobile(self):
        """Test mobile number format"""
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(
            mobile_number='98-76'
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('mobile_number', response.data)

    def test_mentee_title_choices(self):
        """Test mentees cannot use the Dr title"""
        self.client.authenticate_user(self.student)
        response = self.client.post(self.mentee_url(), TestDataFactory.registration_payload(title='Dr'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('title', response.data)

    def test_blank_names(self):
        """Test names are required after trimming"""
        response = self.client.post(self.mentor_url(), TestDataFactory.registration_payload(
            first_name='   '
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_registrations(self):
        """Test the current user's registrations"""
        TestDataFactory.create_mentor_registration(self.program, self.alumnus)
        TestDataFactory.create_mentee_registration(self.program, self.alumnus)
        response = self.client.get('/api/v1/registrations/mine/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['mentor_registrations']), 1)
        self.assertEqual(len(response.data['mentee_registrations']), 1)


class ApprovalWorkflowTests(MentoringTestCase):
    """Test approve/reject/reconsider/disapprove"""

    def setUp(self):
        super().setUp()
        self.registration = TestDataFactory.create_mentor_registration(
            self.program, self.alumnus, personal_email='ravi@example.com'
        )
        self.client.authenticate_user(self.staff)

    def action_url(self, action, registration=None, kind='mentor'):
        return f'/api/v1/approvals/{kind}/{(registration or self.registration).id}/{action}/'

    def test_approve(self):
        """Test approving a submitted registration"""
        response = self.client.post(self.action_url('approve'), {'notes': 'Strong profile'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['registration']['status'], 'approved')
        self.assertEqual(response.data['history']['from_status'], 'submitted')
        self.assertEqual(response.data['history']['notes'], 'Strong profile')
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.approved_by, self.staff)
        self.assertIsNotNone(self.registration.approved_at)
        self.assertTrue(AuditLog.objects.filter(action='registration_approve').exists())

    def test_approve_twice(self):
        """Test a decided registration cannot be approved again"""
        self.client.post(self.action_url('approve'))
        response = self.client.post(self.action_url('approve'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(ApprovalHistory.objects.count(), 1)

    def test_reject_requires_reason(self):
        """Test a short reason is refused"""
        response = self.client.post(self.action_url('reject'), {'reason': 'No'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.status, MentorRegistration.STATUS_SUBMITTED)

    def test_reject_then_reconsider(self):
        """Test rejected registrations can return to review"""
        response = self.client.post(self.action_url('reject'), {
            'reason': 'Incomplete profile details'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.rejection_reason, 'Incomplete profile details')
        self.assertEqual(self.registration.rejected_by, self.staff)

        response = self.client.post(self.action_url('reconsider'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.registration.refresh_from_db()
        self.assertEqual(self.registration.status, 'submitted')
        self.assertEqual(self.registration.rejection_reason, '')
        self.assertIsNone(self.registration.rejected_by)

    def test_disapprove_approved(self):
        """Test withdrawing an approval"""
        self.client.post(self.action_url('approve'))
        response = self.client.post(self.action_url('disapprove'), {
            'reason': 'Unavailable this term'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['registration']['status'], 'rejected')

    def test_reconsider_requires_rejected(self):
        """Test reconsider on a submitted registration"""
        response = self.client.post(self.action_url('reconsider'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_action(self):
        """Test unknown actions"""
        response = self.client.post(self.action_url('promote'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_kind(self):
        """Test unknown registration types"""
        response = self.client.post(self.action_url('approve', kind='sponsor'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_registration(self):
        """Test a missing registration"""
        response = self.client.post('/api/v1/approvals/mentor/999999/approve/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_alumni_cannot_review(self):
        """Test alumni are refused"""
        self.client.authenticate_user(self.alumnus)
        response = self.client.post(self.action_url('approve'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_super_admin_cannot_review(self):
        """Test registrations are reviewed by college roles only"""
        self.client.authenticate_user(TestDataFactory.create_super_admin())
        response = self.client.post(self.action_url('approve'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_college_staff(self):
        """Test staff of another college are refused"""
        outsider = TestDataFactory.create_staff(TestDataFactory.create_college())
        self.client.authenticate_user(outsider)
        response = self.client.post(self.action_url('approve'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_deadline_passed(self):
        """Test decisions after the matching deadline"""
        yesterday = timezone.localdate() - timedelta(days=1)
        program = TestDataFactory.create_program(self.college, days_open=-10, matching_end_date=yesterday)
        registration = TestDataFactory.create_mentee_registration(program)
        response = self.client.post(self.action_url('approve', registration, kind='mentee'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reconsider_ignores_deadline(self):
        """Test reconsider is allowed after the matching deadline"""
        yesterday = timezone.localdate() - timedelta(days=1)
        program = TestDataFactory.create_program(self.college, days_open=-10, matching_end_date=yesterday)
        registration = TestDataFactory.create_mentee_registration(program, status='rejected')
        response = self.client.post(self.action_url('reconsider', registration, kind='mentee'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_decision_email_sent_on_commit(self):
        """Test the registrant is emailed after the decision commits"""
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.action_url('reject'), {
                'reason': 'Program is fully subscribed'
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['ravi@example.com'])
        self.assertIn('Program is fully subscribed', mail.outbox[0].body)

    def test_no_email_on_failure(self):
        """Test refused transitions send nothing"""
        with self.captureOnCommitCallbacks(execute=True):
            self.client.post(self.action_url('reconsider'))
        self.assertEqual(len(mail.outbox), 0)

    def test_transition_function(self):
        """Test the workflow function directly"""
        registration, history = transition_registration('mentor', self.registration.id, 'approve', self.staff)
        self.assertEqual(registration.status, 'approved')
        self.assertEqual(history.mentor_registration_id, self.registration.id)
        with self.assertRaises(WorkflowError) as ctx:
            transition_registration('mentor', self.registration.id, 'approve', self.staff)
        self.assertEqual(ctx.exception.status_code, 400)

    def test_deadline_helper(self):
        """Test the deadline compares dates"""
        self.program.matching_end_date = date(2030, 1, 31)
        self.assertFalse(deadline_passed(self.program, today=date(2030, 1, 31)))
        self.assertTrue(deadline_passed(self.program, today=date(2030, 2, 1)))
        self.program.matching_end_date = None
        self.assertFalse(deadline_passed(self.program))


class ApprovalQueueTests(MentoringTestCase):
    """Test the approval queue, history and statistics"""

    def setUp(self):
        super().setUp()
        self.pending = TestDataFactory.create_mentor_registration(self.program, self.alumnus, first_name='Meera')
        other = TestDataFactory.create_alumni(self.college)
        self.approved = TestDataFactory.create_mentor_registration(self.program, other, status='approved')
        self.mentee = TestDataFactory.create_mentee_registration(self.program, self.student)
        TestDataFactory.create_mentee_registration(TestDataFactory.create_program(TestDataFactory.create_college()))
        self.client.authenticate_user(self.staff)

    def test_queue_by_stage(self):
        """Test filtering the queue by stage"""
        response = self.client.get('/api/v1/approvals/', {'stage': 'submitted'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['mentor_total'], 1)
        self.assertEqual(response.data['mentors'][0]['id'], self.pending.id)
        self.assertEqual(response.data['mentee_total'], 1)

    def test_queue_by_type(self):
        """Test restricting the queue to one registration type"""
        response = self.client.get('/api/v1/approvals/', {'type': 'mentee'})
        self.assertEqual(response.data['mentors'], [])
        self.assertEqual(response.data['mentee_total'], 1)

    def test_queue_invalid_type(self):
        """Test unknown type"""
        response = self.client.get('/api/v1/approvals/', {'type': 'sponsor'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_queue_search(self):
        """Test searching registrant names"""
        response = self.client.get('/api/v1/approvals/mentors/', {'search': 'meera'})
        self.assertEqual(response.data['count'], 1)

    def test_queue_staff_only(self):
        """Test alumni cannot read the queue"""
        self.client.authenticate_user(self.alumnus)
        response = self.client.get('/api/v1/approvals/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_history_newest_first(self):
        """Test history lists the latest decision first"""
        transition_registration('mentor', self.pending.id, 'reject', self.staff, reason='Missing work history')
        transition_registration('mentor', self.pending.id, 'reconsider', self.staff)
        response = self.client.get(f'/api/v1/approvals/mentor/{self.pending.id}/history/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([h['action'] for h in response.data['history']], ['reconsider', 'reject'])

    def test_registrant_reads_own_history(self):
        """Test the registrant may read their history"""
        self.client.authenticate_user(self.alumnus)
        response = self.client.get(f'/api/v1/approvals/mentor/{self.pending.id}/history/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_history_hidden_from_others(self):
        """Test other alumni cannot read someone's history"""
        self.client.authenticate_user(TestDataFactory.create_alumni(self.college))
        response = self.client.get(f'/api/v1/approvals/mentor/{self.pending.id}/history/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_statistics(self):
        """Test per-status counts and recent actions"""
        transition_registration('mentor', self.pending.id, 'reject', self.staff, reason='Missing work history')
        response = self.client.get('/api/v1/approvals/statistics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['mentors'], {'submitted': 0, 'approved': 1, 'rejected': 1, 'total': 2})
        self.assertEqual(response.data['mentees']['total'], 1)
        self.assertEqual(len(response.data['recent_actions']), 1)

    def test_super_admin_reads_statistics(self):
        """Test super admins see statistics across colleges"""
        self.client.authenticate_user(TestDataFactory.create_super_admin())
        response = self.client.get('/api/v1/approvals/statistics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['mentees']['total'], 2)


class CommunicationTests(MentoringTestCase):
    """Test mentorship messages"""

    def test_send_message(self):
        """Test sending a message to a mentee"""
        response = self.client.post('/api/v1/mentoring/communications/', {
            'to_user': self.student.id, 'program': self.program.id,
            'subject': 'Welcome', 'body': 'Looking forward to working with you'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['from_user']['id'], self.alumnus.id)

        self.client.authenticate_user(self.student)
        response = self.client.get('/api/v1/mentoring/communications/')
        self.assertEqual(response.data['count'], 1)

    def test_cannot_message_self(self):
        """Test self messages"""
        response = self.client.post('/api/v1/mentoring/communications/', {
            'to_user': self.alumnus.id, 'body': 'Hi me'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_message_other_college(self):
        """Test messages stay inside the college"""
        outsider = TestDataFactory.create_alumni(TestDataFactory.create_college())
        response = self.client.post('/api/v1/mentoring/communications/', {
            'to_user': outsider.id, 'body': 'Hello there'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class NotificationTests(MentoringTestCase):
    """Test decision email content"""

    def test_rejection_email_includes_reason(self):
        """Test the reason is part of the body"""
        registration = TestDataFactory.create_mentor_registration(self.program, self.alumnus, preferred_name='Ravi K')
        subject, body = build_decision_email(registration, 'mentor', 'reject', reason='Program is full')
        self.assertIn('Career Launchpad', subject)
        self.assertTrue(body.startswith('Dear Ravi K,'))
        self.assertIn('Reason: Program is full', body)


class MatchScoringTests(TestCase):
    """Test the match scoring rules"""

    def test_industry_score(self):
        """Test same company, related sector and shared words"""
        self.assertEqual(industry_score('Acme', ' acme '), 100)
        self.assertEqual(industry_score('Data Labs', 'Software House'), 60)
        self.assertEqual(industry_score('Green Energy Corp', 'Blue Energy Ltd'), 40)
        self.assertEqual(industry_score('', ''), 0)

    def test_programme_score(self):
        """Test exact, contained and partial programme names"""
        self.assertEqual(programme_score('Computer Science', 'computer science'), 100)
        self.assertEqual(programme_score('Computer Science', 'Computer Science and Engineering'), 80)
        self.assertEqual(programme_score('Mechanical Engineering Design', 'Civil Engineering Design'), 60)
        self.assertEqual(programme_score('Electrical Engineering', 'Civil Engineering'), 30)
        self.assertEqual(programme_score('', 'Civil Engineering'), 0)

    def test_skills_score(self):
        """Test the average of both coverages"""
        self.assertEqual(skills_score(['Career'], ['career', 'Fundraising']), 75)
        self.assertEqual(skills_score(['Career'], ['Career']), 100)
        self.assertEqual(skills_score([], ['Career']), 0)

    def test_preference_score(self):
        """Test choice order scores"""
        self.assertEqual(preference_score(7, [5, 7, 9]), (80, 2))
        self.assertEqual(preference_score(5, [5, 7, 9]), (100, 1))
        self.assertEqual(preference_score(4, [5, 7, 9]), (0, None))
        self.assertEqual(preference_score(4, []), (0, None))


class MatchingTestCase(TestCase):
    """A program whose registration has closed, three approved mentors and one approved mentee"""

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.staff = TestDataFactory.create_staff(self.college)
        self.program = TestDataFactory.create_program(self.college, name='Career Launchpad', days_open=-1)
        self.mentor_users = [TestDataFactory.create_alumni(self.college) for _ in range(3)]
        self.mentors = [
            TestDataFactory.create_mentor_registration(self.program, user, status='approved', first_name=name)
            for user, name in zip(self.mentor_users, ('Anil', 'Bina', 'Chetan'))
        ]
        self.student = TestDataFactory.create_user(role=User.ROLE_STUDENT, college=self.college)
        self.mentee = TestDataFactory.create_mentee_registration(
            self.program, self.student, status='approved', first_name='Divya',
            personal_email='divya@example.com',
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.staff)

    def prefer(self, mentee, *mentors):
        mentee.preferred_mentors = [m.id for m in mentors]
        mentee.save()

    def run_url(self, program=None):
        return f'/api/v1/programs/{(program or self.program).id}/matching/run/'


class MatchingRunTests(MatchingTestCase):
    """Test offering mentees to mentors"""

    def test_first_preference_offered(self):
        """Test the first preferred mentor gets the request and an email"""
        self.prefer(self.mentee, self.mentors[1], self.mentors[0], self.mentors[2])
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.run_url())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'total_mentees': 1, 'already_matched': 0, 'pending': 1, 'needs_manual': 0})

        match = MentorMenteeMatch.objects.get()
        self.assertEqual(match.mentor_registration_id, self.mentors[1].id)
        self.assertEqual(match.match_type, 'preferred')
        self.assertEqual(match.preferred_order, 1)
        self.assertEqual(match.status, 'pending')
        self.assertIsNotNone(match.respond_by)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.mentors[1].personal_email])
        self.assertTrue(AuditLog.objects.filter(action='match_run').exists())

    def test_best_score_without_preferences(self):
        """Test shared areas of mentoring decide when no mentor was chosen"""
        self.mentee.areas_of_mentoring = ['Fundraising']
        self.mentee.save()
        self.mentors[2].areas_of_mentoring = ['Fundraising']
        self.mentors[2].save()
        run_matching(self.program, self.staff)
        match = MentorMenteeMatch.objects.get()
        self.assertEqual(match.mentor_registration_id, self.mentors[2].id)
        self.assertEqual(match.match_type, 'algorithm')
        self.assertIsNone(match.preferred_order)

    def test_registration_still_open(self):
        """Test matching waits for registration to close"""
        program = TestDataFactory.create_program(self.college)
        response = self.client.post(self.run_url(program))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_matching_deadline_passed(self):
        """Test matching is refused after the matching deadline"""
        program = TestDataFactory.create_program(
            self.college, days_open=-10, matching_end_date=timezone.localdate() - timedelta(days=1)
        )
        response = self.client.post(self.run_url(program))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('deadline', response.data['error'])

    def test_second_run_skips_matched(self):
        """Test mentees with an active match are left alone"""
        run_matching(self.program, self.staff)
        summary = run_matching(self.program, self.staff)
        self.assertEqual(summary['already_matched'], 1)
        self.assertEqual(summary['pending'], 0)
        self.assertEqual(MentorMenteeMatch.objects.count(), 1)

    @override_settings(ALUMNIHUB={'MAX_MENTEES_PER_MENTOR': 1})
    def test_mentor_capacity(self):
        """Test a full mentor is skipped for the next preference"""
        other = TestDataFactory.create_mentee_registration(self.program, status='approved')
        self.prefer(self.mentee, *self.mentors)
        self.prefer(other, *self.mentors)
        run_matching(self.program, self.staff)
        other_match = MentorMenteeMatch.objects.get(mentee_registration=other)
        self.assertEqual(other_match.mentor_registration_id, self.mentors[1].id)
        self.assertEqual(other_match.preferred_order, 2)

    def test_no_approved_mentors(self):
        """Test mentees are left for manual matching"""
        MentorRegistration.objects.update(status='submitted')
        summary = run_matching(self.program, self.staff)
        self.assertEqual(summary['needs_manual'], 1)
        self.assertFalse(MentorMenteeMatch.objects.exists())

    def test_alumni_cannot_run(self):
        """Test only college reviewers run matching"""
        self.client.authenticate_user(self.mentor_users[0])
        response = self.client.post(self.run_url())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_college_staff(self):
        """Test staff of another college are refused"""
        self.client.authenticate_user(TestDataFactory.create_staff(TestDataFactory.create_college()))
        response = self.client.post(self.run_url())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MatchResponseTests(MatchingTestCase):
    """Test mentors accepting and declining matches"""

    def setUp(self):
        super().setUp()
        self.prefer(self.mentee, *self.mentors)
        run_matching(self.program, self.staff)
        self.match = MentorMenteeMatch.objects.get()

    def respond(self, match, action, user, **data):
        self.client.authenticate_user(user)
        return self.client.post(f'/api/v1/matches/{match.id}/{action}/', data, format='json')

    def test_mentor_accepts(self):
        """Test acceptance and the email to the mentee"""
        with self.captureOnCommitCallbacks(execute=True):
            response = self.respond(self.match, 'accept', self.mentor_users[0])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['match']['status'], 'accepted')
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['divya@example.com'])
        self.assertTrue(AuditLog.objects.filter(action='match_accept').exists())

    def test_only_assigned_mentor(self):
        """Test another mentor cannot answer"""
        response = self.respond(self.match, 'accept', self.mentor_users[1])
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_reject_offers_next_preference(self):
        """Test a declined preferred match moves to the next choice"""
        response = self.respond(self.match, 'reject', self.mentor_users[0], reason='No capacity this term')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.match.refresh_from_db()
        self.assertEqual(self.match.status, 'rejected')
        self.assertEqual(self.match.rejection_reason, 'No capacity this term')
        following = MentorMenteeMatch.objects.get(status='pending')
        self.assertEqual(following.mentor_registration_id, self.mentors[1].id)
        self.assertEqual(following.preferred_order, 2)

    def test_declined_mentors_not_offered_again(self):
        """Test the mentee waits for a manual match once every mentor declined"""
        for user in self.mentor_users:
            match = MentorMenteeMatch.objects.get(status='pending')
            self.assertEqual(match.mentor_registration.user_id, user.id)
            response = self.respond(match, 'reject', user)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(MentorMenteeMatch.objects.filter(status__in=['pending', 'accepted']).exists())
        self.assertEqual(MentorMenteeMatch.objects.count(), 3)

    def test_cannot_respond_twice(self):
        """Test only pending matches can be answered"""
        self.respond(self.match, 'accept', self.mentor_users[0])
        response = self.respond(self.match, 'reject', self.mentor_users[0])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_action(self):
        """Test unknown actions"""
        response = self.respond(self.match, 'maybe', self.mentor_users[0])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_match(self):
        """Test a missing match"""
        self.client.authenticate_user(self.mentor_users[0])
        response = self.client.post('/api/v1/matches/999999/accept/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_requests_and_my_matches(self):
        """Test mentor requests and the mentee's own view"""
        self.client.authenticate_user(self.mentor_users[0])
        response = self.client.get('/api/v1/matches/requests/')
        self.assertEqual([m['id'] for m in response.data], [self.match.id])

        self.client.authenticate_user(self.student)
        response = self.client.get('/api/v1/matches/mine/')
        self.assertEqual([m['id'] for m in response.data['as_mentee']], [self.match.id])
        self.assertEqual(response.data['as_mentor'], [])

    def test_expired_match_moves_on(self):
        """Test unanswered requests are auto-rejected by the command"""
        MentorMenteeMatch.objects.filter(pk=self.match.pk).update(respond_by=timezone.now() - timedelta(hours=1))

        call_command('expire_mentor_matches', '--dry-run', stdout=StringIO())
        self.match.refresh_from_db()
        self.assertEqual(self.match.status, 'pending')

        out = StringIO()
        call_command('expire_mentor_matches', stdout=out)
        self.assertIn('Expired 1 matches', out.getvalue())
        self.match.refresh_from_db()
        self.assertEqual(self.match.status, 'auto_rejected')
        following = MentorMenteeMatch.objects.get(status='pending')
        self.assertEqual(following.mentor_registration_id, self.mentors[1].id)

    def test_expire_function_leaves_fresh_matches(self):
        """Test matches inside their response window are kept"""
        self.assertEqual(expire_pending_matches(), 0)
        self.match.refresh_from_db()
        self.assertEqual(self.match.status, 'pending')


class ManualMatchTests(MatchingTestCase):
    """Test staff pairing mentees by hand"""

    def manual(self, mentee, mentor):
        return self.client.post(f'/api/v1/programs/{self.program.id}/matching/manual/', {
            'mentee_registration': mentee.id, 'mentor_registration': mentor.id
        }, format='json')

    def test_manual_match_accepted(self):
        """Test manual matches are accepted straight away"""
        response = self.manual(self.mentee, self.mentors[2])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'accepted')
        self.assertEqual(response.data['match_type'], 'manual')
        self.assertEqual(response.data['mentor']['id'], self.mentors[2].id)

    def test_mentee_already_matched(self):
        """Test a mentee holds one active match"""
        self.manual(self.mentee, self.mentors[0])
        response = self.manual(self.mentee, self.mentors[1])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(ALUMNIHUB={'MAX_MENTEES_PER_MENTOR': 1})
    def test_mentor_full(self):
        """Test mentor capacity applies to manual matches"""
        other = TestDataFactory.create_mentee_registration(self.program, status='approved')
        self.manual(self.mentee, self.mentors[0])
        response = self.manual(other, self.mentors[0])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unapproved_mentor(self):
        """Test only approved registrations can be paired"""
        mentor = TestDataFactory.create_mentor_registration(self.program, TestDataFactory.create_alumni(self.college))
        response = self.manual(self.mentee, mentor)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_ids(self):
        """Test both ids are required"""
        response = self.client.post(f'/api/v1/programs/{self.program.id}/matching/manual/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class MatchingOverviewTests(MatchingTestCase):
    """Test match listings and statistics"""

    def test_statistics(self):
        """Test counts after one accepted match"""
        TestDataFactory.create_mentee_registration(self.program, status='approved')
        self.prefer(self.mentee, *self.mentors)
        run_matching(self.program, self.staff)
        respond_to_match(MentorMenteeMatch.objects.get(mentee_registration=self.mentee).id, 'accept', self.mentor_users[0])

        response = self.client.get(f'/api/v1/programs/{self.program.id}/matching/statistics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_mentees'], 2)
        self.assertEqual(response.data['total_mentors'], 3)
        self.assertEqual(response.data['matched_mentees'], 1)
        self.assertEqual(response.data['unmatched_mentees'], 1)
        self.assertEqual(response.data['accepted'], 1)
        self.assertEqual(response.data['pending'], 1)
        self.assertEqual(response.data['preferred_matches'], 1)
        self.assertEqual(response.data['algorithm_matches'], 1)

    def test_unmatched_mentees(self):
        """Test mentees without an active match are listed"""
        response = self.client.get(f'/api/v1/programs/{self.program.id}/matching/unmatched/')
        self.assertEqual([m['id'] for m in response.data['results']], [self.mentee.id])
        run_matching(self.program, self.staff)
        response = self.client.get(f'/api/v1/programs/{self.program.id}/matching/unmatched/')
        self.assertEqual(response.data['count'], 0)

    def test_matches_filtered_by_status(self):
        """Test the program match list filters by status"""
        run_matching(self.program, self.staff)
        response = self.client.get(f'/api/v1/programs/{self.program.id}/matching/matches/?status=pending')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/programs/{self.program.id}/matching/matches/?status=accepted')
        self.assertEqual(response.data['count'], 0)

    def test_listings_staff_only(self):
        """Test alumni cannot read program matches"""
        self.client.authenticate_user(self.mentor_users[0])
        response = self.client.get(f'/api/v1/programs/{self.program.id}/matching/matches/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PreferenceTests(TestCase):
    """Test mentees ranking mentors"""

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.program = TestDataFactory.create_program(self.college, name='Career Launchpad')
        self.mentors = [
            TestDataFactory.create_mentor_registration(
                self.program, TestDataFactory.create_alumni(self.college), status='approved'
            )
            for _ in range(3)
        ]
        self.student = TestDataFactory.create_user(role=User.ROLE_STUDENT, college=self.college)
        self.mentee = TestDataFactory.create_mentee_registration(self.program, self.student, status='approved')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.student)
        self.url = f'/api/v1/programs/{self.program.id}/preferences/'

    def test_submit_preferences(self):
        """Test three approved mentors are stored in order"""
        chosen = [self.mentors[2].id, self.mentors[0].id, self.mentors[1].id]
        response = self.client.post(self.url, {'preferred_mentors': chosen}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.mentee.refresh_from_db()
        self.assertEqual(self.mentee.preferred_mentors, chosen)
        self.assertIsNotNone(self.mentee.preferences_submitted_at)

        response = self.client.get(self.url)
        self.assertEqual([m['id'] for m in response.data['preferred_mentors']], chosen)

    def test_exactly_three_required(self):
        """Test the number of preferences"""
        response = self.client.post(self.url, {'preferred_mentors': [self.mentors[0].id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('preferred_mentors', response.data)

    def test_duplicates_rejected(self):
        """Test the same mentor cannot be chosen twice"""
        chosen = [self.mentors[0].id, self.mentors[0].id, self.mentors[1].id]
        response = self.client.post(self.url, {'preferred_mentors': chosen}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unapproved_mentor_rejected(self):
        """Test only approved mentors of the program can be chosen"""
        self.mentors[1].status = 'submitted'
        self.mentors[1].save()
        response = self.client.post(self.url, {'preferred_mentors': [m.id for m in self.mentors]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_approved_registration(self):
        """Test users without an approved mentee registration"""
        self.client.authenticate_user(TestDataFactory.create_user(role=User.ROLE_STUDENT, college=self.college))
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_deadline_passed(self):
        """Test preferences close with mentee registration"""
        self.program.registration_end_date_mentee = timezone.localdate() - timedelta(days=1)
        self.program.save()
        response = self.client.post(self.url, {'preferred_mentors': [m.id for m in self.mentors]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_program_mentors(self):
        """Test approved mentors are listed without contact details"""
        response = self.client.get(f'/api/v1/programs/{self.program.id}/mentors/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertNotIn('personal_email', response.data['results'][0])
