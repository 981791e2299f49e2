"""
Test suite for Reports module
Tests: Dashboard KPIs, Engagement leaderboard
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from alumnihub.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ReportsTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.college = TestDataFactory.create_college()
        self.staff = TestDataFactory.create_staff(self.college)

        # High: major donor attending an upcoming event
        self.champion = TestDataFactory.create_alumni(self.college, first_name='Kavya', last_name='Iyer')
        TestDataFactory.create_donation(self.champion, amount=Decimal('20000.00'))
        event = TestDataFactory.create_event(self.staff)
        TestDataFactory.register_for_event(event, self.champion)

        # Low: one small donation
        self.donor = TestDataFactory.create_alumni(self.college)
        TestDataFactory.create_donation(self.donor, amount=Decimal('500.00'))

        self.inactive = TestDataFactory.create_alumni(self.college)

        other_college = TestDataFactory.create_college()
        TestDataFactory.create_alumni(other_college)

        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.staff)


class DashboardTests(ReportsTestCase):
    """Test the staff dashboard"""

    def test_dashboard_counts(self):
        """Test KPIs are scoped to the staff member's college"""
        TestDataFactory.create_community(self.staff)
        TestDataFactory.create_event(self.staff, days_ahead=-3)
        program = TestDataFactory.create_program(self.college)
        TestDataFactory.create_mentor_registration(program, self.donor)
        TestDataFactory.create_mentee_registration(program, status='approved')

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['alumni_count'], 3)
        self.assertEqual(response.data['active_communities'], 1)
        self.assertEqual(response.data['upcoming_events'], 1)
        self.assertEqual(response.data['total_donations'], Decimal('20500.00'))
        self.assertEqual(response.data['pending_registrations'], 1)

    def test_engagement_distribution(self):
        """Test alumni are bucketed by engagement level"""
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['engagement_distribution'], {
            'High': 1, 'Medium': 0, 'Low': 1, 'Inactive': 1,
        })

    def test_dashboard_staff_only(self):
        """Test alumni cannot read the dashboard"""
        self.client.authenticate_user(self.inactive)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class EngagementLeaderboardTests(ReportsTestCase):
    """Test the engagement leaderboard"""

    def test_ranked_by_score(self):
        """Test alumni are ordered by descending score"""
        response = self.client.get('/api/v1/reports/engagement/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        ids = [row['user_id'] for row in response.data['results']]
        self.assertEqual(ids, [self.champion.id, self.donor.id, self.inactive.id])
        top = response.data['results'][0]
        self.assertEqual(top['engagement_score'], 80)
        self.assertEqual(top['engagement_level'], 'High')
        self.assertEqual(top['events_attended'], 1)
        self.assertEqual(top['name'], 'Kavya Iyer')

    def test_limit(self):
        """Test the limit parameter"""
        response = self.client.get('/api/v1/reports/engagement/', {'limit': 1})
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['count'], 3)

    def test_invalid_limit(self):
        """Test a non-numeric limit"""
        response = self.client.get('/api/v1/reports/engagement/', {'limit': 'ten'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_super_admin_sees_all_colleges(self):
        """Test super admins rank alumni of every college"""
        self.client.authenticate_user(TestDataFactory.create_super_admin())
        response = self.client.get('/api/v1/reports/engagement/')
        self.assertEqual(response.data['count'], 4)
