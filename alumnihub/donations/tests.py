"""
Test suite for Donations module
Tests: Campaigns, Donation pledges, Visibility, Status transitions, Summary
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from alumnihub.core.models import AuditLog, User
from alumnihub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from alumnihub.donations.models import Donation


class DonationTestCase(TestCase):

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.admin = TestDataFactory.create_staff(self.college, role=User.ROLE_COLLEGE_ADMIN)
        self.staff = TestDataFactory.create_staff(self.college)
        self.alumnus = TestDataFactory.create_alumni(self.college)
        self.other_alumnus = TestDataFactory.create_alumni(self.college)
        self.campaign = TestDataFactory.create_campaign(self.college, created_by=self.admin, title='Library Fund')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.alumnus)


class CampaignTests(DonationTestCase):
    """Test fundraising campaigns"""

    def test_admin_creates_campaign(self):
        """Test college admin creates a campaign"""
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/campaigns/', {
            'title': 'Scholarship Fund', 'goal_amount': '500000.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['college'], self.college.id)

    def test_alumni_cannot_create_campaign(self):
        """Test alumni cannot create campaigns"""
        response = self.client.post('/api/v1/campaigns/', {'title': 'Mine'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_campaign_raised_amount(self):
        """Test raised amount counts completed donations only"""
        TestDataFactory.create_donation(self.alumnus, amount=Decimal('1000.00'), campaign=self.campaign)
        TestDataFactory.create_donation(self.other_alumnus, amount=Decimal('2500.00'), campaign=self.campaign)
        TestDataFactory.create_donation(self.other_alumnus, amount=Decimal('9999.00'), campaign=self.campaign,
                                        payment_status='pending')
        response = self.client.get(f'/api/v1/campaigns/{self.campaign.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['raised_amount']), Decimal('3500.00'))
        self.assertEqual(response.data['donor_count'], 2)


class DonationPledgeTests(DonationTestCase):
    """Test recording and listing donations"""

    def test_pledge_donation(self):
        """Test a new donation starts pending"""
        response = self.client.post('/api/v1/donations/', {
            'amount': '2500.00', 'currency': 'INR', 'campaign': self.campaign.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment_status'], 'pending')
        self.assertEqual(response.data['donor']['id'], self.alumnus.id)

    def test_client_cannot_set_status(self):
        """Test payment status is read-only on create"""
        response = self.client.post('/api/v1/donations/', {
            'amount': '100.00', 'payment_status': 'completed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment_status'], 'pending')

    def test_non_positive_amount_rejected(self):
        """Test amount validation"""
        response = self.client.post('/api/v1/donations/', {'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_campaign_rejected(self):
        """Test donations to an inactive campaign"""
        self.campaign.is_active = False
        self.campaign.save()
        response = self.client.post('/api/v1/donations/', {
            'amount': '100.00', 'campaign': self.campaign.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_alumni_see_only_own_donations(self):
        """Test donation visibility for alumni"""
        TestDataFactory.create_donation(self.alumnus)
        TestDataFactory.create_donation(self.other_alumnus)
        response = self.client.get('/api/v1/donations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_anonymous_donor_hidden_from_staff(self):
        """Test anonymous donations hide the donor"""
        TestDataFactory.create_donation(self.alumnus, anonymous=True)
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/donations/')
        self.assertEqual(response.data['count'], 1)
        self.assertIsNone(response.data['results'][0]['donor'])

    def test_anonymous_donor_visible_to_self(self):
        """Test the donor still sees their own anonymous donation"""
        TestDataFactory.create_donation(self.alumnus, anonymous=True)
        response = self.client.get('/api/v1/donations/')
        self.assertEqual(response.data['results'][0]['donor']['id'], self.alumnus.id)

    def test_filter_by_status(self):
        """Test donation status filter"""
        TestDataFactory.create_donation(self.alumnus)
        TestDataFactory.create_donation(self.alumnus, payment_status='pending')
        response = self.client.get('/api/v1/donations/?status=pending')
        self.assertEqual(response.data['count'], 1)


class DonationStatusTests(DonationTestCase):
    """Test payment status transitions"""

    def setUp(self):
        super().setUp()
        self.donation = TestDataFactory.create_donation(self.alumnus, payment_status='pending')
        self.client.authenticate_user(self.staff)

    def test_complete_pending_donation(self):
        """Test pending to completed"""
        response = self.client.post(f'/api/v1/donations/{self.donation.id}/status/', {
            'payment_status': 'completed', 'transaction_id': 'TXN-1'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.donation.refresh_from_db()
        self.assertEqual(self.donation.payment_status, 'completed')
        self.assertEqual(self.donation.transaction_id, 'TXN-1')
        self.assertTrue(AuditLog.objects.filter(action='donation_status').exists())

    def test_refund_requires_completed(self):
        """Test pending donations cannot be refunded"""
        response = self.client.post(f'/api/v1/donations/{self.donation.id}/status/', {
            'payment_status': 'refunded'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_failed_is_terminal(self):
        """Test failed donations cannot change again"""
        self.donation.payment_status = 'failed'
        self.donation.save()
        response = self.client.post(f'/api/v1/donations/{self.donation.id}/status/', {
            'payment_status': 'completed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_alumni_cannot_change_status(self):
        """Test status changes are staff only"""
        self.client.authenticate_user(self.alumnus)
        response = self.client.post(f'/api/v1/donations/{self.donation.id}/status/', {
            'payment_status': 'completed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_transition_table(self):
        """Test the allowed transitions"""
        donation = Donation(payment_status='completed')
        self.assertTrue(donation.can_transition_to('refunded'))
        self.assertFalse(donation.can_transition_to('pending'))


class DonationSummaryTests(DonationTestCase):
    """Test donation summary"""

    def test_summary(self):
        """Test totals over completed donations"""
        TestDataFactory.create_donation(self.alumnus, amount=Decimal('1000.00'), campaign=self.campaign)
        TestDataFactory.create_donation(self.other_alumnus, amount=Decimal('3000.00'))
        TestDataFactory.create_donation(self.other_alumnus, amount=Decimal('500.00'), payment_status='pending')
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/donations/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['total_amount'], Decimal('4000.00'))
        self.assertEqual(summary['donation_count'], 2)
        self.assertEqual(summary['donor_count'], 2)
        self.assertEqual(summary['average_amount'], Decimal('2000.00'))
        self.assertEqual(summary['pending_count'], 1)
        self.assertEqual(response.data['top_campaigns'][0]['title'], 'Library Fund')

    def test_summary_staff_only(self):
        """Test the summary is refused to alumni"""
        response = self.client.get('/api/v1/donations/summary/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
