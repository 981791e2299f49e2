"""
Test suite for Events module
Tests: Event CRUD, Visibility, Registration, Payment confirmation, Capacity,
Participants, Attendance, Feedback
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from alumnihub.core.models import AuditLog, User
from alumnihub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from alumnihub.events.models import EventFeedback, EventRegistration


class EventTestCase(TestCase):

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.staff = TestDataFactory.create_staff(self.college)
        self.admin = TestDataFactory.create_staff(self.college, role=User.ROLE_COLLEGE_ADMIN)
        self.alumnus = TestDataFactory.create_alumni(self.college)
        self.event = TestDataFactory.create_event(self.staff, title='Annual Reunion')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.alumnus)


class EventCrudTests(EventTestCase):
    """Test event creation, listing and updates"""

    def event_payload(self, **overrides):
        start = timezone.now() + timedelta(days=10)
        data = {
            'title': 'Career Workshop',
            'description': 'Resume clinic for recent graduates',
            'event_type': 'workshop',
            'start_date': start.isoformat(),
            'end_date': (start + timedelta(hours=3)).isoformat(),
            'location': 'Seminar Hall',
        }
        data.update(overrides)
        return data

    def test_staff_creates_event(self):
        """Test staff can create an event for their college"""
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/events/', self.event_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['college'], self.college.id)
        self.assertEqual(response.data['organizer']['id'], self.staff.id)

    def test_alumni_cannot_create_event(self):
        """Test alumni cannot create events"""
        response = self.client.post('/api/v1/events/', self.event_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_end_before_start_rejected(self):
        """Test end date validation"""
        self.client.authenticate_user(self.staff)
        start = timezone.now() + timedelta(days=10)
        response = self.client.post('/api/v1/events/', self.event_payload(
            start_date=start.isoformat(), end_date=(start - timedelta(hours=1)).isoformat()
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.data)

    def test_offline_event_requires_location(self):
        """Test location is required unless the event is online"""
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/events/', self.event_payload(location=''), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/events/', self.event_payload(location='', is_online=True), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_hides_other_college_events(self):
        """Test events of other colleges are not listed"""
        other_staff = TestDataFactory.create_staff(TestDataFactory.create_college())
        TestDataFactory.create_event(other_staff, title='Elsewhere')
        response = self.client.get('/api/v1/events/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        titles = [row['title'] for row in response.data['results']]
        self.assertEqual(titles, ['Annual Reunion'])

    def test_events_without_college_are_visible(self):
        """Test events not tied to a college are listed for everyone"""
        super_admin = TestDataFactory.create_super_admin()
        event = TestDataFactory.create_event(super_admin, title='Global Meetup')
        self.assertIsNone(event.college_id)
        response = self.client.get('/api/v1/events/')
        self.assertEqual(response.data['count'], 2)

    def test_search_filter(self):
        """Test event search"""
        TestDataFactory.create_event(self.staff, title='Tech Talk')
        response = self.client.get('/api/v1/events/?search=reunion')
        self.assertEqual(response.data['count'], 1)

    def test_detail_includes_my_registration(self):
        """Test event detail shows the caller's registration"""
        TestDataFactory.register_for_event(self.event, self.alumnus)
        response = self.client.get(f'/api/v1/events/{self.event.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['my_registration']['status'], 'registered')

    def test_only_organizer_or_admin_updates(self):
        """Test event update rights"""
        response = self.client.patch(f'/api/v1/events/{self.event.id}/', {'title': 'Hijacked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/events/{self.event.id}/', {'title': 'Grand Reunion'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'Grand Reunion')


class EventRegistrationTests(EventTestCase):
    """Test registering for free and paid events"""

    def test_register_free_event(self):
        """Test registration for a free event"""
        response = self.client.post(f'/api/v1/events/{self.event.id}/register/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'registered')
        self.assertFalse(response.data['payment_required'])
        self.assertTrue(AuditLog.objects.filter(action='event_register').exists())

    def test_register_twice(self):
        """Test duplicate registration is rejected"""
        self.client.post(f'/api/v1/events/{self.event.id}/register/')
        response = self.client.post(f'/api/v1/events/{self.event.id}/register/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_paid_event(self):
        """Test paid registration waits for payment"""
        event = TestDataFactory.create_event(self.staff, price=Decimal('500.00'))
        response = self.client.post(f'/api/v1/events/{event.id}/register/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending_payment')
        self.assertTrue(response.data['payment_required'])
        self.assertEqual(response.data['amount'], Decimal('500.00'))
        self.assertEqual(response.data['currency'], 'INR')

    def test_confirm_payment(self):
        """Test payment confirmation completes the registration and is idempotent"""
        event = TestDataFactory.create_event(self.staff, price=Decimal('500.00'))
        self.client.post(f'/api/v1/events/{event.id}/register/')
        response = self.client.post(f'/api/v1/events/{event.id}/confirm-payment/', {
            'payment_status': 'success', 'transaction_id': 'TXN123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['registration']['status'], 'registered')
        self.assertEqual(response.data['registration']['payment_status'], 'successful')

        response = self.client.post(f'/api/v1/events/{event.id}/confirm-payment/', {'payment_status': 'success'}, format='json')
        self.assertEqual(response.data['message'], 'Payment already confirmed')

    def test_failed_payment(self):
        """Test unsuccessful payment is rejected"""
        event = TestDataFactory.create_event(self.staff, price=Decimal('500.00'))
        self.client.post(f'/api/v1/events/{event.id}/register/')
        response = self.client.post(f'/api/v1/events/{event.id}/confirm-payment/', {'payment_status': 'failed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_full_event(self):
        """Test capacity counts pending payments"""
        event = TestDataFactory.create_event(self.staff, max_attendees=1)
        TestDataFactory.register_for_event(event, TestDataFactory.create_alumni(self.college), status='pending_payment')
        response = self.client.post(f'/api/v1/events/{event.id}/register/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Event is full')

    def test_deadline_passed(self):
        """Test registration after the deadline"""
        event = TestDataFactory.create_event(self.staff, registration_deadline=timezone.now() - timedelta(hours=1))
        response = self.client.post(f'/api/v1/events/{event.id}/register/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancelled_event(self):
        """Test registration for a cancelled event"""
        event = TestDataFactory.create_event(self.staff, status='cancelled')
        response = self.client.post(f'/api/v1/events/{event.id}/register/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unregister_and_register_again(self):
        """Test a cancelled registration is reused"""
        self.client.post(f'/api/v1/events/{self.event.id}/register/')
        response = self.client.post(f'/api/v1/events/{self.event.id}/unregister/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post(f'/api/v1/events/{self.event.id}/register/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(EventRegistration.objects.filter(event=self.event, user=self.alumnus).count(), 1)

    def test_unregister_without_registration(self):
        """Test unregistering when not registered"""
        response = self.client.post(f'/api/v1/events/{self.event.id}/unregister/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_events(self):
        """Test listing the caller's registrations"""
        TestDataFactory.register_for_event(self.event, self.alumnus)
        response = self.client.get('/api/v1/events/mine/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)


class ParticipantTests(EventTestCase):
    """Test participants, attendance and feedback"""

    def test_participants_visible_to_organizer(self):
        """Test organizer sees participants"""
        TestDataFactory.register_for_event(self.event, self.alumnus)
        self.client.authenticate_user(self.staff)
        response = self.client.get(f'/api/v1/events/{self.event.id}/participants/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_participants_hidden_from_alumni(self):
        """Test alumni cannot list participants"""
        response = self.client.get(f'/api/v1/events/{self.event.id}/participants/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_mark_attendance(self):
        """Test marking registered users as attended"""
        TestDataFactory.register_for_event(self.event, self.alumnus)
        self.client.authenticate_user(self.staff)
        response = self.client.post(f'/api/v1/events/{self.event.id}/attendance/', {'user_ids': [self.alumnus.id]}, format='json')
        self.assertEqual(response.data['updated'], 1)
        self.assertEqual(EventRegistration.objects.get(event=self.event, user=self.alumnus).status, 'attended')

    def test_feedback_after_event(self):
        """Test participants leave feedback once the event has ended"""
        past = TestDataFactory.create_event(self.staff, days_ahead=-3)
        TestDataFactory.register_for_event(past, self.alumnus, status='attended')
        response = self.client.post(f'/api/v1/events/{past.id}/feedback/', {'rating': 5, 'comment': 'Great'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.post(f'/api/v1/events/{past.id}/feedback/', {'rating': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(EventFeedback.objects.filter(event=past).count(), 1)

    def test_feedback_before_event_rejected(self):
        """Test feedback is refused before the event ends"""
        TestDataFactory.register_for_event(self.event, self.alumnus)
        response = self.client.post(f'/api/v1/events/{self.event.id}/feedback/', {'rating': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_event_stats(self):
        """Test event statistics for staff"""
        TestDataFactory.register_for_event(self.event, self.alumnus)
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/events/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['total_registrations'], 1)
