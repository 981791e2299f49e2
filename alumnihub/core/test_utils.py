"""
Test utilities and factories for creating test data
"""
from datetime import date, timedelta
from decimal import Decimal
import random
import string

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from alumnihub.alumni.models import AlumniProfile
from alumnihub.communities.models import Community, CommunityMembership
from alumnihub.core.models import College
from alumnihub.donations.models import Campaign, Donation
from alumnihub.events.models import Event, EventRegistration
from alumnihub.mentoring.models import MenteeRegistration, MentoringProgram, MentorRegistration

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_college(name=None, code=None):
        """Create a test college"""
        if not name:
            name = f'College_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'C{TestDataFactory.random_string(6).upper()}'
        return College.objects.create(name=name, code=code, address=f'Test Address {name}')

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=User.ROLE_ALUMNI,
                    college=None, is_superuser=False, first_name='', last_name=''):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            college=college,
            is_superuser=is_superuser,
            first_name=first_name,
            last_name=last_name,
        )

    @staticmethod
    def create_super_admin(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_SUPER_ADMIN, **kwargs)

    @staticmethod
    def create_staff(college, role=User.ROLE_STAFF, **kwargs):
        """Create a college admin, HOD or staff user"""
        return TestDataFactory.create_user(role=role, college=college, **kwargs)

    @staticmethod
    def create_alumni(college, with_profile=True, **kwargs):
        """Create an alumni user, with a profile unless told otherwise"""
        user = TestDataFactory.create_user(role=User.ROLE_ALUMNI, college=college, **kwargs)
        if with_profile:
            AlumniProfile.objects.create(user=user, department='Computer Science', graduation_year=2015)
        return user

    @staticmethod
    def create_community(owner, name=None, type='open', college=None, **kwargs):
        """Create a community with the owner as approved admin member"""
        if not name:
            name = f'Community_{TestDataFactory.random_string(6)}'
        community = Community.objects.create(
            name=name,
            description=f'Test community {name}',
            type=type,
            created_by=owner,
            college=college or owner.college,
            **kwargs
        )
        CommunityMembership.objects.create(
            community=community, user=owner, role='admin', status='approved', joined_at=timezone.now()
        )
        community.refresh_member_count()
        return community

    @staticmethod
    def add_member(community, user, role='member', status='approved'):
        membership = CommunityMembership.objects.create(
            community=community, user=user, role=role, status=status,
            joined_at=timezone.now() if status == 'approved' else None
        )
        community.refresh_member_count()
        return membership

    @staticmethod
    def create_event(organizer, title=None, price=Decimal('0.00'), max_attendees=0, days_ahead=7, college=None, **kwargs):
        """Create a test event starting a number of days from now"""
        if not title:
            title = f'Event_{TestDataFactory.random_string(6)}'
        start = timezone.now() + timedelta(days=days_ahead)
        return Event.objects.create(
            title=title,
            description=f'Test event {title}',
            event_type='meetup',
            start_date=start,
            end_date=start + timedelta(hours=2),
            location='Main Auditorium',
            max_attendees=max_attendees,
            price=price,
            organizer=organizer,
            college=college or organizer.college,
            **kwargs
        )

    @staticmethod
    def register_for_event(event, user, status='registered'):
        return EventRegistration.objects.create(event=event, user=user, status=status)

    @staticmethod
    def create_campaign(college, created_by=None, title=None):
        if not title:
            title = f'Campaign_{TestDataFactory.random_string(6)}'
        return Campaign.objects.create(
            title=title, goal_amount=Decimal('100000.00'), college=college, created_by=created_by
        )

    @staticmethod
    def create_donation(donor, amount=Decimal('1000.00'), payment_status='completed', campaign=None, **kwargs):
        """Create a test donation"""
        return Donation.objects.create(
            donor=donor,
            college=donor.college,
            campaign=campaign,
            amount=amount,
            payment_status=payment_status,
            **kwargs
        )

    @staticmethod
    def create_program(college, name=None, status='published', days_open=30, matching_end_date=None, **kwargs):
        """Create a mentoring program open for registration"""
        if not name:
            name = f'Program_{TestDataFactory.random_string(6)}'
        today = timezone.localdate()
        return MentoringProgram.objects.create(
            name=name,
            college=college,
            status=status,
            areas_of_mentoring=['Career', 'Entrepreneurship'],
            registration_end_date_mentor=today + timedelta(days=days_open),
            registration_end_date_mentee=today + timedelta(days=days_open),
            matching_end_date=matching_end_date or today + timedelta(days=days_open + 30),
            **kwargs
        )

    @staticmethod
    def registration_payload(**overrides):
        """Valid request body for a mentor or mentee registration"""
        data = {
            'title': 'Ms',
            'first_name': 'Asha',
            'last_name': 'Rao',
            'mobile_number': '+919876543210',
            'date_of_birth': (date.today() - timedelta(days=365 * 30)).isoformat(),
            'personal_email': f'{TestDataFactory.random_string(8).lower()}@example.com',
            'class_of': 2015,
            'areas_of_mentoring': ['Career'],
        }
        data.update(overrides)
        return data

    @staticmethod
    def _registration_fields(program, **kwargs):
        fields = {
            'program': program,
            'college': program.college,
            'title': 'Mr',
            'first_name': 'Ravi',
            'last_name': 'Kumar',
            'mobile_number': '9876543210',
            'date_of_birth': date(1990, 5, 17),
            'personal_email': f'{TestDataFactory.random_string(8).lower()}@example.com',
            'class_of': 2012,
            'areas_of_mentoring': ['Career'],
        }
        fields.update(kwargs)
        return fields

    @staticmethod
    def create_mentor_registration(program, user, **kwargs):
        return MentorRegistration.objects.create(user=user, **TestDataFactory._registration_fields(program, **kwargs))

    @staticmethod
    def create_mentee_registration(program, user=None, **kwargs):
        return MenteeRegistration.objects.create(user=user, **TestDataFactory._registration_fields(program, **kwargs))


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
