"""
Test suite for Core module
Tests: Authentication, Users, Colleges, Audit Logs, Pagination, Engagement cache
"""
from django.core.cache import cache
from django.test import TestCase, RequestFactory
from rest_framework import status
from rest_framework.request import Request

from alumnihub.core.models import AuditLog, User
from alumnihub.core.model_cache import (
    cache_engagement_data, get_cached_engagement, invalidate_engagement_cache,
)
from alumnihub.core.pagination import get_page_params, paginate
from alumnihub.core.permissions import can_review_registrations, is_super_admin, scope_to_college
from alumnihub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from alumnihub.core.utils import create_audit_log, parse_bool


class AuthenticationTests(TestCase):
    """Test login, token refresh and self registration"""

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.user = TestDataFactory.create_alumni(self.college, username='asha')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens(self):
        """Test login with valid credentials"""
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'asha',
            'password': 'testpass123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_invalid_credentials(self):
        """Test login with a wrong password"""
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'asha',
            'password': 'wrong-password'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        """Test exchanging a refresh token for a new access token"""
        login = self.client.post('/api/v1/auth/login/', {
            'username': 'asha',
            'password': 'testpass123'
        }, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_with_garbage_token(self):
        """Test refresh with an invalid token"""
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_alumni_account(self):
        """Test self registration of an alumni account"""
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newgrad',
            'email': 'newgrad@test.com',
            'password': 'Sturdy-Passw0rd!',
            'password_confirm': 'Sturdy-Passw0rd!',
            'role': 'alumni',
            'college': self.college.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'alumni')
        self.assertIn('access', response.data)

    def test_register_cannot_choose_staff_role(self):
        """Test self registration refuses staff roles"""
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'sneaky',
            'email': 'sneaky@test.com',
            'password': 'Sturdy-Passw0rd!',
            'password_confirm': 'Sturdy-Passw0rd!',
            'role': 'college_admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('role', response.data)

    def test_register_password_mismatch(self):
        """Test self registration with mismatched passwords"""
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'typo',
            'email': 'typo@test.com',
            'password': 'Sturdy-Passw0rd!',
            'password_confirm': 'Sturdy-Passw0rd?',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unauthenticated_request_rejected(self):
        """Test protected endpoint without credentials"""
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_includes_capabilities(self):
        """Test current user endpoint exposes capability flags"""
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'asha')
        self.assertFalse(response.data['is_admin'])
        self.assertFalse(response.data['can_review_registrations'])


class UserManagementTests(TestCase):
    """Test user CRUD for admins"""

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.other_college = TestDataFactory.create_college()
        self.admin = TestDataFactory.create_staff(self.college, role=User.ROLE_COLLEGE_ADMIN)
        self.alumnus = TestDataFactory.create_alumni(self.college)
        self.outsider = TestDataFactory.create_alumni(self.other_college)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_users_scoped_to_college(self):
        """Test college admin only sees users of their college"""
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = {row['id'] for row in response.data}
        self.assertIn(self.alumnus.id, ids)
        self.assertNotIn(self.outsider.id, ids)

    def test_create_user_in_own_college(self):
        """Test college admin creates a staff user"""
        response = self.client.post('/api/v1/users/', {
            'username': 'hod1',
            'email': 'hod1@test.com',
            'password': 'Sturdy-Passw0rd!',
            'password_confirm': 'Sturdy-Passw0rd!',
            'role': 'hod',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['college'], self.college.id)

    def test_college_admin_cannot_create_super_admin(self):
        """Test college admin cannot grant the super admin role"""
        response = self.client.post('/api/v1/users/', {
            'username': 'boss',
            'email': 'boss@test.com',
            'password': 'Sturdy-Passw0rd!',
            'password_confirm': 'Sturdy-Passw0rd!',
            'role': 'super_admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_view_user_of_other_college(self):
        """Test user detail is scoped to the admin's college"""
        response = self.client.get(f'/api/v1/users/{self.outsider.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cannot_delete_self(self):
        """Test admin cannot delete their own account"""
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_alumni_cannot_manage_users(self):
        """Test non-admin roles are refused"""
        self.client.authenticate_user(self.alumnus)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CollegeTests(TestCase):
    """Test college endpoints"""

    def setUp(self):
        self.super_admin = TestDataFactory.create_super_admin()
        self.college = TestDataFactory.create_college()
        self.admin = TestDataFactory.create_staff(self.college, role=User.ROLE_COLLEGE_ADMIN)
        self.client = AuthenticatedAPIClient()

    def test_super_admin_creates_college(self):
        """Test super admin can create a college"""
        self.client.authenticate_user(self.super_admin)
        response = self.client.post('/api/v1/colleges/', {'name': 'North Campus', 'code': 'NC01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_college_admin_cannot_create_college(self):
        """Test college admin cannot create colleges"""
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/colleges/', {'name': 'South Campus', 'code': 'SC01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_colleges(self):
        """Test any authenticated user can list colleges"""
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/colleges/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(any(row['id'] == self.college.id for row in response.data))


class AuditLogTests(TestCase):
    """Test audit log creation and visibility"""

    def setUp(self):
        self.college = TestDataFactory.create_college()
        self.other_college = TestDataFactory.create_college()
        self.admin = TestDataFactory.create_staff(self.college, role=User.ROLE_COLLEGE_ADMIN)
        self.alumnus = TestDataFactory.create_alumni(self.college)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_audit_log_defaults_college_to_actor(self):
        """Test audit entries inherit the acting user's college"""
        log = create_audit_log(user=self.admin, action='create', model_name='Event', object_id=1, object_name='Reunion')
        self.assertIsNotNone(log)
        self.assertEqual(log.college_id, self.college.id)

    def test_create_audit_log_skips_incomplete_entries(self):
        """Test audit log without required fields is skipped"""
        self.assertIsNone(create_audit_log(user=self.admin, action='create'))

    def test_admin_sees_only_own_college_logs(self):
        """Test college admin audit log visibility"""
        create_audit_log(user=self.alumnus, action='create', model_name='Donation', object_id=1)
        create_audit_log(user=self.admin, action='create', model_name='Donation', object_id=2,
                         college=self.other_college)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['object_id'], '1')

    def test_member_sees_only_own_logs(self):
        """Test non-admins see their own entries"""
        create_audit_log(user=self.alumnus, action='create', model_name='Donation', object_id=1)
        create_audit_log(user=self.admin, action='create', model_name='Donation', object_id=2)
        self.client.authenticate_user(self.alumnus)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['count'], 1)

    def test_filter_by_action(self):
        """Test filtering audit logs by action"""
        create_audit_log(user=self.admin, action='create', model_name='Event', object_id=1)
        create_audit_log(user=self.admin, action='delete', model_name='Event', object_id=1)
        response = self.client.get('/api/v1/audit-logs/?action=delete')
        self.assertEqual(response.data['count'], 1)

    def test_invalid_date_filter(self):
        """Test malformed dates are rejected"""
        response = self.client.get('/api/v1/audit-logs/?date_from=17-10-2026')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_of_other_college_forbidden(self):
        """Test college admin cannot read another college's entry"""
        log = AuditLog.objects.create(action='create', model_name='Event', object_id='9', college=self.other_college)
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class HelperTests(TestCase):
    """Test permission, pagination and cache helpers"""

    def setUp(self):
        self.factory = RequestFactory()
        self.college = TestDataFactory.create_college()
        cache.clear()

    def _request(self, query=''):
        return Request(self.factory.get(f'/api/v1/anything/{query}'))

    def test_page_params_defaults(self):
        """Test default page and limit"""
        self.assertEqual(get_page_params(self._request()), (1, 20))

    def test_page_params_bad_input(self):
        """Test non-numeric page params fall back to defaults"""
        self.assertEqual(get_page_params(self._request('?page=abc&limit=x')), (1, 20))

    def test_page_params_limit_capped(self):
        """Test limit is capped at the maximum page size"""
        self.assertEqual(get_page_params(self._request('?limit=1000')), (1, 100))

    def test_paginate_metadata(self):
        """Test pagination metadata for a list"""
        items, meta = paginate(self._request('?page=2&limit=2'), list(range(5)))
        self.assertEqual(items, [2, 3])
        self.assertEqual(meta['count'], 5)
        self.assertEqual(meta['total_pages'], 3)
        self.assertEqual(meta['next'], 3)
        self.assertEqual(meta['previous'], 1)

    def test_superuser_counts_as_super_admin(self):
        """Test Django superusers are treated as super admins"""
        user = TestDataFactory.create_user(role=User.ROLE_STAFF, is_superuser=True)
        self.assertTrue(is_super_admin(user))

    def test_review_requires_college(self):
        """Test staff without a college cannot review registrations"""
        staff = TestDataFactory.create_user(role=User.ROLE_STAFF)
        self.assertFalse(can_review_registrations(staff))
        self.assertTrue(can_review_registrations(TestDataFactory.create_staff(self.college)))

    def test_scope_to_college(self):
        """Test queryset scoping by college"""
        staff = TestDataFactory.create_staff(self.college)
        TestDataFactory.create_alumni(TestDataFactory.create_college())
        scoped = scope_to_college(staff, User.objects.all())
        self.assertTrue(all(user.college_id == self.college.id for user in scoped))

    def test_parse_bool(self):
        """Test query string flag parsing"""
        self.assertTrue(parse_bool('true'))
        self.assertTrue(parse_bool('1'))
        self.assertFalse(parse_bool('no'))
        self.assertIsNone(parse_bool(None))

    def test_engagement_cache_round_trip(self):
        """Test caching and invalidating engagement data"""
        cache_engagement_data(42, {'engagement_score': 55})
        self.assertEqual(get_cached_engagement(42), {'engagement_score': 55})
        invalidate_engagement_cache(42)
        self.assertIsNone(get_cached_engagement(42))
