"""
Role helpers and DRF permission classes.

Roles come from User.role. Django superusers count as super admins so the
admin site account can operate the API.
"""
from rest_framework.permissions import BasePermission

from .models import User

STAFF_ROLES = (User.ROLE_COLLEGE_ADMIN, User.ROLE_HOD, User.ROLE_STAFF)
ADMIN_ROLES = (User.ROLE_SUPER_ADMIN, User.ROLE_COLLEGE_ADMIN)


def is_super_admin(user):
    if not user or not user.is_authenticated:
        return False
    return user.role == User.ROLE_SUPER_ADMIN or user.is_superuser


def is_admin(user):
    """Super admins and college admins"""
    return is_super_admin(user) or (user.is_authenticated and user.role == User.ROLE_COLLEGE_ADMIN)


def is_college_staff(user):
    """College admin, HOD or staff of a college"""
    return bool(user and user.is_authenticated and user.role in STAFF_ROLES)


def can_manage_alumni(user):
    return is_super_admin(user) or is_college_staff(user)


def can_review_registrations(user):
    """Only college roles adjudicate mentoring registrations"""
    return is_college_staff(user) and user.college_id is not None


def same_college(user, college_id):
    """True when the user may act inside the given college"""
    if is_super_admin(user):
        return True
    return user.college_id is not None and user.college_id == college_id


def scope_to_college(user, queryset, field='college'):
    """Restrict a queryset to the user's college unless the user is a super admin"""
    if is_super_admin(user):
        return queryset
    return queryset.filter(**{f'{field}_id': user.college_id})


class IsSuperAdmin(BasePermission):
    message = 'Super admin access required.'

    def has_permission(self, request, view):
        return is_super_admin(request.user)


class IsAdminRole(BasePermission):
    message = 'Admin access required.'

    def has_permission(self, request, view):
        return is_admin(request.user)


class IsCollegeStaff(BasePermission):
    message = 'Staff access required.'

    def has_permission(self, request, view):
        return can_manage_alumni(request.user)
