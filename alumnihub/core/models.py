from django.contrib.auth.models import AbstractUser
from django.db import models


class College(models.Model):
    """A college (tenant). Users, communities, events and programs belong to one."""
    name = models.CharField(max_length=200, unique=True)
    code = models.CharField(max_length=20, unique=True)
    address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'colleges'
        ordering = ['name']


class User(AbstractUser):
    """Extended user model with role and college"""
    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_COLLEGE_ADMIN = 'college_admin'
    ROLE_HOD = 'hod'
    ROLE_STAFF = 'staff'
    ROLE_ALUMNI = 'alumni'
    ROLE_STUDENT = 'student'

    ROLE_CHOICES = [
        (ROLE_SUPER_ADMIN, 'Super Admin'),
        (ROLE_COLLEGE_ADMIN, 'College Admin'),
        (ROLE_HOD, 'Head of Department'),
        (ROLE_STAFF, 'Staff'),
        (ROLE_ALUMNI, 'Alumni'),
        (ROLE_STUDENT, 'Student'),
    ]

    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_ALUMNI)
    college = models.ForeignKey(College, on_delete=models.SET_NULL, null=True, blank=True, related_name='users')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('registration_approve', 'Registration Approved'),
        ('registration_reject', 'Registration Rejected'),
        ('registration_reconsider', 'Registration Reconsidered'),
        ('registration_disapprove', 'Registration Disapproved'),
        ('match_run', 'Matching Run'),
        ('match_manual', 'Manual Match'),
        ('match_accept', 'Match Accepted'),
        ('match_reject', 'Match Rejected'),
        ('membership_join', 'Membership Joined'),
        ('membership_leave', 'Membership Left'),
        ('membership_approve', 'Membership Approved'),
        ('membership_reject', 'Membership Rejected'),
        ('membership_suspend', 'Membership Suspended'),
        ('membership_unsuspend', 'Membership Unsuspended'),
        ('membership_promote', 'Membership Promoted'),
        ('membership_demote', 'Membership Demoted'),
        ('membership_remove', 'Membership Removed'),
        ('post_moderate', 'Post Moderated'),
        ('event_register', 'Event Registration'),
        ('event_unregister', 'Event Unregistration'),
        ('event_payment', 'Event Payment Confirmed'),
        ('donation_status', 'Donation Status Changed'),
        ('flag_set', 'Flag Set'),
        ('flag_remove', 'Flag Removed'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    college = models.ForeignKey(College, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., community name, registrant name)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_3d9a1c_idx'),
            models.Index(fields=['action'], name='audit_logs_action_8f2e4b_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_5c7d20_idx'),
        ]
