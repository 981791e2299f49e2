from django.conf import settings
from django.db import models


class MentoringProgram(models.Model):
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('published', 'Published'),
        ('archived', 'Archived'),
    ]

    name = models.CharField(max_length=75)
    category = models.CharField(max_length=100, blank=True)
    short_description = models.CharField(max_length=250, blank=True)
    description = models.TextField(blank=True)
    areas_of_mentoring = models.JSONField(default=list, blank=True)
    registration_end_date_mentor = models.DateField()
    registration_end_date_mentee = models.DateField()
    matching_end_date = models.DateField(null=True, blank=True, help_text="Registrations can no longer be approved or rejected after this date")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    manager = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='managed_programs')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='programs_created')
    college = models.ForeignKey('core.College', on_delete=models.CASCADE, null=True, blank=True, related_name='mentoring_programs')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'mentoring_programs'
        ordering = ['-created_at']


class RegistrationBase(models.Model):
    """Fields shared by mentor and mentee registrations"""
    STATUS_SUBMITTED = 'submitted'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_SUBMITTED, 'Submitted'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    program = models.ForeignKey(MentoringProgram, on_delete=models.CASCADE, related_name='%(class)ss')
    college = models.ForeignKey('core.College', on_delete=models.CASCADE, null=True, blank=True, related_name='%(class)ss')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_SUBMITTED)
    title = models.CharField(max_length=5)
    first_name = models.CharField(max_length=30)
    last_name = models.CharField(max_length=30)
    preferred_name = models.CharField(max_length=100, blank=True)
    mobile_number = models.CharField(max_length=20)
    date_of_birth = models.DateField()
    personal_email = models.EmailField()
    preferred_mailing_address = models.CharField(max_length=20, default='personal', blank=True)
    class_of = models.PositiveIntegerField()
    areas_of_mentoring = models.JSONField(default=list)
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    submitted_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return f"{self.full_name} ({self.status})"

    class Meta:
        abstract = True
        ordering = ['-submitted_at']


class MentorRegistration(RegistrationBase):
    TITLE_CHOICES = [('Mr', 'Mr'), ('Mrs', 'Mrs'), ('Ms', 'Ms'), ('Dr', 'Dr')]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='mentor_registrations')
    current_position = models.CharField(max_length=200, blank=True)
    current_company = models.CharField(max_length=200, blank=True)

    class Meta(RegistrationBase.Meta):
        db_table = 'mentor_registrations'
        constraints = [
            models.UniqueConstraint(fields=['program', 'user'], name='unique_mentor_registration'),
        ]


class MenteeRegistration(RegistrationBase):
    TITLE_CHOICES = [('Mr', 'Mr'), ('Mrs', 'Mrs'), ('Ms', 'Ms')]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='mentee_registrations')
    student_id = models.CharField(max_length=50, blank=True)
    preferred_mentors = models.JSONField(default=list, blank=True, help_text="Mentor registration ids, first choice first")
    preferences_submitted_at = models.DateTimeField(null=True, blank=True)

    class Meta(RegistrationBase.Meta):
        db_table = 'mentee_registrations'
        constraints = [
            models.UniqueConstraint(fields=['program', 'personal_email'], name='unique_mentee_registration'),
        ]


class ApprovalHistory(models.Model):
    """One row per status transition of a mentor or mentee registration"""
    ACTION_CHOICES = [
        ('approve', 'Approve'),
        ('reject', 'Reject'),
        ('reconsider', 'Reconsider'),
        ('disapprove', 'Disapprove'),
    ]

    mentor_registration = models.ForeignKey(MentorRegistration, on_delete=models.CASCADE, null=True, blank=True, related_name='history')
    mentee_registration = models.ForeignKey(MenteeRegistration, on_delete=models.CASCADE, null=True, blank=True, related_name='history')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    from_status = models.CharField(max_length=20)
    to_status = models.CharField(max_length=20)
    performed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='approval_actions')
    performed_at = models.DateTimeField(auto_now_add=True)
    reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'mentoring_approval_history'
        ordering = ['-performed_at', '-id']
        verbose_name_plural = 'approval history'


class MentorMenteeMatch(models.Model):
    """A mentee offered to a mentor within a program"""
    TYPE_PREFERRED = 'preferred'
    TYPE_ALGORITHM = 'algorithm'
    TYPE_MANUAL = 'manual'
    TYPE_CHOICES = [
        (TYPE_PREFERRED, 'Preferred'),
        (TYPE_ALGORITHM, 'Algorithm'),
        (TYPE_MANUAL, 'Manual'),
    ]
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'
    STATUS_AUTO_REJECTED = 'auto_rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending mentor acceptance'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_AUTO_REJECTED, 'Auto rejected'),
    ]
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED)
    DECLINED_STATUSES = (STATUS_REJECTED, STATUS_AUTO_REJECTED)

    program = models.ForeignKey(MentoringProgram, on_delete=models.CASCADE, related_name='matches')
    college = models.ForeignKey('core.College', on_delete=models.CASCADE, null=True, blank=True, related_name='mentor_matches')
    mentor_registration = models.ForeignKey(MentorRegistration, on_delete=models.CASCADE, related_name='matches')
    mentee_registration = models.ForeignKey(MenteeRegistration, on_delete=models.CASCADE, related_name='matches')
    match_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    score = models.DecimalField(max_digits=4, decimal_places=1, default=0)
    score_breakdown = models.JSONField(default=dict, blank=True)
    preferred_order = models.PositiveSmallIntegerField(null=True, blank=True)
    respond_by = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    matched_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    matched_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.mentee_registration.full_name} -> {self.mentor_registration.full_name} ({self.status})"

    class Meta:
        db_table = 'mentor_mentee_matches'
        ordering = ['-matched_at', '-id']
        verbose_name_plural = 'mentor mentee matches'
        indexes = [
            models.Index(fields=['program', 'status'], name='mentor_matc_program_7b1e2a_idx'),
            models.Index(fields=['respond_by'], name='mentor_matc_respond_4c9d0f_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['mentee_registration'],
                condition=models.Q(status__in=['pending', 'accepted']),
                name='unique_active_mentee_match',
            ),
        ]


class MentorshipCommunication(models.Model):
    """Message exchanged within a mentoring program"""
    program = models.ForeignKey(MentoringProgram, on_delete=models.SET_NULL, null=True, blank=True, related_name='communications')
    from_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='mentorship_sent')
    to_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='mentorship_received')
    subject = models.CharField(max_length=200, blank=True)
    body = models.TextField()
    sent_at = models.DateTimeField(auto_now_add=True)
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = 'mentorship_communications'
        ordering = ['-sent_at']
