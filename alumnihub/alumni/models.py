from django.conf import settings
from django.db import models


class AlumniProfile(models.Model):
    """Professional and academic details of an alumnus"""
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='alumni_profile')
    program = models.CharField(max_length=100, blank=True)
    department = models.CharField(max_length=100, blank=True)
    batch_year = models.PositiveIntegerField(null=True, blank=True)
    graduation_year = models.PositiveIntegerField(null=True, blank=True)
    current_company = models.CharField(max_length=200, blank=True)
    current_position = models.CharField(max_length=200, blank=True)
    current_location = models.CharField(max_length=200, blank=True)
    linkedin_url = models.URLField(blank=True)
    bio = models.TextField(blank=True)
    skills = models.JSONField(default=list, blank=True)
    available_for_mentorship = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.user.display_name

    @property
    def college_id(self):
        return self.user.college_id

    class Meta:
        db_table = 'alumni_profiles'
        ordering = ['user__first_name', 'user__last_name']


class AlumniNote(models.Model):
    """Staff note about an alumnus"""
    CATEGORY_CHOICES = [
        ('general', 'General'),
        ('meeting', 'Meeting'),
        ('call', 'Call'),
        ('email', 'Email'),
        ('follow_up', 'Follow Up'),
        ('other', 'Other'),
    ]

    alumni = models.ForeignKey(AlumniProfile, on_delete=models.CASCADE, related_name='notes')
    staff = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='alumni_notes')
    content = models.TextField()
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='general')
    is_private = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Note on {self.alumni} by {self.staff}"

    class Meta:
        db_table = 'alumni_notes'
        ordering = ['-created_at']


class AlumniIssue(models.Model):
    """Issue or request raised on behalf of an alumnus"""
    STATUS_CHOICES = [
        ('open', 'Open'),
        ('in_progress', 'In Progress'),
        ('resolved', 'Resolved'),
        ('closed', 'Closed'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]
    RESOLVED_STATUSES = ('resolved', 'closed')
    PENDING_STATUSES = ('open', 'in_progress')

    alumni = models.ForeignKey(AlumniProfile, on_delete=models.CASCADE, related_name='issues')
    raised_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='raised_alumni_issues')
    title = models.CharField(max_length=200)
    description = models.TextField(max_length=5000)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='open')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='medium')
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_alumni_issues')
    tags = models.JSONField(default=list, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='resolved_alumni_issues')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'alumni_issues'
        ordering = ['-created_at']


class IssueResponse(models.Model):
    issue = models.ForeignKey(AlumniIssue, on_delete=models.CASCADE, related_name='responses')
    staff = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='issue_responses')
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'alumni_issue_responses'
        ordering = ['created_at']


class AlumniFlag(models.Model):
    """Key/value marker on an alumnus (e.g. vip=true, do_not_contact=email)"""
    alumni = models.ForeignKey(AlumniProfile, on_delete=models.CASCADE, related_name='flags')
    flag_type = models.CharField(max_length=50)
    flag_value = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='alumni_flags_set')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.flag_type}={self.flag_value}"

    class Meta:
        db_table = 'alumni_flags'
        ordering = ['flag_type']
        constraints = [
            models.UniqueConstraint(fields=['alumni', 'flag_type'], name='unique_alumni_flag_type'),
        ]


class Message(models.Model):
    """Direct message between two users"""
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_messages')
    recipient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_messages')
    subject = models.CharField(max_length=200, blank=True)
    content = models.TextField()
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'messages'
        ordering = ['-created_at']
