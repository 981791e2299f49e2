from django.conf import settings
from django.db import models


class Community(models.Model):
    """A named member group"""
    CATEGORY_CHOICES = [
        ('department', 'Department'),
        ('batch', 'Batch'),
        ('interest', 'Interest'),
        ('professional', 'Professional'),
        ('location', 'Location'),
        ('other', 'Other'),
    ]
    TYPE_CHOICES = [
        ('open', 'Open'),
        ('closed', 'Closed'),
        ('hidden', 'Hidden'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('archived', 'Archived'),
    ]

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(max_length=500)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='other')
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='open')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='communities_created')
    college = models.ForeignKey('core.College', on_delete=models.CASCADE, null=True, blank=True, related_name='communities')
    tags = models.JSONField(default=list, blank=True)
    rules = models.JSONField(default=list, blank=True)
    allow_member_posts = models.BooleanField(default=True)
    require_post_approval = models.BooleanField(default=False)
    member_count = models.PositiveIntegerField(default=0)
    post_count = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def refresh_member_count(self):
        self.member_count = self.memberships.filter(status='approved').count()
        self.save(update_fields=['member_count', 'updated_at'])

    def refresh_post_count(self):
        self.post_count = self.posts.filter(status='approved').count()
        self.save(update_fields=['post_count', 'updated_at'])

    class Meta:
        db_table = 'communities'
        ordering = ['name']
        verbose_name_plural = 'communities'


class CommunityMembership(models.Model):
    ROLE_CHOICES = [
        ('member', 'Member'),
        ('moderator', 'Moderator'),
        ('admin', 'Admin'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('suspended', 'Suspended'),
        ('left', 'Left'),
    ]
    MODERATOR_ROLES = ('moderator', 'admin')

    community = models.ForeignKey(Community, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='community_memberships')
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='member')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    joined_at = models.DateTimeField(null=True, blank=True)
    left_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_memberships')
    suspended_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='suspended_memberships')
    suspension_reason = models.CharField(max_length=200, blank=True)
    suspension_end_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user} in {self.community} ({self.role}, {self.status})"

    @property
    def is_moderator(self):
        return self.status == 'approved' and self.role in self.MODERATOR_ROLES

    class Meta:
        db_table = 'community_memberships'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['community', 'user'], name='unique_community_membership'),
        ]


class CommunityPost(models.Model):
    TYPE_CHOICES = [
        ('text', 'Text'),
        ('image', 'Image'),
        ('video', 'Video'),
        ('poll', 'Poll'),
        ('announcement', 'Announcement'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('deleted', 'Deleted'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
    ]

    community = models.ForeignKey(Community, on_delete=models.CASCADE, related_name='posts')
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='community_posts')
    title = models.CharField(max_length=200, blank=True)
    content = models.TextField(max_length=5000)
    post_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='text')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='approved')
    is_pinned = models.BooleanField(default=False)
    is_announcement = models.BooleanField(default=False)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    tags = models.JSONField(default=list, blank=True)
    like_count = models.PositiveIntegerField(default=0)
    view_count = models.PositiveIntegerField(default=0)
    moderated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='moderated_posts')
    moderation_note = models.CharField(max_length=200, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title or self.content[:50]

    class Meta:
        db_table = 'community_posts'
        ordering = ['-is_pinned', '-created_at']


class PostLike(models.Model):
    post = models.ForeignKey(CommunityPost, on_delete=models.CASCADE, related_name='likes')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='post_likes')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'community_post_likes'
        constraints = [
            models.UniqueConstraint(fields=['post', 'user'], name='unique_post_like'),
        ]
