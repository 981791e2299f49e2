# Generated manually
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def registration_fields(kind):
    """Columns shared by mentor and mentee registrations"""
    related = f'{kind}registrations'
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('status', models.CharField(choices=[('submitted', 'Submitted'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='submitted', max_length=20)),
        ('title', models.CharField(max_length=5)),
        ('first_name', models.CharField(max_length=30)),
        ('last_name', models.CharField(max_length=30)),
        ('preferred_name', models.CharField(blank=True, max_length=100)),
        ('mobile_number', models.CharField(max_length=20)),
        ('date_of_birth', models.DateField()),
        ('personal_email', models.EmailField(max_length=254)),
        ('preferred_mailing_address', models.CharField(blank=True, default='personal', max_length=20)),
        ('class_of', models.PositiveIntegerField()),
        ('areas_of_mentoring', models.JSONField(default=list)),
        ('approved_at', models.DateTimeField(blank=True, null=True)),
        ('rejected_at', models.DateTimeField(blank=True, null=True)),
        ('rejection_reason', models.TextField(blank=True)),
        ('submitted_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
        ('college', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name=related, to='core.college')),
        ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name=related, to='mentoring.mentoringprogram')),
        ('rejected_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='MentoringProgram',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=75)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('short_description', models.CharField(blank=True, max_length=250)),
                ('description', models.TextField(blank=True)),
                ('areas_of_mentoring', models.JSONField(blank=True, default=list)),
                ('registration_end_date_mentor', models.DateField()),
                ('registration_end_date_mentee', models.DateField()),
                ('matching_end_date', models.DateField(blank=True, help_text='Registrations can no longer be approved or rejected after this date', null=True)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('published', 'Published'), ('archived', 'Archived')], default='draft', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('college', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='mentoring_programs', to='core.college')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='programs_created', to=settings.AUTH_USER_MODEL)),
                ('manager', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='managed_programs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'mentoring_programs',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='MentorRegistration',
            fields=registration_fields('mentor') + [
                ('current_position', models.CharField(blank=True, max_length=200)),
                ('current_company', models.CharField(blank=True, max_length=200)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='mentor_registrations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'mentor_registrations',
                'ordering': ['-submitted_at'],
                'abstract': False,
                'constraints': [models.UniqueConstraint(fields=('program', 'user'), name='unique_mentor_registration')],
            },
        ),
        migrations.CreateModel(
            name='MenteeRegistration',
            fields=registration_fields('mentee') + [
                ('student_id', models.CharField(blank=True, max_length=50)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='mentee_registrations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'mentee_registrations',
                'ordering': ['-submitted_at'],
                'abstract': False,
                'constraints': [models.UniqueConstraint(fields=('program', 'personal_email'), name='unique_mentee_registration')],
            },
        ),
        migrations.CreateModel(
            name='ApprovalHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('approve', 'Approve'), ('reject', 'Reject'), ('reconsider', 'Reconsider'), ('disapprove', 'Disapprove')], max_length=20)),
                ('from_status', models.CharField(max_length=20)),
                ('to_status', models.CharField(max_length=20)),
                ('performed_at', models.DateTimeField(auto_now_add=True)),
                ('reason', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('mentee_registration', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='history', to='mentoring.menteeregistration')),
                ('mentor_registration', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='history', to='mentoring.mentorregistration')),
                ('performed_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approval_actions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'mentoring_approval_history',
                'ordering': ['-performed_at', '-id'],
                'verbose_name_plural': 'approval history',
            },
        ),
        migrations.CreateModel(
            name='MentorshipCommunication',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('subject', models.CharField(blank=True, max_length=200)),
                ('body', models.TextField()),
                ('sent_at', models.DateTimeField(auto_now_add=True)),
                ('is_read', models.BooleanField(default=False)),
                ('from_user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='mentorship_sent', to=settings.AUTH_USER_MODEL)),
                ('program', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='communications', to='mentoring.mentoringprogram')),
                ('to_user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='mentorship_received', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'mentorship_communications',
                'ordering': ['-sent_at'],
            },
        ),
    ]
