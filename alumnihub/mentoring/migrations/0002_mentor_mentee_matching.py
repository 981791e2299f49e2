# Generated manually
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0002_auditlog_match_actions'),
        ('mentoring', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.AddField(
            model_name='menteeregistration',
            name='preferred_mentors',
            field=models.JSONField(blank=True, default=list, help_text='Mentor registration ids, first choice first'),
        ),
        migrations.AddField(
            model_name='menteeregistration',
            name='preferences_submitted_at',
            field=models.DateTimeField(blank=True, null=True),
        ),
        migrations.CreateModel(
            name='MentorMenteeMatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('match_type', models.CharField(choices=[('preferred', 'Preferred'), ('algorithm', 'Algorithm'), ('manual', 'Manual')], max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending mentor acceptance'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('auto_rejected', 'Auto rejected')], default='pending', max_length=20)),
                ('score', models.DecimalField(decimal_places=1, default=0, max_digits=4)),
                ('score_breakdown', models.JSONField(blank=True, default=dict)),
                ('preferred_order', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('respond_by', models.DateTimeField(blank=True, null=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('matched_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('college', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='mentor_matches', to='core.college')),
                ('matched_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('mentee_registration', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='matches', to='mentoring.menteeregistration')),
                ('mentor_registration', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='matches', to='mentoring.mentorregistration')),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='matches', to='mentoring.mentoringprogram')),
            ],
            options={
                'db_table': 'mentor_mentee_matches',
                'ordering': ['-matched_at', '-id'],
                'verbose_name_plural': 'mentor mentee matches',
                'indexes': [models.Index(fields=['program', 'status'], name='mentor_matc_program_7b1e2a_idx'), models.Index(fields=['respond_by'], name='mentor_matc_respond_4c9d0f_idx')],
                'constraints': [models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'accepted'])), fields=('mentee_registration',), name='unique_active_mentee_match')],
            },
        ),
    ]
