# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='auditlog',
            name='action',
            field=models.CharField(choices=[('create', 'Create'), ('update', 'Update'), ('delete', 'Delete'), ('registration_approve', 'Registration Approved'), ('registration_reject', 'Registration Rejected'), ('registration_reconsider', 'Registration Reconsidered'), ('registration_disapprove', 'Registration Disapproved'), ('match_run', 'Matching Run'), ('match_manual', 'Manual Match'), ('match_accept', 'Match Accepted'), ('match_reject', 'Match Rejected'), ('membership_join', 'Membership Joined'), ('membership_leave', 'Membership Left'), ('membership_approve', 'Membership Approved'), ('membership_reject', 'Membership Rejected'), ('membership_suspend', 'Membership Suspended'), ('membership_unsuspend', 'Membership Unsuspended'), ('membership_promote', 'Membership Promoted'), ('membership_demote', 'Membership Demoted'), ('membership_remove', 'Membership Removed'), ('post_moderate', 'Post Moderated'), ('event_register', 'Event Registration'), ('event_unregister', 'Event Unregistration'), ('event_payment', 'Event Payment Confirmed'), ('donation_status', 'Donation Status Changed'), ('flag_set', 'Flag Set'), ('flag_remove', 'Flag Removed')], max_length=50),
        ),
    ]
