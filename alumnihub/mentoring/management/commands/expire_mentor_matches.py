from django.core.management.base import BaseCommand
from django.utils import timezone

from alumnihub.mentoring.matching import expire_pending_matches
from alumnihub.mentoring.models import MentorMenteeMatch


class Command(BaseCommand):
    help = 'Auto-rejects mentor matches left unanswered past their response deadline'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report expired matches without changing them',
        )

    def handle(self, *args, **options):
        now = timezone.now()
        if options['dry_run']:
            expired = MentorMenteeMatch.objects.filter(
                status=MentorMenteeMatch.STATUS_PENDING, respond_by__lt=now
            ).select_related('mentor_registration', 'mentee_registration')
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))
            for match in expired:
                self.stdout.write(self.style.NOTICE(f"  - Match {match.id}: {match} (respond by {match.respond_by:%Y-%m-%d %H:%M})"))
            self.stdout.write(self.style.WARNING(f"Dry run complete. {expired.count()} matches would expire."))
            return

        count = expire_pending_matches(now)
        self.stdout.write(self.style.SUCCESS(f"Expired {count} matches."))
