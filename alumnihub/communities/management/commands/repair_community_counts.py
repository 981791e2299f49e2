from django.core.management.base import BaseCommand
from django.db import transaction

from alumnihub.communities.models import Community


class Command(BaseCommand):
    help = 'Recomputes member_count and post_count of every community from the membership and post tables'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report differences without saving changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        communities = Community.objects.all()
        self.stdout.write(f"Checking counters of {communities.count()} communities...")

        repaired = 0
        with transaction.atomic():
            for community in communities.select_for_update():
                members = community.memberships.filter(status='approved').count()
                posts = community.posts.filter(status='approved').count()
                if community.member_count == members and community.post_count == posts:
                    continue

                repaired += 1
                self.stdout.write(self.style.NOTICE(
                    f"  - {community.name} (ID: {community.id}): "
                    f"members {community.member_count} -> {members}, posts {community.post_count} -> {posts}"
                ))
                if not dry_run:
                    community.member_count = members
                    community.post_count = posts
                    community.save(update_fields=['member_count', 'post_count', 'updated_at'])

        if dry_run:
            self.stdout.write(self.style.WARNING(f"Dry run complete. {repaired} communities need repair."))
        else:
            self.stdout.write(self.style.SUCCESS(f"Repaired {repaired} communities."))
