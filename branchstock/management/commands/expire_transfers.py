"""
Management command to expire overdue transfer requests.

Usage:
    python manage.py expire_transfers
    python manage.py expire_transfers --dry-run
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from branchstock import stock
from branchstock.models import Transfer


class Command(BaseCommand):
    """Expire overdue transfers command."""

    help = 'Expires pending transfer requests past their expiry time'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many would expire without changing anything'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            due = Transfer.objects.due_for_expiry(timezone.now()).count()

            self.stdout.write(f'{due} transfer(s) would expire')
        else:
            count = stock.expire_due()
            self.stdout.write(
                self.style.SUCCESS(f'{count} transfer(s) expired')
            )
