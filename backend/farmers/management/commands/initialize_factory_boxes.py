"""
Create the fixed factory inventory of boxes ("1".."MAX_BOX_ID")
Usage: python manage.py initialize_factory_boxes
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from backend.farmers.models import Box
from backend.farmers.utils import factory_box_ids


class Command(BaseCommand):
    help = 'Create the factory boxes (1-600) that do not exist yet'

    def add_arguments(self, parser):
        parser.add_argument(
            '--batch-size',
            type=int,
            default=100,
            help='Number of boxes inserted per query (default: 100)',
        )

    def handle(self, *args, **options):
        all_ids = factory_box_ids()
        existing = set(Box.objects.filter(id__in=all_ids).values_list('id', flat=True))

        if len(existing) == len(all_ids):
            self.stdout.write(self.style.SUCCESS('✓ Factory boxes already exist'))
            return

        missing = [box_id for box_id in all_ids if box_id not in existing]
        self.stdout.write(f'Creating {len(missing)} factory boxes...')

        batch_size = options['batch_size']
        with transaction.atomic():
            for start in range(0, len(missing), batch_size):
                batch = missing[start:start + batch_size]
                Box.objects.bulk_create(
                    [Box(id=box_id, type='normal', status=Box.STATUS_AVAILABLE) for box_id in batch],
                    ignore_conflicts=True,
                )
                self.stdout.write(f'  ✓ Created boxes {batch[0]} to {batch[-1]}')

        self.stdout.write(self.style.SUCCESS(f'✓ Factory boxes initialized: {len(all_ids)} available'))
