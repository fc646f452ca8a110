"""
Management command to clear a season's activity: sessions, payments, ledger,
collections, attendance and audit logs. Farmers, employees, collector groups
and safes are kept; boxes go back to AVAILABLE.
Usage: python manage.py clear_data [--confirm]
"""
from decimal import Decimal
from django.core.management.base import BaseCommand
from django.db import transaction
from backend.collectors.models import DailyCollection, CollectorPayment
from backend.core.cache_signals import suspend_cache_signals, trigger_dashboard_update
from backend.core.models import AuditLog
from backend.employees.models import Attendance, EmployeePayment
from backend.farmers.models import Farmer, Box
from backend.finance.models import Transaction
from backend.processing.models import ProcessingSession, PaymentTransaction


class Command(BaseCommand):
    help = "Clear the season's sessions, payments, ledger, collections, attendance and audit logs"

    def add_arguments(self, parser):
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Skip confirmation prompt',
        )

    def handle(self, *args, **options):
        if not options['confirm']:
            self.stdout.write(self.style.WARNING('⚠️  WARNING: This will delete ALL:'))
            self.stdout.write('  - Processing sessions (and their boxes and payment transactions)')
            self.stdout.write('  - Ledger transactions')
            self.stdout.write('  - Daily collections and collector payments')
            self.stdout.write('  - Attendance and employee payments')
            self.stdout.write('  - Audit logs')
            self.stdout.write('Every box is released and chkara sacks are removed.')
            self.stdout.write('')

            confirm = input('Type "YES" to confirm: ')
            if confirm != 'YES':
                self.stdout.write(self.style.ERROR('Operation cancelled.'))
                return

        self.stdout.write('Starting data cleanup...')

        # Order matters: children before parents
        steps = [
            ('Ledger Transactions', Transaction.objects.all()),
            ('Payment Transactions', PaymentTransaction.objects.all()),
            ('Processing Sessions', ProcessingSession.objects.all()),
            ('Collector Payments', CollectorPayment.objects.all()),
            ('Daily Collections', DailyCollection.objects.all()),
            ('Employee Payments', EmployeePayment.objects.all()),
            ('Attendance', Attendance.objects.all()),
            ('Chkara Sacks', Box.objects.filter(type='chkara')),
            ('Audit Logs', AuditLog.objects.all()),
        ]

        deleted = {}
        with suspend_cache_signals():
            with transaction.atomic():
                for label, queryset in steps:
                    self.stdout.write(f'Deleting {label}...')
                    count, _ = queryset.delete()
                    deleted[label] = count
                    self.stdout.write(self.style.SUCCESS(f'  ✓ {label} deleted'))

                released = Box.objects.exclude(status=Box.STATUS_AVAILABLE).update(
                    status=Box.STATUS_AVAILABLE,
                    current_farmer=None,
                    current_weight=None,
                    assigned_at=None,
                    is_selected=False,
                )
                Farmer.objects.update(
                    total_amount_due=Decimal('0.000'),
                    total_amount_paid=Decimal('0.000'),
                    payment_status='pending',
                    last_processing_date=None,
                )

        trigger_dashboard_update('Season data cleared')

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS('✅ Data cleanup completed successfully!'))
        self.stdout.write('')
        self.stdout.write('Deleted:')
        for label, count in deleted.items():
            self.stdout.write(f'  - {count} {label}')
        self.stdout.write(f'Released {released} boxes')
