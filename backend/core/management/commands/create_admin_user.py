"""
Create the default administrator account and the Admin group
Usage: python manage.py create_admin_user [--username admin] [--password ...] [--reset-password]
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand
from django.db import transaction

User = get_user_model()


class Command(BaseCommand):
    help = 'Create the default admin user (and the Admin group) if it does not exist'

    def add_arguments(self, parser):
        parser.add_argument('--username', default='admin', help='Admin username (default: admin)')
        parser.add_argument('--password', default='admin123', help='Admin password (default: admin123)')
        parser.add_argument('--email', default='admin@olive-oil.com', help='Admin email')
        parser.add_argument(
            '--reset-password',
            action='store_true',
            help='Reset the password when the user already exists',
        )

    def handle(self, *args, **options):
        username = options['username']

        with transaction.atomic():
            admin_group, _ = Group.objects.get_or_create(name='Admin')
            user = User.objects.filter(username=username).first()

            if user:
                if options['reset_password']:
                    user.set_password(options['password'])
                    user.save(update_fields=['password'])
                    self.stdout.write(self.style.SUCCESS(f'✓ Password reset for "{username}"'))
                else:
                    self.stdout.write(self.style.WARNING(f'Admin user "{username}" already exists'))
                user.groups.add(admin_group)
                return

            user = User.objects.create_superuser(
                username=username,
                email=options['email'],
                password=options['password'],
                first_name='Admin',
                last_name='System',
            )
            user.groups.add(admin_group)

        self.stdout.write(self.style.SUCCESS(f'✓ Admin user "{username}" created'))
        self.stdout.write(self.style.WARNING('Please change the password after first login'))
