from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission


class Command(BaseCommand):
    help = 'Create the user groups: Admin (full access) and Operator (mill operations, no user management)'

    def handle(self, *args, **options):
        groups_config = [
            {
                'name': 'Operator',
                'description': 'Mill staff - farmers, boxes, sessions, payments, stock; no user management',
            },
            {
                'name': 'Admin',
                'description': 'Mill owner - full system access including users and audit history',
            },
        ]

        created_count = 0
        existing_count = 0

        for group_config in groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                existing_count += 1

            if group_config['name'] == 'Admin':
                group.permissions.set(Permission.objects.all())
                self.stdout.write('  Added all permissions to Admin group')
            else:
                operator_permissions = Permission.objects.exclude(
                    content_type__app_label__in=['admin', 'auth', 'contenttypes', 'sessions']
                ).exclude(
                    content_type__app_label='core',
                    content_type__model='user',
                )
                group.permissions.set(operator_permissions)
                self.stdout.write(f'  Added operation permissions to {group_config["name"]} group')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {existing_count} groups already existed'
        ))
