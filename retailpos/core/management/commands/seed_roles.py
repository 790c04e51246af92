from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand

from retailpos.core.models import PagePermission, PAGE_PERMISSIONS, ROLE_ADMIN, ROLE_CASHIER


class Command(BaseCommand):
    help = 'Create the admin and cashier roles and the page permissions'

    def handle(self, *args, **options):
        created_count = 0
        for name, display_name, description in PAGE_PERMISSIONS:
            permission, created = PagePermission.objects.get_or_create(
                name=name,
                defaults={'display_name': display_name, 'description': description}
            )
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'✓ Created page permission: {name}'))
            else:
                self.stdout.write(f'⊘ Page permission already exists: {name}')

        for role in (ROLE_ADMIN, ROLE_CASHIER):
            group, created = Group.objects.get_or_create(name=role)
            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created role: {role}'))
            else:
                self.stdout.write(f'⊘ Role already exists: {role}')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} page permissions created, {PagePermission.objects.count()} in total'
        ))
