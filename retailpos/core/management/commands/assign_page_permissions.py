from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from retailpos.core.models import PagePermission

User = get_user_model()


class Command(BaseCommand):
    help = 'Give every existing user all page permissions'

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, help='Only update the user with this email')

    def handle(self, *args, **options):
        permissions = list(PagePermission.objects.all())
        if not permissions:
            self.stdout.write(self.style.WARNING('No page permissions found, run seed_roles first'))
            return

        users = User.objects.all()
        if options.get('email'):
            users = users.filter(email=options['email'])

        updated = 0
        for user in users:
            user.page_permissions.set(permissions)
            updated += 1
            self.stdout.write(f'✓ {user.email}: {len(permissions)} page permissions')

        self.stdout.write(self.style.SUCCESS(f'\nCompleted: {updated} users updated'))
