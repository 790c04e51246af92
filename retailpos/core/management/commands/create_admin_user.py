from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError

from retailpos.core.models import PagePermission, ROLE_ADMIN

User = get_user_model()


class Command(BaseCommand):
    help = 'Create an admin account, or update the password and role of an existing one'

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, default='admin@example.com')
        parser.add_argument('--password', type=str, required=True)
        parser.add_argument('--name', type=str, default='Administrator')

    def handle(self, *args, **options):
        email = options['email']
        password = options['password']
        if len(password) < 8:
            raise CommandError('Password must be at least 8 characters long')

        user = User.objects.filter(email=email).first()
        if user is None:
            user = User.objects.create_user(
                username=email, email=email, password=password, name=options['name']
            )
            self.stdout.write(self.style.SUCCESS(f'✓ Created admin user: {email}'))
        else:
            user.set_password(password)
            user.is_active = True
            user.save()
            self.stdout.write(f'⊘ User already exists, password reset: {email}')

        user.is_staff = True
        user.is_superuser = True
        user.save(update_fields=['is_staff', 'is_superuser'])

        group, _ = Group.objects.get_or_create(name=ROLE_ADMIN)
        user.groups.add(group)
        user.page_permissions.set(PagePermission.objects.all())
        self.stdout.write(self.style.SUCCESS(f'Admin role assigned to {email}'))
