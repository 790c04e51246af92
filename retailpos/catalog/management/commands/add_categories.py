"""
Management command to add the default product categories
"""
from django.core.management.base import BaseCommand
from retailpos.catalog.models import Category

DEFAULT_CATEGORIES = [
    ('Électronique', 'Appareils électroniques et accessoires', '#3B82F6'),
    ('Vêtements', 'Vêtements et accessoires de mode', '#EC4899'),
    ('Alimentation', 'Produits alimentaires et boissons', '#10B981'),
    ('Maison', 'Articles pour la maison et décoration', '#F59E0B'),
    ('Sport', 'Équipements et vêtements de sport', '#EF4444'),
    ('Livres', 'Livres et publications', '#8B5CF6'),
    ('Beauté', 'Produits de beauté et soins', '#F472B6'),
    ('Automobile', 'Pièces et accessoires automobiles', '#6B7280'),
]


class Command(BaseCommand):
    help = "Adds the default product categories to the database"

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete categories without products before adding the defaults',
        )

    def handle(self, *args, **options):
        if options['clear']:
            deleted, _ = Category.objects.filter(products__isnull=True).delete()
            self.stdout.write(self.style.WARNING(f"Deleted {deleted} empty categories"))

        created_count = 0
        skipped_count = 0
        for name, description, color in DEFAULT_CATEGORIES:
            category, created = Category.objects.get_or_create(
                name=name,
                defaults={'description': description, 'color': color, 'is_active': True}
            )
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"  ✓ Created: {name}"))
            else:
                skipped_count += 1
                self.stdout.write(self.style.WARNING(f"  ⊘ Skipped (already exists): {name}"))

        self.stdout.write(f"Categories Created: {created_count}")
        self.stdout.write(f"Categories Skipped (already exist): {skipped_count}")
        self.stdout.write(self.style.SUCCESS(f"Total Categories in Database: {Category.objects.count()}"))
