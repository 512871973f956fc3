# agency/management/commands/categorize_tour_packages.py
from django.core.management.base import BaseCommand

from agency.catalog import recategorize_packages
from agency.models import TourPackage


class Command(BaseCommand):
    help = "Sets Domestic / International on tour packages from location and name keywords."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only report what would change.",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        packages = TourPackage.objects.select_related("location")
        changes = recategorize_packages(packages, dry_run=dry_run)

        for package, previous, suggested in changes:
            self.stdout.write(f"{package.name}: {previous} -> {suggested}")

        verb = "Would update" if dry_run else "Updated"
        self.stdout.write(
            self.style.SUCCESS(
                f"{verb} {len(changes)} of {packages.count()} tour packages."
            )
        )
