# agency/management/commands/seed_seasonal_periods.py
from django.core.management.base import BaseCommand

from agency.models import Location
from agency.seasons import seed_location_periods, template_for_location


class Command(BaseCommand):
    help = "Creates template seasonal periods for every location that has none."

    def handle(self, *args, **options):
        created = seeded = skipped = 0

        for location in Location.objects.all():
            count = seed_location_periods(location)
            if count:
                seeded += 1
                created += count
                self.stdout.write(
                    f"✅ {location.label}: {template_for_location(location.label)} "
                    f"({count} periods)"
                )
            else:
                skipped += 1
                self.stdout.write(f"⏭️  {location.label}: already has periods")

        self.stdout.write(
            self.style.SUCCESS(
                f"Seeded {seeded} locations, {created} periods created, "
                f"{skipped} skipped."
            )
        )
