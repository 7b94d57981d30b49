from django.core.management.base import BaseCommand

from logbook.services.metrics import reset_metrics


class Command(BaseCommand):
    help = "Reset the Redis counters used by the admin feed for notification delivery."

    def handle(self, *args, **options):
        reset_metrics()
        self.stdout.write(self.style.SUCCESS("Metrics reset."))
