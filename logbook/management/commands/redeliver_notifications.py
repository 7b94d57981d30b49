from django.conf import settings
from django.core.management.base import BaseCommand

from logbook.tasks import redeliver_pending


class Command(BaseCommand):
    help = "Re-enqueue admin notifications whose outbox row is FAILED or still PENDING after N minutes."

    def add_arguments(self, parser):
        parser.add_argument(
            "--minutes",
            type=int,
            default=getattr(settings, "REDELIVER_NOTIFICATIONS_AFTER_MINUTES", 10),
            help="Only PENDING rows older than N minutes are re-enqueued (FAILED rows always are).",
        )

    def handle(self, *args, **options):
        minutes = options["minutes"]
        enqueued = redeliver_pending(minutes)
        self.stdout.write(self.style.SUCCESS(f"Re-enqueued {enqueued} outbox row(s) (pending > {minutes} min or failed)."))
