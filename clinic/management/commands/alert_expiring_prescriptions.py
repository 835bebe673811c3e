import time

from django.conf import settings
from django.core.management.base import BaseCommand

from clinic.services.audit import log_action
from clinic.services.jobs import alert_expiring_prescriptions


class Command(BaseCommand):
    help = "Notify patients about prescriptions expiring soon and expire overdue ones."

    def add_arguments(self, parser):
        parser.add_argument("--loop", action="store_true", help="Keep running on a fixed interval.")
        parser.add_argument(
            "--interval", type=float, default=None,
            help="Hours between runs (default: EXPIRY_ALERT_INTERVAL_HOURS).",
        )

    def handle(self, *args, **options):
        interval = options["interval"] or settings.EXPIRY_ALERT_INTERVAL_HOURS
        while True:
            alerted, expired = alert_expiring_prescriptions()
            log_action(user=None, action="job:prescription_expiry",
                       detail={"alerted": alerted, "expired": expired})
            self.stdout.write(self.style.SUCCESS(f"Alerted {alerted} prescription(s), expired {expired}"))
            if not options["loop"]:
                break
            time.sleep(interval * 3600)
