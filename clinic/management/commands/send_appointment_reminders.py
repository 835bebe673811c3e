import time

from django.conf import settings
from django.core.management.base import BaseCommand

from clinic.services.audit import log_action
from clinic.services.jobs import send_due_reminders


class Command(BaseCommand):
    help = "Email reminders for scheduled or confirmed appointments starting in 24-25 hours."

    def add_arguments(self, parser):
        parser.add_argument("--loop", action="store_true", help="Keep running on a fixed interval.")
        parser.add_argument(
            "--interval", type=int, default=None,
            help="Minutes between runs (default: REMINDER_INTERVAL_MINUTES).",
        )

    def handle(self, *args, **options):
        interval = options["interval"] or settings.REMINDER_INTERVAL_MINUTES
        while True:
            sent = send_due_reminders()
            log_action(user=None, action="job:appointment_reminders", detail={"sent": sent})
            self.stdout.write(self.style.SUCCESS(f"Sent {sent} appointment reminder(s)"))
            if not options["loop"]:
                break
            time.sleep(interval * 60)
