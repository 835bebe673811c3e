#!/usr/bin/env python
"""
Command line entry point for the appointment system.

Sets ``appointment_system.settings`` as the default settings module and
hands off to Django's management utility.  The background jobs
(``send_appointment_reminders`` and ``alert_expiring_prescriptions``)
and the ``seed_data`` command are run through this script.
"""
import os
import sys


def main() -> None:
    """Run administrative tasks."""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'appointment_system.settings')
    try:
        from django.core.management import execute_from_command_line  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
