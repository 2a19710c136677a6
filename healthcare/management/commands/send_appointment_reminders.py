import datetime

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from healthcare.models import Appointment
from healthcare.services.notifications import appointment_reminder, email_user, notify_user


class Command(BaseCommand):
    help = "Email patients a reminder for their appointments tomorrow. Run once a day (e.g. cron at 18:00)."

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Appointment day to remind about (YYYY-MM-DD); defaults to tomorrow')

    def handle(self, *args, **options):
        if options.get('date'):
            try:
                day = datetime.date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid --date {options['date']!r}, expected YYYY-MM-DD")
        else:
            day = timezone.localdate() + datetime.timedelta(days=1)

        due = (
            Appointment.objects.select_related('patient', 'doctor', 'hospital')
            .filter(date=day, status__in=Appointment.ACTIVE_STATUSES, reminder_sent_at__isnull=True)
            .order_by('time', 'pk')
        )
        sent = failed = 0
        for appointment in due:
            subject, body = appointment_reminder(appointment)
            if not email_user(appointment.patient_id, subject, body):
                failed += 1
                continue
            appointment.reminder_sent_at = timezone.now()
            appointment.save(update_fields=['reminder_sent_at', 'updated_at'])
            notify_user(appointment.patient_id, 'appointment.reminder',
                        {'appointmentId': appointment.appointment_id, 'time': appointment.time})
            sent += 1

        self.stdout.write(self.style.SUCCESS(f"Sent {sent} reminders for {day} ({failed} not delivered)"))
