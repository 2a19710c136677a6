import datetime
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from healthcare.models import Appointment, Hospital, MedicalRecord, Payment, RecordAccess, User

pytestmark = pytest.mark.django_db


def test_ensure_test_users_is_idempotent():
    call_command('ensure_test_users', stdout=StringIO())
    call_command('ensure_test_users', stdout=StringIO())

    assert User.objects.filter(username__in=['manager1', 'staff1', 'doctor1', 'patient1']).count() == 4
    doctor = User.objects.get(username='doctor1')
    assert doctor.role == User.ROLE_PROFESSIONAL
    assert doctor.professional_profile.professional_id.startswith('DOC')
    assert doctor.check_password('123456')


def test_populate_data():
    out = StringIO()
    call_command('populate_data', '--patients', '4', '--appointments', '30', '--days', '10', '--seed', '7',
                 stdout=out)

    assert 'Demo data created.' in out.getvalue()
    assert Hospital.objects.count() == 3
    assert User.objects.filter(role=User.ROLE_PATIENT).count() == 4
    assert Appointment.objects.exists()

    completed = Appointment.objects.filter(status=Appointment.STATUS_COMPLETED).count()
    assert Payment.objects.count() == completed
    assert MedicalRecord.objects.count() == completed
    assert RecordAccess.objects.filter(action=RecordAccess.ACTION_CREATED).count() == completed
    for payment in Payment.objects.all():
        assert payment.total == payment.subtotal + payment.tax - payment.discount


def test_send_appointment_reminders(patient, other_patient, doctor, hospital, mailoutbox):
    tomorrow = timezone.localdate() + datetime.timedelta(days=1)

    def appointment(who, day, time, status=Appointment.STATUS_SCHEDULED):
        return Appointment.objects.create(patient=who, doctor=doctor, hospital=hospital, date=day, time=time,
                                          status=status, consultation_fee=Decimal('2500'))

    due = appointment(patient, tomorrow, '09:00')
    confirmed = appointment(other_patient, tomorrow, '09:30', Appointment.STATUS_CONFIRMED)
    appointment(patient, tomorrow, '10:00', Appointment.STATUS_CANCELLED)
    appointment(patient, tomorrow + datetime.timedelta(days=1), '09:00')

    out = StringIO()
    call_command('send_appointment_reminders', stdout=out)
    assert 'Sent 2 reminders' in out.getvalue()
    assert sorted(m.to[0] for m in mailoutbox) == sorted([patient.email, other_patient.email])
    assert all(m.subject == 'Appointment Reminder - Tomorrow' for m in mailoutbox)
    due.refresh_from_db()
    confirmed.refresh_from_db()
    assert due.reminder_sent_at is not None
    assert confirmed.reminder_sent_at is not None

    # a second run does not remind again
    call_command('send_appointment_reminders', stdout=StringIO())
    assert len(mailoutbox) == 2


def test_reminder_skips_patients_without_email(patient, doctor, hospital, mailoutbox):
    patient.email = ''
    patient.save(update_fields=['email'])
    day = timezone.localdate() + datetime.timedelta(days=3)
    missed = Appointment.objects.create(patient=patient, doctor=doctor, hospital=hospital, date=day, time='09:00',
                                        consultation_fee=Decimal('2500'))

    out = StringIO()
    call_command('send_appointment_reminders', '--date', day.isoformat(), stdout=out)
    assert '(1 not delivered)' in out.getvalue()
    assert mailoutbox == []
    missed.refresh_from_db()
    assert missed.reminder_sent_at is None


def test_reminder_rejects_bad_date():
    with pytest.raises(CommandError):
        call_command('send_appointment_reminders', '--date', 'tomorrow', stdout=StringIO())
