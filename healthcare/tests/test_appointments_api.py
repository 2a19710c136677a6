import datetime
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from healthcare.models import Appointment
from healthcare.services.appointments import day_slots, free_slots

pytestmark = pytest.mark.django_db


def tomorrow() -> str:
    return (timezone.localdate() + datetime.timedelta(days=1)).isoformat()


def book(client, doctor, hospital, **extra):
    data = {'doctorID': doctor.pk, 'hospitalID': hospital.pk, 'date': tomorrow(), 'time': '9:30',
            'symptoms': ['cough']}
    data.update(extra)
    return client.post(reverse('appointments'), data, format='json')


def test_day_slots_cover_working_hours():
    slots = day_slots()
    assert slots[0] == '09:00'
    assert slots[-1] == '16:30'
    assert len(slots) == 16


def test_free_slots_respect_duration():
    free = free_slots([('10:00', 60)])
    assert '10:00' not in free
    assert '10:30' not in free
    assert '09:30' in free
    assert '11:00' in free


def test_patient_books_for_themselves(api, patient, other_patient, doctor, hospital):
    r = book(api(patient), doctor, hospital, patientID=other_patient.pk)
    assert r.status_code == 201, r.data
    body = r.data['data']['appointment']
    assert body['patientId'] == patient.pk
    assert body['time'] == '09:30'
    assert body['status'] == 'scheduled'
    assert body['consultationFee']['amount'] == '2500.00'
    assert body['reservationFee']['amount'] == '500.00'
    assert body['cancellation'] is None


def test_staff_must_name_the_patient(api, staff, patient, doctor, hospital):
    r = book(api(staff), doctor, hospital)
    assert r.status_code == 400
    assert 'patientID' in r.data['errors']

    r = book(api(staff), doctor, hospital, patientID=patient.pk)
    assert r.status_code == 201


def test_doctors_cannot_book(api, doctor, patient, hospital):
    assert book(api(doctor), doctor, hospital, patientID=patient.pk).status_code == 403


def test_slot_cannot_be_double_booked(api, patient, other_patient, doctor, hospital):
    assert book(api(patient), doctor, hospital).status_code == 201
    r = book(api(other_patient), doctor, hospital, time='09:30')
    assert r.status_code == 400
    assert 'Time slot is already booked' in str(r.data['errors']['time'])


def test_unavailable_doctor(api, patient, doctor, hospital):
    doctor.professional_profile.is_available = False
    doctor.professional_profile.save()
    r = book(api(patient), doctor, hospital)
    assert r.status_code == 400
    assert 'doctorID' in r.data['errors']


def test_bad_time_format(api, patient, doctor, hospital):
    r = book(api(patient), doctor, hospital, time='25:00')
    assert r.status_code == 400
    assert 'time' in r.data['errors']


def test_availability_excludes_booked_slots(api, patient, doctor, hospital):
    book(api(patient), doctor, hospital, time='10:00')
    r = api(patient).get(reverse('doctor_availability', args=[doctor.pk]), {'date': tomorrow()})
    assert r.status_code == 200
    data = r.data['data']
    assert data['doctor']['id'] == doctor.pk
    assert '10:00' not in data['availableSlots']
    assert '09:30' in data['availableSlots']


def test_availability_of_unknown_doctor(api, patient):
    r = api(patient).get(reverse('doctor_availability', args=[999999]), {'date': tomorrow()})
    assert r.status_code == 404


def test_listing_is_scoped(api, patient, other_patient, doctor, other_doctor, hospital):
    book(api(patient), doctor, hospital)
    book(api(other_patient), other_doctor, hospital)

    r = api(patient).get(reverse('appointments'))
    assert [a['patientId'] for a in r.data['data']['appointments']] == [patient.pk]
    r = api(other_doctor).get(reverse('appointments'))
    assert [a['doctorId'] for a in r.data['data']['appointments']] == [other_doctor.pk]


def test_patient_may_only_reschedule(api, patient, doctor, hospital):
    body = book(api(patient), doctor, hospital).data['data']['appointment']
    url = reverse('appointment_detail', args=[body['id']])

    r = api(patient).put(url, {'status': 'confirmed'}, format='json')
    assert r.status_code == 403

    r = api(patient).put(url, {'time': '11:00', 'notes': 'Running late'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['appointment']['time'] == '11:00'


def test_doctor_confirms_own_appointment(api, patient, doctor, other_doctor, hospital):
    body = book(api(patient), doctor, hospital).data['data']['appointment']
    url = reverse('appointment_detail', args=[body['id']])
    assert api(other_doctor).put(url, {'status': 'confirmed'}, format='json').status_code == 403
    r = api(doctor).put(url, {'status': 'confirmed'}, format='json')
    assert r.data['data']['appointment']['status'] == 'confirmed'


def test_cancel_refunds_paid_reservation(api, patient, doctor, hospital):
    body = book(api(patient), doctor, hospital).data['data']['appointment']
    Appointment.objects.filter(pk=body['id']).update(reservation_fee_paid=True)

    url = reverse('appointment_cancel', args=[body['id']])
    r = api(patient).put(url, {'reason': ''}, format='json')
    assert r.status_code == 400

    r = api(patient).put(url, {'reason': 'Feeling better'}, format='json')
    assert r.status_code == 200
    cancellation = r.data['data']['appointment']['cancellation']
    assert cancellation['cancelledBy'] == 'patient'
    assert cancellation['refundAmount'] == '400.00'
    assert cancellation['refundStatus'] == 'pending'

    r = api(patient).put(url, {'reason': 'again'}, format='json')
    assert r.status_code == 400


def test_completed_appointment_cannot_be_cancelled(api, staff, patient, doctor, hospital):
    appointment = Appointment.objects.create(patient=patient, doctor=doctor, hospital=hospital,
                                             date=timezone.localdate(), time='09:00',
                                             status=Appointment.STATUS_COMPLETED,
                                             consultation_fee=Decimal('2500'))
    r = api(staff).put(reverse('appointment_cancel', args=[appointment.pk]), {'reason': 'x'}, format='json')
    assert r.status_code == 400
    assert 'Cannot cancel completed appointment' in str(r.data['errors']['status'])


def test_cancelled_appointment_cannot_be_reactivated(api, staff, patient, other_patient, doctor, hospital):
    first = book(api(patient), doctor, hospital, time='10:00').data['data']['appointment']
    api(patient).put(reverse('appointment_cancel', args=[first['id']]), {'reason': 'Travelling'}, format='json')
    assert book(api(other_patient), doctor, hospital, time='10:00').status_code == 201

    r = api(staff).put(reverse('appointment_detail', args=[first['id']]), {'status': 'scheduled'}, format='json')
    assert r.status_code == 400
    assert 'cannot be changed' in str(r.data['errors']['status'])

    active = Appointment.objects.filter(doctor=doctor, time='10:00', status__in=Appointment.ACTIVE_STATUSES)
    assert active.count() == 1
    assert Appointment.objects.get(pk=first['id']).status == Appointment.STATUS_CANCELLED


def test_returning_to_active_status_rechecks_slot(api, staff, patient, other_patient, doctor, hospital):
    day = timezone.localdate() + datetime.timedelta(days=1)
    missed = Appointment.objects.create(patient=patient, doctor=doctor, hospital=hospital, date=day, time='11:00',
                                        status=Appointment.STATUS_NO_SHOW, consultation_fee=Decimal('2500'))
    assert book(api(other_patient), doctor, hospital, time='11:00').status_code == 201

    r = api(staff).put(reverse('appointment_detail', args=[missed.pk]), {'status': 'scheduled'}, format='json')
    assert r.status_code == 400
    assert 'time' in r.data['errors']
    missed.refresh_from_db()
    assert missed.status == Appointment.STATUS_NO_SHOW


def test_status_update_does_not_cancel(api, staff, patient, doctor, hospital):
    body = book(api(patient), doctor, hospital).data['data']['appointment']
    r = api(staff).put(reverse('appointment_detail', args=[body['id']]), {'status': 'cancelled'}, format='json')
    assert r.status_code == 400
    assert Appointment.objects.get(pk=body['id']).status == Appointment.STATUS_SCHEDULED


def test_booking_and_cancellation_are_emailed(api, patient, doctor, hospital, mailoutbox,
                                              django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        body = book(api(patient), doctor, hospital).data['data']['appointment']
    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == [patient.email]
    assert mailoutbox[0].subject.startswith('Appointment Confirmation')
    assert body['appointmentId'] in mailoutbox[0].body

    Appointment.objects.filter(pk=body['id']).update(reservation_fee_paid=True)
    with django_capture_on_commit_callbacks(execute=True):
        api(patient).put(reverse('appointment_cancel', args=[body['id']]), {'reason': 'Feeling better'},
                         format='json')
    assert len(mailoutbox) == 2
    assert mailoutbox[1].subject.startswith('Appointment Cancelled')
    assert 'Reason: Feeling better' in mailoutbox[1].body
    assert 'LKR 400.00' in mailoutbox[1].body
