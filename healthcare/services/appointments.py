"""
Appointment booking, rescheduling, cancellation and slot availability.

A slot is the tuple ``(doctor, date, time)``; it is taken while an
appointment in one of ``Appointment.ACTIVE_STATUSES`` holds it.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from healthcare.models import Appointment, Hospital, User
from healthcare.serializers.appointments import (
    AppointmentCreateSerializer,
    AppointmentUpdateSerializer,
    AvailabilityQuerySerializer,
    CancelSerializer,
)
from healthcare.serializers.query import AppointmentQuerySerializer
from healthcare.services.access import CREATE, READ, UPDATE, Claim, enforce
from healthcare.services.audit import log_action
from healthcare.services.filters import build_filter, paginate
from healthcare.services.notifications import (
    appointment_cancellation,
    appointment_confirmation,
    email_on_commit,
    notify_on_commit,
)

logger = logging.getLogger(__name__)

RESERVATION_FEE_RATE = Decimal('0.20')
CANCELLATION_REFUND_RATE = Decimal('0.80')
DAY_START_HOUR = 9
DAY_END_HOUR = 17
SLOT_MINUTES = 30

CANCELLED_BY = {
    User.ROLE_PATIENT: 'patient',
    User.ROLE_PROFESSIONAL: 'doctor',
    User.ROLE_STAFF: 'hospital',
    User.ROLE_MANAGER: 'hospital',
}
CLOSED_STATUSES = (Appointment.STATUS_CANCELLED, Appointment.STATUS_COMPLETED)
# fields a patient may change on their own booking
PATIENT_FIELDS = {'date', 'time', 'symptoms', 'notes'}


def _minutes(hhmm: str) -> int:
    hour, minute = hhmm.split(':')
    return int(hour) * 60 + int(minute)


def day_slots() -> list[str]:
    return [
        f"{m // 60:02d}:{m % 60:02d}"
        for m in range(DAY_START_HOUR * 60, DAY_END_HOUR * 60, SLOT_MINUTES)
    ]


def free_slots(booked: list[tuple[str, int]]) -> list[str]:
    """Slots of the working day not overlapping any ``(time, duration)`` booking."""
    free = []
    for slot in day_slots():
        start = _minutes(slot)
        end = start + SLOT_MINUTES
        if not any(start < _minutes(t) + d and end > _minutes(t) for t, d in booked):
            free.append(slot)
    return free


def get_appointment(pk: int) -> Appointment:
    appointment = (
        Appointment.objects.select_related('patient', 'doctor', 'hospital')
        .filter(pk=pk)
        .first()
    )
    if appointment is None:
        raise NotFound('Appointment not found')
    return appointment


def _get_doctor(pk: int) -> User:
    return (
        User.objects.select_related('professional_profile')
        .filter(pk=pk, role=User.ROLE_PROFESSIONAL, professional_profile__isnull=False)
        .first()
    )


def _slot_taken(doctor_id: int, day: date, time: str, exclude_pk=None) -> bool:
    qs = Appointment.objects.filter(doctor_id=doctor_id, date=day, time=time,
                                    status__in=Appointment.ACTIVE_STATUSES)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


def list_appointments(claim: Claim, query_params):
    enforce(claim, Appointment, READ)
    vf = build_filter(AppointmentQuerySerializer, query_params, claim)
    qs = vf.apply(Appointment.objects.select_related('patient', 'doctor', 'hospital'))
    return paginate(qs, vf.page, vf.limit)


def view_appointment(claim: Claim, pk: int) -> Appointment:
    appointment = get_appointment(pk)
    enforce(claim, appointment, READ)
    return appointment


def create_appointment(claim: Claim, data) -> Appointment:
    enforce(claim, Appointment, CREATE)
    s = AppointmentCreateSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if claim.role == User.ROLE_PATIENT:
        patient_id = claim.subject
    elif vd.get('patientID'):
        patient_id = vd['patientID']
    else:
        raise ValidationError({'patientID': 'patientID is required'})
    if not User.objects.filter(pk=patient_id, role=User.ROLE_PATIENT).exists():
        raise ValidationError({'patientID': 'Patient not found'})

    doctor = _get_doctor(vd['doctorID'])
    if doctor is None or not doctor.professional_profile.is_available:
        raise ValidationError({'doctorID': 'Doctor not available'})
    hospital = Hospital.objects.filter(pk=vd['hospitalID'], is_active=True).first()
    if hospital is None:
        raise ValidationError({'hospitalID': 'Hospital not found'})

    fee = doctor.professional_profile.consultation_fee
    appointment = Appointment(
        patient_id=patient_id,
        doctor=doctor,
        hospital=hospital,
        date=vd['date'],
        time=vd['time'],
        appointment_type=vd['type'],
        priority=vd['priority'],
        symptoms=vd['symptoms'],
        notes=vd.get('notes', ''),
        consultation_fee=fee,
        reservation_fee=(fee * RESERVATION_FEE_RATE).quantize(Decimal('0.01')),
    )
    enforce(claim, appointment, CREATE)

    with transaction.atomic():
        if _slot_taken(doctor.pk, vd['date'], vd['time']):
            raise ValidationError({'time': 'Time slot is already booked'})
        appointment.save()
        log_action(actor_id=claim.subject, action='appointment_create', object_type='appointment',
                   object_id=appointment.appointment_id)

    logger.info("appointment %s booked with doctor %s on %s %s",
                appointment.appointment_id, doctor.pk, appointment.date, appointment.time)
    payload = {'appointmentId': appointment.appointment_id, 'date': appointment.date.isoformat(),
               'time': appointment.time}
    notify_on_commit(patient_id, 'appointment.booked', payload)
    notify_on_commit(doctor.pk, 'appointment.booked', payload)
    email_on_commit(patient_id, appointment_confirmation(appointment))
    return appointment


def update_appointment(claim: Claim, pk: int, data) -> Appointment:
    appointment = get_appointment(pk)
    enforce(claim, appointment, UPDATE)
    s = AppointmentUpdateSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if claim.role == User.ROLE_PATIENT and set(vd) - PATIENT_FIELDS:
        raise PermissionDenied('Access denied')
    if appointment.status in CLOSED_STATUSES:
        raise ValidationError({'status': f'A {appointment.status} appointment cannot be changed'})
    if vd.get('status') == Appointment.STATUS_CANCELLED:
        raise ValidationError({'status': 'Use the cancel endpoint to cancel an appointment'})

    new_date = vd.get('date', appointment.date)
    new_time = vd.get('time', appointment.time)
    new_status = vd.get('status', appointment.status)
    with transaction.atomic():
        # any change that leaves the appointment holding a slot re-checks it
        if new_status in Appointment.ACTIVE_STATUSES and _slot_taken(appointment.doctor_id, new_date, new_time,
                                                                     exclude_pk=appointment.pk):
            raise ValidationError({'time': 'Time slot is already booked'})
        for field, value in vd.items():
            setattr(appointment, field, value)
        appointment.save()
        log_action(actor_id=claim.subject, action='appointment_update', object_type='appointment',
                   object_id=appointment.appointment_id, detail={'fields': sorted(vd)})
    return appointment


def cancel_appointment(claim: Claim, pk: int, data) -> Appointment:
    appointment = get_appointment(pk)
    enforce(claim, appointment, UPDATE)
    s = CancelSerializer(data=data)
    s.is_valid(raise_exception=True)

    if appointment.status == Appointment.STATUS_COMPLETED:
        raise ValidationError({'status': 'Cannot cancel completed appointment'})
    if appointment.status == Appointment.STATUS_CANCELLED:
        raise ValidationError({'status': 'Appointment is already cancelled'})

    with transaction.atomic():
        appointment.status = Appointment.STATUS_CANCELLED
        appointment.cancelled_by = CANCELLED_BY[claim.role]
        appointment.cancellation_reason = s.validated_data['reason']
        appointment.cancelled_at = timezone.now()
        if appointment.reservation_fee_paid:
            appointment.refund_amount = (appointment.reservation_fee * CANCELLATION_REFUND_RATE).quantize(Decimal('0.01'))
            appointment.refund_status = 'pending'
        appointment.save()
        log_action(actor_id=claim.subject, action='appointment_cancel', object_type='appointment',
                   object_id=appointment.appointment_id)

    logger.info("appointment %s cancelled by %s", appointment.appointment_id, appointment.cancelled_by)
    payload = {'appointmentId': appointment.appointment_id}
    notify_on_commit(appointment.patient_id, 'appointment.cancelled', payload)
    notify_on_commit(appointment.doctor_id, 'appointment.cancelled', payload)
    email_on_commit(appointment.patient_id, appointment_cancellation(appointment))
    return appointment


def availability(doctor_id: int, query_params) -> dict:
    s = AvailabilityQuerySerializer(data=query_params)
    s.is_valid(raise_exception=True)
    day = s.validated_data['date']

    doctor = _get_doctor(doctor_id)
    if doctor is None:
        raise NotFound('Doctor not found')
    booked = list(
        Appointment.objects.filter(doctor_id=doctor_id, date=day, status__in=Appointment.ACTIVE_STATUSES)
        .values_list('time', 'duration')
    )
    return {
        'doctor': {
            'id': doctor.pk,
            'name': doctor.get_full_name() or doctor.username,
            'specialization': doctor.professional_profile.specialization,
        },
        'date': day.isoformat(),
        'availableSlots': free_slots(booked),
    }
