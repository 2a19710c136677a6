"""
Medical record workflows.

Every operation authorizes first, then performs its change and appends the
matching access-trail entry inside one transaction.  Soft-deleted records
remain reachable by id so their history can be audited.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from healthcare.models import Appointment, Hospital, MedicalRecord, ProgressNote, RecordAccess, RecordAttachment, User
from healthcare.serializers.medical_records import (
    AttachmentUploadSerializer,
    ClinicalContentSerializer,
    MedicalRecordCreateSerializer,
    ProgressNoteCreateSerializer,
)
from healthcare.serializers.query import MedicalRecordQuerySerializer
from healthcare.services.access import ATTACH, CREATE, DELETE, READ, UPDATE, Claim, enforce
from healthcare.services.audit import log_access
from healthcare.services.filters import build_filter, paginate
from healthcare.services.notifications import notify_on_commit

logger = logging.getLogger(__name__)


def get_record(pk: int) -> MedicalRecord:
    record = (
        MedicalRecord.objects.select_related('patient', 'doctor', 'hospital')
        .filter(pk=pk)
        .first()
    )
    if record is None:
        raise NotFound('Medical record not found')
    return record


def _get_user(pk: int, role: str, field: str) -> User:
    user = User.objects.filter(pk=pk, role=role).first()
    if user is None:
        raise ValidationError({field: f'{field} does not refer to a {role.replace("_", " ")}'})
    return user


def list_records(claim: Claim, query_params):
    enforce(claim, MedicalRecord, READ)
    vf = build_filter(MedicalRecordQuerySerializer, query_params, claim)
    qs = vf.apply(MedicalRecord.objects.select_related('patient', 'doctor', 'hospital'))
    return paginate(qs, vf.page, vf.limit)


def create_record(claim: Claim, data) -> MedicalRecord:
    enforce(claim, MedicalRecord, CREATE)
    s = MedicalRecordCreateSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if claim.role == User.ROLE_PROFESSIONAL:
        doctor_id = vd.get('doctorID', claim.subject)
    elif vd.get('doctorID'):
        doctor_id = vd['doctorID']
    else:
        raise ValidationError({'doctorID': 'doctorID is required'})

    patient = _get_user(vd['patientID'], User.ROLE_PATIENT, 'patientID')
    doctor = _get_user(doctor_id, User.ROLE_PROFESSIONAL, 'doctorID')
    hospital = Hospital.objects.filter(pk=vd['hospitalID']).first()
    if hospital is None:
        raise ValidationError({'hospitalID': 'Hospital not found'})
    appointment: Optional[Appointment] = None
    if vd.get('appointmentID'):
        appointment = Appointment.objects.filter(pk=vd['appointmentID']).first()
        if appointment is None:
            raise ValidationError({'appointmentID': 'Appointment not found'})

    record = MedicalRecord(patient=patient, doctor=doctor, hospital=hospital, appointment=appointment,
                           **s.model_values())
    # ownership check on the unsaved instance: professionals only document their own visits
    enforce(claim, record, CREATE)

    with transaction.atomic():
        record.save()
        log_access(record, claim.subject, RecordAccess.ACTION_CREATED)

    logger.info("medical record %s created by %s", record.record_id, claim.subject)
    notify_on_commit(patient.pk, 'medical_record.created', {'recordId': record.record_id})
    return record


def view_record(claim: Claim, pk: int) -> MedicalRecord:
    record = get_record(pk)
    enforce(claim, record, READ)
    with transaction.atomic():
        log_access(record, claim.subject, RecordAccess.ACTION_VIEWED)
    return record


def export_record(claim: Claim, pk: int) -> MedicalRecord:
    record = get_record(pk)
    enforce(claim, record, READ)
    with transaction.atomic():
        log_access(record, claim.subject, RecordAccess.ACTION_EXPORTED)
    return record


def update_record(claim: Claim, pk: int, data) -> MedicalRecord:
    record = get_record(pk)
    enforce(claim, record, UPDATE)
    s = ClinicalContentSerializer(data=data, partial=True)
    s.is_valid(raise_exception=True)
    values = s.model_values()

    with transaction.atomic():
        for field, value in values.items():
            setattr(record, field, value)
        record.save(update_fields=[*values, 'updated_at'])
        log_access(record, claim.subject, RecordAccess.ACTION_EDITED)

    logger.info("medical record %s edited by %s (%s)", record.record_id, claim.subject, ','.join(values))
    return record


def delete_record(claim: Claim, pk: int) -> MedicalRecord:
    record = get_record(pk)
    enforce(claim, record, DELETE)
    with transaction.atomic():
        record.is_active = False
        record.save(update_fields=['is_active', 'updated_at'])
        log_access(record, claim.subject, RecordAccess.ACTION_DELETED)
    logger.info("medical record %s deactivated by %s", record.record_id, claim.subject)
    return record


def add_attachment(claim: Claim, pk: int, data) -> RecordAttachment:
    record = get_record(pk)
    enforce(claim, record, ATTACH)
    s = AttachmentUploadSerializer(data=data)
    s.is_valid(raise_exception=True)
    upload = s.validated_data['file']

    with transaction.atomic():
        attachment = RecordAttachment.objects.create(
            record=record,
            file=upload,
            file_name=upload.name,
            file_type=getattr(upload, 'content_type', '') or '',
            file_size=upload.size,
            uploaded_by_id=claim.subject,
        )
        log_access(record, claim.subject, RecordAccess.ACTION_EDITED)
    return attachment


def add_progress_note(claim: Claim, pk: int, data) -> ProgressNote:
    record = get_record(pk)
    enforce(claim, record, UPDATE)
    s = ProgressNoteCreateSerializer(data=data)
    s.is_valid(raise_exception=True)

    with transaction.atomic():
        note = ProgressNote.objects.create(record=record, author_id=claim.subject, note=s.validated_data['note'])
        log_access(record, claim.subject, RecordAccess.ACTION_EDITED)
    return note


def access_trail(pk: int):
    return get_record(pk).access_log.all()
