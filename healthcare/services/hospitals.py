from __future__ import annotations

import logging

from django.db import transaction
from rest_framework.exceptions import NotFound

from healthcare.models import Hospital, ProfessionalProfile
from healthcare.serializers.hospitals import DoctorQuerySerializer, HospitalQuerySerializer, HospitalWriteSerializer
from healthcare.services.audit import log_action
from healthcare.services.filters import paginate

logger = logging.getLogger(__name__)


def get_hospital(pk: int) -> Hospital:
    hospital = Hospital.objects.filter(pk=pk).first()
    if hospital is None:
        raise NotFound('Hospital not found')
    return hospital


def list_hospitals(query_params):
    s = HospitalQuerySerializer(data=query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    qs = Hospital.objects.filter(is_active=True)
    if vd.get('type'):
        qs = qs.filter(hospital_type=vd['type'])
    if vd.get('city'):
        qs = qs.filter(address__city__icontains=vd['city'])
    if vd.get('specialization'):
        # matches the quoted element inside the stored JSON list
        qs = qs.filter(specializations__icontains=f'"{vd["specialization"]}"')
    prefix = '-' if vd['sortOrder'] == 'desc' else ''
    qs = qs.order_by(f'{prefix}name', f'{prefix}pk')
    return paginate(qs, vd['page'], vd['limit'])


def hospital_doctors(pk: int, query_params) -> tuple[Hospital, list[ProfessionalProfile]]:
    hospital = get_hospital(pk)
    s = DoctorQuerySerializer(data=query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    qs = ProfessionalProfile.objects.select_related('user').filter(hospital=hospital, user__is_active=True)
    if vd.get('specialization'):
        qs = qs.filter(specialization=vd['specialization'])
    if vd.get('available') is not None:
        qs = qs.filter(is_available=vd['available'])
    return hospital, list(qs.order_by('specialization', 'user__username'))


def create_hospital(actor_id: int, data) -> Hospital:
    s = HospitalWriteSerializer(data=data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        hospital = Hospital.objects.create(**s.model_values())
        log_action(actor_id=actor_id, action='hospital_create', object_type='hospital',
                   object_id=hospital.hospital_id)
    logger.info("hospital %s created", hospital.hospital_id)
    return hospital


def update_hospital(actor_id: int, pk: int, data) -> Hospital:
    hospital = get_hospital(pk)
    s = HospitalWriteSerializer(hospital, data=data, partial=True)
    s.is_valid(raise_exception=True)
    values = s.model_values()
    with transaction.atomic():
        for field, value in values.items():
            setattr(hospital, field, value)
        hospital.save()
        log_action(actor_id=actor_id, action='hospital_update', object_type='hospital',
                   object_id=hospital.hospital_id, detail={'fields': sorted(values)})
    return hospital


def specializations() -> list[str]:
    return sorted(
        ProfessionalProfile.objects.filter(user__is_active=True)
        .values_list('specialization', flat=True)
        .distinct()
    )
