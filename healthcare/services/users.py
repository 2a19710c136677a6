"""
User administration: listing, creation with the role profile, updates and
deletion.  Role and password are fixed once a user exists.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import ProtectedError, Q
from rest_framework.exceptions import NotFound, ValidationError

from healthcare.models import Hospital, PatientProfile, ProfessionalProfile, StaffProfile, User
from healthcare.serializers.users import UserCreateSerializer, UserQuerySerializer, UserUpdateSerializer, profile_values
from healthcare.services.audit import log_action
from healthcare.services.filters import paginate

logger = logging.getLogger(__name__)

PROFILE_MODELS = {
    User.ROLE_PATIENT: (PatientProfile, 'patient_profile'),
    User.ROLE_PROFESSIONAL: (ProfessionalProfile, 'professional_profile'),
    User.ROLE_STAFF: (StaffProfile, 'staff_profile'),
}

USER_FIELDS = {
    'email': 'email',
    'firstName': 'first_name',
    'lastName': 'last_name',
    'phone': 'phone',
    'dateOfBirth': 'date_of_birth',
    'address': 'address',
    'isActive': 'is_active',
}


def _users():
    return User.objects.select_related('patient_profile', 'professional_profile', 'staff_profile')


def get_user(pk: int) -> User:
    user = _users().filter(pk=pk).first()
    if user is None:
        raise NotFound('User not found')
    return user


def list_users(query_params):
    s = UserQuerySerializer(data=query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    qs = _users()
    if vd.get('role'):
        qs = qs.filter(role=vd['role'])
    if vd.get('search'):
        term = vd['search']
        qs = qs.filter(
            Q(username__icontains=term) | Q(email__icontains=term)
            | Q(first_name__icontains=term) | Q(last_name__icontains=term)
        )
    prefix = '-' if vd['sortOrder'] == 'desc' else ''
    qs = qs.order_by(f"{prefix}{UserQuerySerializer.SORT_FIELDS[vd['sortBy']]}", f"{prefix}pk")
    return paginate(qs, vd['page'], vd['limit'])


def _check_hospital(values: dict) -> None:
    hospital_id = values.get('hospital_id')
    if hospital_id and not Hospital.objects.filter(pk=hospital_id).exists():
        raise ValidationError({'profile': {'hospitalID': 'Hospital not found'}})


def create_user(actor_id: int, data) -> User:
    s = UserCreateSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    role = vd['role']
    profile = vd['profile']
    _check_hospital(profile)

    with transaction.atomic():
        user = User(
            username=vd['username'],
            email=vd['email'],
            first_name=vd.get('firstName', ''),
            last_name=vd.get('lastName', ''),
            phone=vd['phone'],
            date_of_birth=vd['dateOfBirth'],
            address=dict(vd['address']),
            role=role,
        )
        user.set_password(vd['password'])
        user.save()
        if role in PROFILE_MODELS:
            model, _ = PROFILE_MODELS[role]
            model.objects.create(user=user, **profile)
        log_action(actor_id=actor_id, action='user_create', object_type='user', object_id=user.pk,
                   detail={'role': role})

    logger.info("user %s created with role %s", user.username, role)
    return get_user(user.pk)


def update_user(actor_id: int, pk: int, data) -> User:
    user = get_user(pk)
    s = UserUpdateSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if 'email' in vd and User.objects.filter(email__iexact=vd['email']).exclude(pk=user.pk).exists():
        raise ValidationError({'email': 'User with this email already exists'})
    profile = profile_values(user.role, vd['profile'], partial=True) if 'profile' in vd else {}
    _check_hospital(profile)

    with transaction.atomic():
        for key, field in USER_FIELDS.items():
            if key in vd:
                setattr(user, field, dict(vd[key]) if key == 'address' else vd[key])
        user.save()
        if profile and user.role in PROFILE_MODELS:
            model, attr = PROFILE_MODELS[user.role]
            instance = getattr(user, attr, None) or model(user=user)
            for field, value in profile.items():
                setattr(instance, field, value)
            instance.save()
        log_action(actor_id=actor_id, action='user_update', object_type='user', object_id=user.pk,
                   detail={'fields': sorted(vd)})
    return get_user(user.pk)


def delete_user(actor_id: int, pk: int) -> None:
    user = get_user(pk)
    if user.pk == actor_id:
        raise ValidationError({'id': 'You cannot delete your own account'})
    try:
        with transaction.atomic():
            user.delete()
            log_action(actor_id=actor_id, action='user_delete', object_type='user', object_id=pk,
                       detail={'username': user.username})
    except ProtectedError:
        raise ValidationError({'id': 'User has clinical or billing history and cannot be deleted; deactivate instead'})
    logger.info("user %s deleted", pk)
