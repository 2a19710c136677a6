from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from healthcare.models import Hospital, PatientProfile, ProfessionalProfile, StaffProfile, User
from healthcare.services.access import Claim


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttling counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def hospital(db):
    return Hospital.objects.create(
        name='Colombo General Hospital',
        hospital_type='public',
        address={'street': '1 Regent St', 'city': 'Colombo', 'state': 'Western', 'zipCode': '00700'},
        phone='+94 11 269 1111',
        email='info@cgh.lk',
        total_beds=100,
        occupied_beds=40,
        specializations=['Cardiology', 'General Medicine'],
    )


@pytest.fixture
def make_user(db, hospital):
    counter = {'n': 0}

    def _make(role, username=None, **extra):
        counter['n'] += 1
        username = username or f'{role}_{counter["n"]}'
        user = User.objects.create_user(username=username, password='P@ssw0rd1', role=role,
                                        email=f'{username}@hms.test', **extra)
        if role == User.ROLE_PATIENT:
            PatientProfile.objects.create(user=user)
        elif role == User.ROLE_PROFESSIONAL:
            ProfessionalProfile.objects.create(
                user=user, specialization='Cardiology', license_number=f'LIC-{username}',
                department='Cardiology', consultation_fee=Decimal('2500.00'), hospital=hospital,
            )
        elif role == User.ROLE_STAFF:
            StaffProfile.objects.create(user=user, staff_role='receptionist', department='Front desk',
                                        employee_id=f'EMP-{username}', hospital=hospital)
        return user

    return _make


@pytest.fixture
def manager(make_user):
    return make_user(User.ROLE_MANAGER, 'manager')


@pytest.fixture
def staff(make_user):
    return make_user(User.ROLE_STAFF, 'staff')


@pytest.fixture
def doctor(make_user):
    return make_user(User.ROLE_PROFESSIONAL, 'doctor')


@pytest.fixture
def other_doctor(make_user):
    return make_user(User.ROLE_PROFESSIONAL, 'other_doctor')


@pytest.fixture
def patient(make_user):
    return make_user(User.ROLE_PATIENT, 'patient', first_name='Amal', last_name='Perera')


@pytest.fixture
def other_patient(make_user):
    return make_user(User.ROLE_PATIENT, 'other_patient')


@pytest.fixture
def api():
    """APIClient factory authenticated as the given user (anonymous when None)."""
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def claim_of():
    return Claim.from_user
