import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from healthcare.models import Appointment, Hospital, ProfessionalProfile, User

pytestmark = pytest.mark.django_db

ADDRESS = {'street': '12 Temple Rd', 'city': 'Kandy', 'state': 'Central', 'zipCode': '20000'}


def new_user(**extra):
    data = {
        'username': 'nimal',
        'email': 'nimal@hms.test',
        'password': 'secret1',
        'firstName': 'Nimal',
        'lastName': 'Silva',
        'phone': '+94 77 123 4567',
        'dateOfBirth': '1990-04-12',
        'address': ADDRESS,
        'role': User.ROLE_PATIENT,
        'profile': {'bloodType': 'O+'},
    }
    data.update(extra)
    return data


def test_manager_creates_patient_with_profile(api, manager):
    r = api(manager).post(reverse('users'), new_user(), format='json')
    assert r.status_code == 201, r.data
    body = r.data['data']['user']
    assert body['role'] == User.ROLE_PATIENT
    assert body['address']['country'] == 'Sri Lanka'
    assert body['profile']['bloodType'] == 'O+'
    assert body['profile']['patientId'].startswith('PAT')
    assert 'password' not in body
    assert User.objects.get(username='nimal').check_password('secret1')


def test_professional_profile_is_validated(api, manager, hospital):
    r = api(manager).post(reverse('users'), new_user(role=User.ROLE_PROFESSIONAL, profile={}), format='json')
    assert r.status_code == 400
    assert 'profile' in r.data['errors']

    profile = {'specialization': 'Neurology', 'licenseNumber': 'SLMC-9', 'department': 'Neuro',
               'consultationFee': '3000.00', 'hospitalID': hospital.pk}
    r = api(manager).post(reverse('users'), new_user(role=User.ROLE_PROFESSIONAL, profile=profile), format='json')
    assert r.status_code == 201, r.data
    assert r.data['data']['user']['profile']['specialization'] == 'Neurology'


def test_duplicate_username_is_rejected(api, manager, patient):
    r = api(manager).post(reverse('users'), new_user(username='PATIENT'), format='json')
    assert r.status_code == 400
    assert 'username' in r.data['errors']


def test_staff_can_list_but_not_create(api, staff, patient):
    assert api(staff).post(reverse('users'), new_user(), format='json').status_code == 403
    r = api(staff).get(reverse('users'), {'role': User.ROLE_PATIENT})
    assert r.status_code == 200
    assert [u['id'] for u in r.data['data']['users']] == [patient.pk]


def test_user_search(api, manager, patient, other_patient):
    r = api(manager).get(reverse('users'), {'search': 'perera'})
    assert [u['username'] for u in r.data['data']['users']] == ['patient']


def test_patients_cannot_list_users(api, patient):
    assert api(patient).get(reverse('users')).status_code == 403


def test_user_reads_self_only(api, patient, other_patient):
    assert api(patient).get(reverse('user_detail', args=[patient.pk])).status_code == 200
    assert api(patient).get(reverse('user_detail', args=[other_patient.pk])).status_code == 403
    r = api(patient).get(reverse('users_me'))
    assert r.data['data']['user']['username'] == 'patient'


def test_role_and_password_are_immutable(api, manager, patient):
    url = reverse('user_detail', args=[patient.pk])
    r = api(manager).put(url, {'role': User.ROLE_MANAGER, 'password': 'x'}, format='json')
    assert r.status_code == 400
    assert {'role', 'password'} <= set(r.data['errors'])
    patient.refresh_from_db()
    assert patient.role == User.ROLE_PATIENT

    r = api(manager).put(url, {'phone': '+94 71 000 0000', 'profile': {'bloodType': 'A-'}}, format='json')
    assert r.status_code == 200, r.data
    assert r.data['data']['user']['phone'] == '+94 71 000 0000'
    assert r.data['data']['user']['profile']['bloodType'] == 'A-'


def test_delete_user(api, manager, other_patient):
    r = api(manager).delete(reverse('user_detail', args=[other_patient.pk]))
    assert r.status_code == 200
    assert not User.objects.filter(pk=other_patient.pk).exists()


def test_manager_cannot_delete_self(api, manager):
    r = api(manager).delete(reverse('user_detail', args=[manager.pk]))
    assert r.status_code == 400


def test_user_with_history_cannot_be_deleted(api, manager, patient, doctor, hospital):
    Appointment.objects.create(patient=patient, doctor=doctor, hospital=hospital,
                               date='2023-02-01', time='09:00')
    r = api(manager).delete(reverse('user_detail', args=[patient.pk]))
    assert r.status_code == 400
    assert User.objects.filter(pk=patient.pk).exists()


def test_hospital_listing_filters(api, patient, hospital):
    Hospital.objects.create(name='Kandy Teaching Hospital', hospital_type='teaching',
                            address={'city': 'Kandy'}, specializations=['Neurology'], total_beds=50)
    Hospital.objects.create(name='Closed Clinic', hospital_type='private', address={'city': 'Kandy'},
                            is_active=False)

    r = api(patient).get(reverse('hospitals'))
    assert [h['name'] for h in r.data['data']['hospitals']] == ['Colombo General Hospital', 'Kandy Teaching Hospital']

    r = api(patient).get(reverse('hospitals'), {'city': 'kandy'})
    assert [h['name'] for h in r.data['data']['hospitals']] == ['Kandy Teaching Hospital']

    r = api(patient).get(reverse('hospitals'), {'specialization': 'Cardiology'})
    assert [h['name'] for h in r.data['data']['hospitals']] == ['Colombo General Hospital']


def test_hospital_doctors_and_specializations(api, patient, hospital, doctor, other_doctor):
    ProfessionalProfile.objects.filter(user=other_doctor).update(is_available=False)

    r = api(patient).get(reverse('hospital_doctors', args=[hospital.pk]), {'available': 'true'})
    assert r.status_code == 200
    assert [d['id'] for d in r.data['data']['doctors']] == [doctor.pk]

    r = api(patient).get(reverse('specializations'))
    assert r.data['data']['specializations'] == ['Cardiology']


class HospitalAdministrationTests(APITestCase):
    def setUp(self) -> None:
        self.manager = User.objects.create_user(username='mgr', password='P@ssw0rd1', role=User.ROLE_MANAGER)
        self.staff = User.objects.create_user(username='desk', password='P@ssw0rd1', role=User.ROLE_STAFF)
        self.client = APIClient()
        self.payload = {
            'name': 'Galle Medical Centre',
            'type': 'private',
            'address': {'street': '3 Fort Rd', 'city': 'Galle', 'state': 'Southern', 'zipCode': '80000'},
            'phone': '+94 91 222 3333',
            'email': 'info@gmc.lk',
            'totalBeds': 80,
            'occupiedBeds': 20,
            'specializations': ['Dermatology'],
        }

    def test_only_manager_creates_hospitals(self):
        self.client.force_authenticate(user=self.staff)
        resp = self.client.post(reverse('hospitals'), self.payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.manager)
        resp = self.client.post(reverse('hospitals'), self.payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(resp.data['data']['hospital']['hospitalId'].startswith('HOSP'))

    def test_occupied_beds_cannot_exceed_total(self):
        self.client.force_authenticate(user=self.manager)
        resp = self.client.post(reverse('hospitals'), {**self.payload, 'occupiedBeds': 81}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('occupiedBeds', resp.data['errors'])

    def test_partial_update_checks_stored_capacity(self):
        self.client.force_authenticate(user=self.manager)
        created = self.client.post(reverse('hospitals'), self.payload, format='json').data['data']['hospital']
        url = reverse('hospital_detail', args=[created['id']])

        resp = self.client.put(url, {'occupiedBeds': 100}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.put(url, {'occupiedBeds': 60}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(Hospital.objects.get(pk=created['id']).occupied_beds, 60)
