"""
Management command to populate the database with demo data.
"""
import random
from datetime import datetime, timedelta
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from healthcare.models import (
    Appointment,
    BillingItem,
    Hospital,
    MedicalRecord,
    PatientProfile,
    Payment,
    ProfessionalProfile,
    RecordAccess,
    StaffProfile,
    User,
)
from healthcare.services import billing
from healthcare.services.appointments import RESERVATION_FEE_RATE, day_slots

HOSPITALS = [
    {'name': 'Colombo General Hospital', 'hospital_type': 'public', 'city': 'Colombo', 'total_beds': 400,
     'specializations': ['Cardiology', 'General Medicine', 'Surgery', 'Emergency Medicine']},
    {'name': 'Kandy Teaching Hospital', 'hospital_type': 'teaching', 'city': 'Kandy', 'total_beds': 250,
     'specializations': ['Neurology', 'Pediatrics', 'General Medicine']},
    {'name': 'Galle Private Medical Centre', 'hospital_type': 'private', 'city': 'Galle', 'total_beds': 80,
     'specializations': ['Dermatology', 'Orthopedics', 'Gynecology']},
]

DOCTORS = [
    ('dr_perera', 'Nimal', 'Perera', 'Cardiology', 0, Decimal('3500')),
    ('dr_silva', 'Kumari', 'Silva', 'General Medicine', 0, Decimal('2000')),
    ('dr_fernando', 'Ruwan', 'Fernando', 'Neurology', 1, Decimal('4000')),
    ('dr_jayasinghe', 'Dilani', 'Jayasinghe', 'Pediatrics', 1, Decimal('2500')),
    ('dr_wickrama', 'Saman', 'Wickramasinghe', 'Dermatology', 2, Decimal('3000')),
    ('dr_bandara', 'Ishara', 'Bandara', 'Orthopedics', 2, Decimal('3800')),
]

FIRST_NAMES = ['Amal', 'Chamari', 'Dinesh', 'Harshani', 'Kasun', 'Malini', 'Nuwan', 'Priya', 'Sunil', 'Tharindu']
LAST_NAMES = ['Gunawardena', 'Herath', 'Karunaratne', 'Liyanage', 'Mendis', 'Rajapaksa', 'Senanayake']
COMPLAINTS = ['Chest pain', 'Persistent headache', 'Skin rash', 'Knee pain', 'Fever and cough', 'Back pain']
STATUS_WEIGHTS = [
    (Appointment.STATUS_COMPLETED, 6),
    (Appointment.STATUS_SCHEDULED, 2),
    (Appointment.STATUS_CONFIRMED, 1),
    (Appointment.STATUS_CANCELLED, 1),
    (Appointment.STATUS_NO_SHOW, 1),
]


class Command(BaseCommand):
    help = 'Populate database with demo hospitals, users, appointments, payments and records'

    def add_arguments(self, parser):
        parser.add_argument('--patients', type=int, default=20)
        parser.add_argument('--appointments', type=int, default=80)
        parser.add_argument('--days', type=int, default=60, help='spread appointments over the last N days')
        parser.add_argument('--seed', type=int, default=None)

    def handle(self, *args, **options):
        rnd = random.Random(options['seed'])
        with transaction.atomic():
            hospitals = self.create_hospitals()
            doctors = self.create_doctors(hospitals)
            self.create_staff(hospitals)
            patients = self.create_patients(rnd, options['patients'])
            appointments = self.create_appointments(rnd, patients, doctors, options['appointments'], options['days'])
            self.create_payments(rnd, appointments)
            self.create_records(rnd, appointments)
        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_hospitals(self):
        hospitals = []
        for data in HOSPITALS:
            hospital, _ = Hospital.objects.get_or_create(
                name=data['name'],
                defaults={
                    'hospital_type': data['hospital_type'],
                    'address': {'street': '1 Hospital Road', 'city': data['city'], 'state': 'Western',
                                'zipCode': '00100', 'country': 'Sri Lanka'},
                    'phone': '+94 11 000 0000',
                    'email': f"info@{data['city'].lower()}-hospital.lk",
                    'total_beds': data['total_beds'],
                    'occupied_beds': data['total_beds'] // 2,
                    'specializations': data['specializations'],
                },
            )
            hospitals.append(hospital)
            self.stdout.write(f'hospital: {hospital.name}')
        return hospitals

    def _user(self, username, role, first_name, last_name, **extra):
        user, _ = User.objects.get_or_create(
            username=username,
            defaults={
                'role': role,
                'first_name': first_name,
                'last_name': last_name,
                'email': f'{username}@hms.local',
                'password': make_password('123456'),
                **extra,
            },
        )
        return user

    def create_doctors(self, hospitals):
        doctors = []
        for username, first, last, specialization, hospital_idx, fee in DOCTORS:
            user = self._user(username, User.ROLE_PROFESSIONAL, first, last)
            ProfessionalProfile.objects.get_or_create(
                user=user,
                defaults={
                    'specialization': specialization,
                    'license_number': f'SLMC-{username.upper()}',
                    'department': specialization,
                    'years_of_experience': 5 + len(username) % 15,
                    'consultation_fee': fee,
                    'hospital': hospitals[hospital_idx],
                },
            )
            doctors.append(user)
        self.stdout.write(f'doctors: {len(doctors)}')
        return doctors

    def create_staff(self, hospitals):
        for idx, hospital in enumerate(hospitals):
            user = self._user(f'staff_{idx + 1}', User.ROLE_STAFF, 'Front', f'Desk {idx + 1}')
            StaffProfile.objects.get_or_create(
                user=user,
                defaults={'staff_role': 'receptionist', 'department': 'Reception',
                          'employee_id': f'EMP-{idx + 1:04d}', 'hospital': hospital},
            )
        self._user('manager', User.ROLE_MANAGER, 'Hospital', 'Manager')

    def create_patients(self, rnd, count):
        patients = []
        today = timezone.localdate()
        for i in range(count):
            dob = today - timedelta(days=rnd.randint(2, 85) * 365 + rnd.randint(0, 364))
            user = self._user(f'patient_{i + 1}', User.ROLE_PATIENT, rnd.choice(FIRST_NAMES),
                              rnd.choice(LAST_NAMES), date_of_birth=dob, phone=f'+94 77 {i:07d}')
            PatientProfile.objects.get_or_create(user=user)
            patients.append(user)
        self.stdout.write(f'patients: {len(patients)}')
        return patients

    def create_appointments(self, rnd, patients, doctors, count, days):
        statuses = [s for s, w in STATUS_WEIGHTS for _ in range(w)]
        slots = day_slots()
        today = timezone.localdate()
        created = []
        for _ in range(count):
            doctor = rnd.choice(doctors)
            profile = doctor.professional_profile
            day = today - timedelta(days=rnd.randint(0, days))
            time = rnd.choice(slots)
            if Appointment.objects.filter(doctor=doctor, date=day, time=time).exists():
                continue
            fee = profile.consultation_fee
            appointment = Appointment.objects.create(
                patient=rnd.choice(patients),
                doctor=doctor,
                hospital=profile.hospital,
                date=day,
                time=time,
                status=rnd.choice(statuses),
                appointment_type=rnd.choice(['regular', 'follow_up', 'consultation', 'urgent']),
                consultation_fee=fee,
                reservation_fee=(fee * RESERVATION_FEE_RATE).quantize(Decimal('0.01')),
                created_at=timezone.now() - timedelta(days=rnd.randint(days, days + 14)),
            )
            created.append(appointment)
        self.stdout.write(f'appointments: {len(created)}')
        return created

    def create_payments(self, rnd, appointments):
        count = 0
        for appointment in appointments:
            if appointment.status != Appointment.STATUS_COMPLETED:
                continue
            method = rnd.choice(['cash', 'credit_card', 'insurance', 'debit_card'])
            status = billing.initial_status(method)
            if status == Payment.STATUS_PROCESSING:
                status = Payment.STATUS_COMPLETED
            payment = Payment.objects.create(
                patient=appointment.patient,
                appointment=appointment,
                doctor=appointment.doctor,
                hospital=appointment.hospital,
                method=method,
                status=status,
                transaction_reference=None if method == 'cash' else billing.transaction_reference(),
                created_at=timezone.make_aware(
                    datetime.combine(appointment.date, datetime.min.time())
                ) + timedelta(hours=rnd.randint(9, 17)),
            )
            BillingItem.objects.create(payment=payment, service_name='Consultation', service_code='CONS',
                                       quantity=1, unit_price=appointment.consultation_fee)
            if rnd.random() < 0.3:
                BillingItem.objects.create(payment=payment, service_name='Laboratory tests', service_code='LAB',
                                           quantity=rnd.randint(1, 3), unit_price=Decimal('1200'))
            payment.calculate_total()
            count += 1
        self.stdout.write(f'payments: {count}')

    def create_records(self, rnd, appointments):
        count = 0
        for appointment in appointments:
            if appointment.status != Appointment.STATUS_COMPLETED:
                continue
            record = MedicalRecord.objects.create(
                patient=appointment.patient,
                doctor=appointment.doctor,
                hospital=appointment.hospital,
                appointment=appointment,
                visit_date=timezone.make_aware(
                    datetime.combine(appointment.date, datetime.min.time())
                ),
                chief_complaint=rnd.choice(COMPLAINTS),
                diagnosis=[{'primary': True, 'description': 'Observation', 'type': 'primary'}],
            )
            RecordAccess.objects.create(record=record, accessed_by=appointment.doctor,
                                        action=RecordAccess.ACTION_CREATED)
            count += 1
        self.stdout.write(f'medical records: {count}')
