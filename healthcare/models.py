"""
Database models for the hospital management backend.

Users carry one of four roles and, depending on the role, a profile row
(patient, healthcare professional or hospital staff).  Clinical data lives
in :class:`MedicalRecord` with child rows for progress notes, attachments
and the access trail.  Billing is modelled by :class:`Payment` and its
:class:`BillingItem` lines.  Every human readable identifier (``MR000001``,
``PAY000001`` ...) is drawn from a :class:`Sequence` counter inside the
transaction that creates the row.
"""
from __future__ import annotations

import datetime
import os
import uuid
from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone


# ---------------------------------------------------------------------------
# Identifier sequences
# ---------------------------------------------------------------------------

class Sequence(models.Model):
    """A named counter used to mint human readable identifiers."""
    name = models.CharField(max_length=16, primary_key=True)
    value = models.PositiveBigIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.name}={self.value}"

    @classmethod
    def next_value(cls, name: str) -> int:
        # UPDATE ... SET value = value + 1 takes a row lock, so concurrent
        # callers serialize on the counter until their transaction ends.
        with transaction.atomic():
            cls.objects.get_or_create(name=name)
            cls.objects.filter(name=name).update(value=F('value') + 1)
            return cls.objects.values_list('value', flat=True).get(name=name)


def next_identifier(prefix: str, width: int = 6) -> str:
    """Return the next identifier for ``prefix``, e.g. ``MR000042``."""
    return f"{prefix}{Sequence.next_value(prefix):0{width}d}"


class SequencedModel(models.Model):
    """Abstract base assigning ``sequence_field`` from ``sequence_prefix`` on first save."""
    sequence_prefix = ''
    sequence_field = ''

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        with transaction.atomic():
            if not getattr(self, self.sequence_field):
                setattr(self, self.sequence_field, next_identifier(self.sequence_prefix))
            super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Users & profiles
# ---------------------------------------------------------------------------

class User(AbstractUser):
    """Custom user model carrying the role used by the access policy."""
    ROLE_PATIENT = 'patient'
    ROLE_PROFESSIONAL = 'healthcare_professional'
    ROLE_STAFF = 'hospital_staff'
    ROLE_MANAGER = 'healthcare_manager'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_PROFESSIONAL, 'Healthcare professional'),
        (ROLE_STAFF, 'Hospital staff'),
        (ROLE_MANAGER, 'Healthcare manager'),
    ]
    role = models.CharField(max_length=32, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone = models.CharField(max_length=20, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    address = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


BLOOD_TYPES = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']


class PatientProfile(SequencedModel):
    sequence_prefix = 'PAT'
    sequence_field = 'patient_id'

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    patient_id = models.CharField(max_length=20, unique=True, editable=False)
    blood_type = models.CharField(max_length=3, choices=[(b, b) for b in BLOOD_TYPES], blank=True)
    height = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True)
    weight = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True)
    emergency_contact = models.JSONField(default=dict, blank=True)
    medical_history = models.JSONField(default=list, blank=True)
    allergies = models.JSONField(default=list, blank=True)
    insurance_info = models.JSONField(default=dict, blank=True)
    preferred_language = models.CharField(max_length=32, default='English')

    def __str__(self) -> str:
        return f"{self.patient_id} ({self.user.username})"


SPECIALIZATIONS = [
    'Cardiology', 'Dermatology', 'Endocrinology', 'Gastroenterology', 'General Medicine',
    'Gynecology', 'Neurology', 'Oncology', 'Orthopedics', 'Pediatrics', 'Psychiatry',
    'Radiology', 'Surgery', 'Urology', 'Emergency Medicine', 'Anesthesiology',
    'Pathology', 'Physical Therapy', 'Nursing',
]


class ProfessionalProfile(SequencedModel):
    """Doctor / nurse data for users with the healthcare professional role."""
    sequence_prefix = 'DOC'
    sequence_field = 'professional_id'

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='professional_profile')
    professional_id = models.CharField(max_length=20, unique=True, editable=False)
    specialization = models.CharField(max_length=32, choices=[(s, s) for s in SPECIALIZATIONS], db_index=True)
    license_number = models.CharField(max_length=64, unique=True)
    department = models.CharField(max_length=128)
    years_of_experience = models.PositiveIntegerField(default=0)
    qualifications = models.JSONField(default=list, blank=True)
    working_hours = models.JSONField(default=dict, blank=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    is_available = models.BooleanField(default=True, db_index=True)
    bio = models.TextField(blank=True)
    languages = models.JSONField(default=list, blank=True)
    hospital = models.ForeignKey(
        'Hospital', null=True, blank=True, on_delete=models.SET_NULL, related_name='professionals'
    )

    def __str__(self) -> str:
        return f"{self.professional_id} {self.specialization}"


class StaffProfile(SequencedModel):
    sequence_prefix = 'STAFF'
    sequence_field = 'staff_id'

    STAFF_ROLES = [
        'receptionist', 'nurse', 'lab_technician', 'pharmacist', 'administrator',
        'security', 'maintenance', 'cleaner', 'accountant', 'it_support',
    ]
    SHIFTS = ['morning', 'afternoon', 'night', 'flexible']

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='staff_profile')
    staff_id = models.CharField(max_length=20, unique=True, editable=False)
    staff_role = models.CharField(max_length=32, choices=[(r, r) for r in STAFF_ROLES])
    department = models.CharField(max_length=128)
    employee_id = models.CharField(max_length=64, unique=True)
    hire_date = models.DateField(default=datetime.date.today)
    shift = models.CharField(max_length=16, choices=[(s, s) for s in SHIFTS], default='morning')
    permissions = models.JSONField(default=list, blank=True)
    hospital = models.ForeignKey(
        'Hospital', null=True, blank=True, on_delete=models.SET_NULL, related_name='staff'
    )

    def __str__(self) -> str:
        return f"{self.staff_id} {self.staff_role}"


# ---------------------------------------------------------------------------
# Hospitals
# ---------------------------------------------------------------------------

class Hospital(SequencedModel):
    sequence_prefix = 'HOSP'
    sequence_field = 'hospital_id'

    TYPE_CHOICES = [
        ('public', 'Public'),
        ('private', 'Private'),
        ('teaching', 'Teaching'),
        ('specialty', 'Specialty'),
    ]

    hospital_id = models.CharField(max_length=20, unique=True, editable=False)
    name = models.CharField(max_length=200)
    hospital_type = models.CharField(max_length=16, choices=TYPE_CHOICES, db_index=True)
    address = models.JSONField(default=dict, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    website = models.URLField(blank=True)
    total_beds = models.PositiveIntegerField(default=0)
    occupied_beds = models.PositiveIntegerField(default=0)
    icu_beds = models.PositiveIntegerField(default=0)
    emergency_beds = models.PositiveIntegerField(default=0)
    facilities = models.JSONField(default=list, blank=True)
    specializations = models.JSONField(default=list, blank=True)
    operating_hours = models.JSONField(default=dict, blank=True)
    emergency_services = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.hospital_id})"


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------

class Appointment(SequencedModel):
    resource_kind = 'appointment'
    sequence_prefix = 'APT'
    sequence_field = 'appointment_id'

    STATUS_SCHEDULED = 'scheduled'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_NO_SHOW = 'no_show'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_NO_SHOW, 'No show'),
    ]
    # slots held by these statuses are unavailable for booking
    ACTIVE_STATUSES = (STATUS_SCHEDULED, STATUS_CONFIRMED)

    TYPE_CHOICES = [(t, t) for t in ('regular', 'urgent', 'follow_up', 'consultation', 'procedure')]
    PRIORITY_CHOICES = [(p, p) for p in ('low', 'medium', 'high', 'emergency')]
    CANCELLED_BY_CHOICES = [(c, c) for c in ('patient', 'doctor', 'hospital', 'system')]
    REFUND_STATUS_CHOICES = [(s, s) for s in ('pending', 'processed', 'declined')]

    appointment_id = models.CharField(max_length=20, unique=True, editable=False)
    patient = models.ForeignKey(User, on_delete=models.PROTECT, related_name='patient_appointments')
    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='doctor_appointments')
    hospital = models.ForeignKey(Hospital, on_delete=models.PROTECT, related_name='appointments')
    date = models.DateField()
    time = models.CharField(max_length=5, help_text="HH:MM")
    duration = models.PositiveIntegerField(default=30)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    appointment_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default='regular')
    priority = models.CharField(max_length=16, choices=PRIORITY_CHOICES, default='medium')
    notes = models.TextField(blank=True, max_length=1000)
    symptoms = models.JSONField(default=list, blank=True)

    reservation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    reservation_fee_paid = models.BooleanField(default=False)
    reservation_fee_paid_at = models.DateTimeField(null=True, blank=True)
    reservation_fee_method = models.CharField(max_length=32, blank=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    consultation_fee_paid = models.BooleanField(default=False)
    consultation_fee_paid_at = models.DateTimeField(null=True, blank=True)
    consultation_fee_method = models.CharField(max_length=32, blank=True)

    cancelled_by = models.CharField(max_length=16, choices=CANCELLED_BY_CHOICES, blank=True)
    cancellation_reason = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    refund_status = models.CharField(max_length=16, choices=REFUND_STATUS_CHOICES, blank=True)

    reminder_sent_at = models.DateTimeField(null=True, blank=True)
    follow_up = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'date'], name='appt_patient_date_idx'),
            models.Index(fields=['doctor', 'date'], name='appt_doctor_date_idx'),
            models.Index(fields=['hospital', 'date'], name='appt_hospital_date_idx'),
            models.Index(fields=['status', 'date'], name='appt_status_date_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.appointment_id} {self.date} {self.time}"


# ---------------------------------------------------------------------------
# Medical records
# ---------------------------------------------------------------------------

class MedicalRecord(SequencedModel):
    resource_kind = 'medical_record'
    sequence_prefix = 'MR'
    sequence_field = 'record_id'

    record_id = models.CharField(max_length=20, unique=True, editable=False)
    patient = models.ForeignKey(User, on_delete=models.PROTECT, related_name='patient_records')
    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='doctor_records')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_records'
    )
    hospital = models.ForeignKey(Hospital, on_delete=models.PROTECT, related_name='medical_records')
    visit_date = models.DateTimeField(default=timezone.now)
    chief_complaint = models.CharField(max_length=500)
    history_of_present_illness = models.TextField(blank=True, max_length=2000)
    physical_examination = models.JSONField(default=dict, blank=True)
    diagnosis = models.JSONField(default=list, blank=True)
    treatment_plan = models.JSONField(default=dict, blank=True)
    lab_results = models.JSONField(default=list, blank=True)
    imaging_results = models.JSONField(default=list, blank=True)
    allergies = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'visit_date'], name='mr_patient_visit_idx'),
            models.Index(fields=['doctor', 'visit_date'], name='mr_doctor_visit_idx'),
            models.Index(fields=['hospital', 'visit_date'], name='mr_hospital_visit_idx'),
        ]

    def __str__(self) -> str:
        return self.record_id


class ProgressNote(models.Model):
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='progress_notes')
    author = models.ForeignKey(User, on_delete=models.PROTECT, related_name='+')
    note = models.TextField()
    date = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['date', 'id']


def _attachment_upload(instance, filename: str) -> str:
    ext = os.path.splitext(filename)[1]
    return f"attachments/{datetime.date.today().strftime('%Y/%m')}/{uuid.uuid4().hex}{ext}"


class RecordAttachment(models.Model):
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='attachments')
    file = models.FileField(upload_to=_attachment_upload, max_length=512)
    file_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=128)
    file_size = models.PositiveIntegerField(default=0)
    uploaded_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='+')
    uploaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['uploaded_at', 'id']

    def __str__(self):
        return f"att {self.id} record={self.record_id}"


class RecordAccess(models.Model):
    """Append-only trail of who touched a medical record and how."""
    ACTION_VIEWED = 'viewed'
    ACTION_EDITED = 'edited'
    ACTION_PRINTED = 'printed'
    ACTION_EXPORTED = 'exported'
    ACTION_CREATED = 'created'
    ACTION_DELETED = 'deleted'
    ACTION_CHOICES = [(a, a) for a in (
        ACTION_VIEWED, ACTION_EDITED, ACTION_PRINTED, ACTION_EXPORTED, ACTION_CREATED, ACTION_DELETED,
    )]

    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='access_log')
    accessed_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='+')
    accessed_at = models.DateTimeField(default=timezone.now)
    action = models.CharField(max_length=16, choices=ACTION_CHOICES)

    class Meta:
        ordering = ['accessed_at', 'id']
        indexes = [models.Index(fields=['record', 'accessed_at'], name='access_record_at_idx')]

    def __str__(self):
        return f"{self.record_id} {self.action} by {self.accessed_by_id}"


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

class Payment(SequencedModel):
    resource_kind = 'payment'
    sequence_prefix = 'PAY'
    sequence_field = 'payment_id'

    STATUS_PENDING = 'pending'
    STATUS_PROCESSING = 'processing'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_REFUNDED = 'refunded'
    STATUS_PARTIALLY_REFUNDED = 'partially_refunded'
    STATUS_CHOICES = [(s, s) for s in (
        STATUS_PENDING, STATUS_PROCESSING, STATUS_COMPLETED, STATUS_FAILED,
        STATUS_CANCELLED, STATUS_REFUNDED, STATUS_PARTIALLY_REFUNDED,
    )]

    METHOD_CHOICES = [(m, m) for m in (
        'credit_card', 'debit_card', 'cash', 'insurance', 'government', 'bank_transfer', 'digital_wallet',
    )]
    CURRENCY_CHOICES = [('LKR', 'LKR'), ('USD', 'USD'), ('EUR', 'EUR')]

    payment_id = models.CharField(max_length=20, unique=True, editable=False)
    patient = models.ForeignKey(User, on_delete=models.PROTECT, related_name='patient_payments')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments'
    )
    doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.PROTECT, related_name='doctor_payments'
    )
    hospital = models.ForeignKey(Hospital, on_delete=models.PROTECT, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default='LKR')
    method = models.CharField(max_length=20, choices=METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    transaction_reference = models.CharField(max_length=40, unique=True, null=True, blank=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))

    insurance_info = models.JSONField(default=dict, blank=True)

    receipt_number = models.CharField(max_length=20, unique=True, null=True, blank=True)
    receipt_generated_at = models.DateTimeField(null=True, blank=True)

    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    refund_reason = models.TextField(blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_method = models.CharField(max_length=16, blank=True)
    refund_reference = models.CharField(max_length=40, blank=True)

    notes = models.TextField(blank=True)
    processed_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='processed_payments'
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='pay_patient_created_idx'),
            models.Index(fields=['hospital', 'created_at'], name='pay_hospital_created_idx'),
            models.Index(fields=['status', 'created_at'], name='pay_status_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.payment_id} {self.amount} {self.currency} ({self.status})"

    def calculate_total(self, save: bool = True) -> Decimal:
        """Recompute subtotal/total from the stored line items; ``amount`` follows ``total``."""
        from healthcare.services.billing import compute_totals

        subtotal, total = compute_totals(
            self.items.values_list('quantity', 'unit_price'), self.tax, self.discount,
        )
        self.subtotal = subtotal
        self.total = total
        self.amount = total
        if save:
            self.save(update_fields=['subtotal', 'total', 'amount', 'updated_at'])
        return total


class BillingItem(models.Model):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name='items')
    service_name = models.CharField(max_length=200)
    service_code = models.CharField(max_length=32, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))

    class Meta:
        ordering = ['id']

    def save(self, *args, **kwargs):
        self.total_price = Decimal(self.quantity) * Decimal(self.unit_price)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.service_name} x{self.quantity}"


# ---------------------------------------------------------------------------
# Operation audit
# ---------------------------------------------------------------------------

class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]
