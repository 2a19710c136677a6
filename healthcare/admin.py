"""
Django admin registrations for the healthcare models.

Clinical rows are read-mostly here: the access trail is append-only and is
shown without add or change permissions.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    Appointment,
    BillingItem,
    Hospital,
    MedicalRecord,
    PatientProfile,
    Payment,
    ProfessionalProfile,
    ProgressNote,
    RecordAccess,
    RecordAttachment,
    StaffProfile,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'is_active', 'date_joined')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'email', 'first_name', 'last_name')


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('patient_id', 'user', 'blood_type', 'preferred_language')
    search_fields = ('patient_id', 'user__username', 'user__last_name')


@admin.register(ProfessionalProfile)
class ProfessionalProfileAdmin(admin.ModelAdmin):
    list_display = ('professional_id', 'user', 'specialization', 'hospital', 'is_available')
    list_filter = ('specialization', 'is_available', 'hospital')
    search_fields = ('professional_id', 'user__username', 'license_number')


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ('staff_id', 'user', 'staff_role', 'department', 'hospital')
    list_filter = ('staff_role', 'hospital')
    search_fields = ('staff_id', 'employee_id', 'user__username')


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('hospital_id', 'name', 'hospital_type', 'total_beds', 'occupied_beds', 'is_active')
    list_filter = ('hospital_type', 'is_active')
    search_fields = ('hospital_id', 'name')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('appointment_id', 'patient', 'doctor', 'hospital', 'date', 'time', 'status')
    list_filter = ('status', 'appointment_type', 'hospital')
    search_fields = ('appointment_id', 'patient__username', 'doctor__username')


class ProgressNoteInline(admin.TabularInline):
    model = ProgressNote
    extra = 0


class RecordAttachmentInline(admin.TabularInline):
    model = RecordAttachment
    extra = 0


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('record_id', 'patient', 'doctor', 'hospital', 'visit_date', 'is_active')
    list_filter = ('is_active', 'hospital')
    search_fields = ('record_id', 'patient__username', 'doctor__username')
    inlines = [ProgressNoteInline, RecordAttachmentInline]


@admin.register(RecordAccess)
class RecordAccessAdmin(admin.ModelAdmin):
    list_display = ('record', 'accessed_by', 'action', 'accessed_at')
    list_filter = ('action',)
    search_fields = ('record__record_id', 'accessed_by__username')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class BillingItemInline(admin.TabularInline):
    model = BillingItem
    extra = 0


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('payment_id', 'patient', 'hospital', 'amount', 'currency', 'method', 'status', 'created_at')
    list_filter = ('status', 'method', 'hospital')
    search_fields = ('payment_id', 'transaction_reference', 'receipt_number', 'patient__username')
    inlines = [BillingItemInline]


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id', 'user__username')
