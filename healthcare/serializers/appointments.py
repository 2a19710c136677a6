import bleach
from rest_framework import serializers

from healthcare.models import Appointment

TIME_PATTERN = r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$'


class SlotTimeField(serializers.RegexField):
    """``H:MM`` or ``HH:MM``, normalised to ``HH:MM``."""

    def __init__(self, **kwargs):
        kwargs.setdefault('error_messages', {'invalid': 'Time must be in HH:MM format'})
        super().__init__(TIME_PATTERN, **kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        hour, minute = value.split(':')
        return f"{int(hour):02d}:{minute}"


class AppointmentCreateSerializer(serializers.Serializer):
    patientID = serializers.IntegerField(min_value=1, required=False)
    doctorID = serializers.IntegerField(min_value=1)
    hospitalID = serializers.IntegerField(min_value=1)
    date = serializers.DateField()
    time = SlotTimeField()
    type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, default='regular')
    priority = serializers.ChoiceField(choices=Appointment.PRIORITY_CHOICES, default='medium')
    symptoms = serializers.ListField(child=serializers.CharField(max_length=200), required=False, default=list)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)

    def validate_notes(self, v):
        return bleach.clean((v or '').strip(), tags=[], strip=True)


class AppointmentUpdateSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    time = SlotTimeField(required=False)
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES, required=False)
    priority = serializers.ChoiceField(choices=Appointment.PRIORITY_CHOICES, required=False)
    symptoms = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)

    def validate_notes(self, v):
        return bleach.clean((v or '').strip(), tags=[], strip=True)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)

    def validate_reason(self, v):
        v = bleach.clean((v or '').strip(), tags=[], strip=True)
        if not v:
            raise serializers.ValidationError('Cancellation reason is required')
        return v


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()


class AppointmentSerializer(serializers.ModelSerializer):
    appointmentId = serializers.CharField(source='appointment_id', read_only=True)
    patientId = serializers.IntegerField(source='patient_id', read_only=True)
    patientName = serializers.SerializerMethodField()
    doctorId = serializers.IntegerField(source='doctor_id', read_only=True)
    doctorName = serializers.SerializerMethodField()
    hospitalId = serializers.IntegerField(source='hospital_id', read_only=True)
    hospitalName = serializers.CharField(source='hospital.name', read_only=True)
    type = serializers.CharField(source='appointment_type')
    reservationFee = serializers.SerializerMethodField()
    consultationFee = serializers.SerializerMethodField()
    cancellation = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at')

    class Meta:
        model = Appointment
        fields = [
            'id', 'appointmentId', 'patientId', 'patientName', 'doctorId', 'doctorName',
            'hospitalId', 'hospitalName', 'date', 'time', 'duration', 'status', 'type',
            'priority', 'notes', 'symptoms', 'reservationFee', 'consultationFee',
            'cancellation', 'createdAt',
        ]

    def get_patientName(self, obj):
        return obj.patient.get_full_name() or obj.patient.username

    def get_doctorName(self, obj):
        return obj.doctor.get_full_name() or obj.doctor.username

    def get_reservationFee(self, obj):
        return {'amount': str(obj.reservation_fee), 'paid': obj.reservation_fee_paid,
                'paymentMethod': obj.reservation_fee_method or None}

    def get_consultationFee(self, obj):
        return {'amount': str(obj.consultation_fee), 'paid': obj.consultation_fee_paid,
                'paymentMethod': obj.consultation_fee_method or None}

    def get_cancellation(self, obj):
        if obj.status != Appointment.STATUS_CANCELLED:
            return None
        return {
            'cancelledBy': obj.cancelled_by,
            'reason': obj.cancellation_reason,
            'cancelledAt': obj.cancelled_at.isoformat() if obj.cancelled_at else None,
            'refundAmount': str(obj.refund_amount) if obj.refund_amount is not None else None,
            'refundStatus': obj.refund_status or None,
        }
