import bleach
from rest_framework import serializers

from healthcare.models import SPECIALIZATIONS, Hospital
from healthcare.serializers.query import PageQuerySerializer
from healthcare.serializers.users import AddressSerializer


class HospitalQuerySerializer(PageQuerySerializer):
    sortOrder = serializers.ChoiceField(choices=['asc', 'desc'], default='asc')
    type = serializers.ChoiceField(choices=Hospital.TYPE_CHOICES, required=False)
    city = serializers.CharField(required=False, max_length=100)
    specialization = serializers.CharField(required=False, max_length=64)


class DoctorQuerySerializer(serializers.Serializer):
    specialization = serializers.CharField(required=False, max_length=64)
    available = serializers.BooleanField(required=False, allow_null=True, default=None)


class HospitalWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    type = serializers.ChoiceField(choices=Hospital.TYPE_CHOICES)
    address = AddressSerializer()
    phone = serializers.CharField(max_length=20)
    email = serializers.EmailField()
    website = serializers.URLField(required=False, allow_blank=True)
    totalBeds = serializers.IntegerField(min_value=1)
    occupiedBeds = serializers.IntegerField(min_value=0, required=False)
    icuBeds = serializers.IntegerField(min_value=0, required=False)
    emergencyBeds = serializers.IntegerField(min_value=0, required=False)
    facilities = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    specializations = serializers.ListField(child=serializers.ChoiceField(choices=SPECIALIZATIONS), required=False)
    operatingHours = serializers.DictField(required=False)
    emergencyServices = serializers.BooleanField(required=False)
    isActive = serializers.BooleanField(required=False)

    FIELD_MAP = {
        'name': 'name',
        'type': 'hospital_type',
        'address': 'address',
        'phone': 'phone',
        'email': 'email',
        'website': 'website',
        'totalBeds': 'total_beds',
        'occupiedBeds': 'occupied_beds',
        'icuBeds': 'icu_beds',
        'emergencyBeds': 'emergency_beds',
        'facilities': 'facilities',
        'specializations': 'specializations',
        'operatingHours': 'operating_hours',
        'emergencyServices': 'emergency_services',
        'isActive': 'is_active',
    }

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), tags=[], strip=True)
        if not v:
            raise serializers.ValidationError('Hospital name is required')
        return v

    def validate(self, attrs):
        instance = self.instance
        total = attrs.get('totalBeds', instance.total_beds if instance else 0)
        occupied = attrs.get('occupiedBeds', instance.occupied_beds if instance else 0)
        if occupied > total:
            raise serializers.ValidationError({'occupiedBeds': 'Occupied beds cannot exceed total beds'})
        return attrs

    def model_values(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class HospitalSerializer(serializers.ModelSerializer):
    hospitalId = serializers.CharField(source='hospital_id', read_only=True)
    type = serializers.CharField(source='hospital_type')
    capacity = serializers.SerializerMethodField()
    operatingHours = serializers.JSONField(source='operating_hours')
    emergencyServices = serializers.BooleanField(source='emergency_services')
    isActive = serializers.BooleanField(source='is_active')
    createdAt = serializers.DateTimeField(source='created_at')

    class Meta:
        model = Hospital
        fields = [
            'id', 'hospitalId', 'name', 'type', 'address', 'phone', 'email', 'website',
            'capacity', 'facilities', 'specializations', 'operatingHours',
            'emergencyServices', 'isActive', 'createdAt',
        ]

    def get_capacity(self, obj):
        return {
            'totalBeds': obj.total_beds,
            'occupiedBeds': obj.occupied_beds,
            'availableBeds': obj.total_beds - obj.occupied_beds,
            'icuBeds': obj.icu_beds,
            'emergencyBeds': obj.emergency_beds,
        }
