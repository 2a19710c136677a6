import bleach
from decimal import Decimal
from rest_framework import serializers

from healthcare.models import BLOOD_TYPES, SPECIALIZATIONS, StaffProfile, User
from healthcare.serializers.query import PageQuerySerializer

PHONE_PATTERN = r'^\+?[\d\s\-()]+$'


def _clean(v):
    return bleach.clean((v or '').strip(), tags=[], strip=True)


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=200)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    zipCode = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100, required=False, default='Sri Lanka')


class UserQuerySerializer(PageQuerySerializer):
    SORT_FIELDS = {
        'createdAt': 'date_joined',
        'username': 'username',
        'email': 'email',
        'lastName': 'last_name',
    }

    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    search = serializers.CharField(required=False, max_length=100)
    sortBy = serializers.ChoiceField(choices=list(SORT_FIELDS), default='createdAt')


class PatientProfileInputSerializer(serializers.Serializer):
    bloodType = serializers.ChoiceField(choices=BLOOD_TYPES, required=False)
    height = serializers.DecimalField(max_digits=5, decimal_places=1, required=False)
    weight = serializers.DecimalField(max_digits=5, decimal_places=1, required=False)
    emergencyContact = serializers.DictField(required=False)
    allergies = serializers.ListField(child=serializers.DictField(), required=False)
    insuranceInfo = serializers.DictField(required=False)
    preferredLanguage = serializers.CharField(required=False, max_length=32)

    FIELD_MAP = {
        'bloodType': 'blood_type',
        'height': 'height',
        'weight': 'weight',
        'emergencyContact': 'emergency_contact',
        'allergies': 'allergies',
        'insuranceInfo': 'insurance_info',
        'preferredLanguage': 'preferred_language',
    }


class ProfessionalProfileInputSerializer(serializers.Serializer):
    specialization = serializers.ChoiceField(choices=SPECIALIZATIONS)
    licenseNumber = serializers.CharField(max_length=64)
    department = serializers.CharField(max_length=128)
    yearsOfExperience = serializers.IntegerField(min_value=0, required=False)
    qualifications = serializers.ListField(child=serializers.DictField(), required=False)
    workingHours = serializers.DictField(required=False)
    consultationFee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False)
    isAvailable = serializers.BooleanField(required=False)
    bio = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    languages = serializers.ListField(child=serializers.CharField(), required=False)
    hospitalID = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    FIELD_MAP = {
        'specialization': 'specialization',
        'licenseNumber': 'license_number',
        'department': 'department',
        'yearsOfExperience': 'years_of_experience',
        'qualifications': 'qualifications',
        'workingHours': 'working_hours',
        'consultationFee': 'consultation_fee',
        'isAvailable': 'is_available',
        'bio': 'bio',
        'languages': 'languages',
        'hospitalID': 'hospital_id',
    }

    def validate_bio(self, v):
        return _clean(v)


class StaffProfileInputSerializer(serializers.Serializer):
    staffRole = serializers.ChoiceField(choices=StaffProfile.STAFF_ROLES)
    department = serializers.CharField(max_length=128)
    employeeId = serializers.CharField(max_length=64)
    hireDate = serializers.DateField(required=False)
    shift = serializers.ChoiceField(choices=StaffProfile.SHIFTS, required=False)
    permissions = serializers.ListField(child=serializers.CharField(), required=False)
    hospitalID = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    FIELD_MAP = {
        'staffRole': 'staff_role',
        'department': 'department',
        'employeeId': 'employee_id',
        'hireDate': 'hire_date',
        'shift': 'shift',
        'permissions': 'permissions',
        'hospitalID': 'hospital_id',
    }


PROFILE_SERIALIZERS = {
    User.ROLE_PATIENT: PatientProfileInputSerializer,
    User.ROLE_PROFESSIONAL: ProfessionalProfileInputSerializer,
    User.ROLE_STAFF: StaffProfileInputSerializer,
}


def profile_values(role, data, *, partial=False) -> dict:
    """Validate the role-specific ``profile`` block and map it onto model fields."""
    serializer_class = PROFILE_SERIALIZERS.get(role)
    if serializer_class is None:
        return {}
    s = serializer_class(data=data or {}, partial=partial)
    if not s.is_valid():
        raise serializers.ValidationError({'profile': s.errors})
    return {serializer_class.FIELD_MAP[k]: v for k, v in s.validated_data.items()}


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(min_length=3, max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    firstName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    phone = serializers.RegexField(PHONE_PATTERN, max_length=20,
                                   error_messages={'invalid': 'Valid phone is required'})
    dateOfBirth = serializers.DateField()
    address = AddressSerializer()
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    profile = serializers.DictField(required=False, default=dict)

    def validate_username(self, v):
        v = _clean(v)
        if User.objects.filter(username__iexact=v).exists():
            raise serializers.ValidationError('User with this username already exists')
        return v

    def validate_email(self, v):
        if User.objects.filter(email__iexact=v).exists():
            raise serializers.ValidationError('User with this email already exists')
        return v

    def validate(self, attrs):
        attrs['profile'] = profile_values(attrs['role'], attrs.get('profile'))
        return attrs


class UserUpdateSerializer(serializers.Serializer):
    IMMUTABLE = ('role', 'password', 'username')

    email = serializers.EmailField(required=False)
    firstName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    phone = serializers.RegexField(PHONE_PATTERN, max_length=20, required=False,
                                   error_messages={'invalid': 'Valid phone is required'})
    dateOfBirth = serializers.DateField(required=False)
    address = AddressSerializer(required=False)
    isActive = serializers.BooleanField(required=False)
    profile = serializers.DictField(required=False)

    def validate(self, attrs):
        blocked = [f for f in self.IMMUTABLE if f in self.initial_data]
        if blocked:
            raise serializers.ValidationError({f: 'This field cannot be changed' for f in blocked})
        return attrs


def _name(user):
    return user.get_full_name() or user.username


class UserSerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source='first_name')
    lastName = serializers.CharField(source='last_name')
    name = serializers.SerializerMethodField()
    dateOfBirth = serializers.DateField(source='date_of_birth')
    isActive = serializers.BooleanField(source='is_active')
    createdAt = serializers.DateTimeField(source='date_joined')
    profile = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'firstName', 'lastName', 'name', 'role', 'phone',
            'dateOfBirth', 'address', 'isActive', 'createdAt', 'profile',
        ]

    def get_name(self, obj):
        return _name(obj)

    def get_profile(self, obj):
        if obj.role == User.ROLE_PATIENT and hasattr(obj, 'patient_profile'):
            p = obj.patient_profile
            return {
                'patientId': p.patient_id,
                'bloodType': p.blood_type or None,
                'height': str(p.height) if p.height is not None else None,
                'weight': str(p.weight) if p.weight is not None else None,
                'emergencyContact': p.emergency_contact,
                'allergies': p.allergies,
                'insuranceInfo': p.insurance_info,
                'preferredLanguage': p.preferred_language,
            }
        if obj.role == User.ROLE_PROFESSIONAL and hasattr(obj, 'professional_profile'):
            return DoctorSerializer(obj.professional_profile).data
        if obj.role == User.ROLE_STAFF and hasattr(obj, 'staff_profile'):
            p = obj.staff_profile
            return {
                'staffId': p.staff_id,
                'staffRole': p.staff_role,
                'department': p.department,
                'employeeId': p.employee_id,
                'hireDate': p.hire_date.isoformat() if p.hire_date else None,
                'shift': p.shift,
                'hospitalId': p.hospital_id,
            }
        return None


class DoctorSerializer(serializers.Serializer):
    """Public view of a professional profile."""
    id = serializers.IntegerField(source='user_id')
    professionalId = serializers.CharField(source='professional_id')
    name = serializers.SerializerMethodField()
    email = serializers.EmailField(source='user.email')
    specialization = serializers.CharField()
    department = serializers.CharField()
    yearsOfExperience = serializers.IntegerField(source='years_of_experience')
    consultationFee = serializers.DecimalField(source='consultation_fee', max_digits=10, decimal_places=2)
    isAvailable = serializers.BooleanField(source='is_available')
    workingHours = serializers.JSONField(source='working_hours')
    bio = serializers.CharField()
    languages = serializers.JSONField()
    hospitalId = serializers.IntegerField(source='hospital_id', allow_null=True)

    def get_name(self, obj):
        return _name(obj.user)
