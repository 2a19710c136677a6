import bleach
from django.conf import settings
from rest_framework import serializers

from healthcare.models import MedicalRecord, ProgressNote, RecordAccess, RecordAttachment


def clean_text(v):
    return bleach.clean((v or '').strip(), tags=[], strip=True)


class DiagnosisSerializer(serializers.Serializer):
    primary = serializers.BooleanField(default=False)
    code = serializers.CharField(required=False, allow_blank=True, max_length=16)
    description = serializers.CharField(max_length=500)
    type = serializers.ChoiceField(choices=['primary', 'secondary', 'differential', 'rule_out'], default='primary')


class AllergySerializer(serializers.Serializer):
    allergen = serializers.CharField(max_length=128)
    reaction = serializers.CharField(required=False, allow_blank=True, max_length=255)
    severity = serializers.ChoiceField(choices=['mild', 'moderate', 'severe'])


class MedicationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128)
    dosage = serializers.CharField(max_length=64)
    frequency = serializers.CharField(max_length=64)
    duration = serializers.CharField(max_length=64)
    instructions = serializers.CharField(required=False, allow_blank=True)


class TreatmentPlanSerializer(serializers.Serializer):
    medications = MedicationSerializer(many=True, required=False)
    procedures = serializers.ListField(child=serializers.DictField(), required=False)
    lifestyleRecommendations = serializers.ListField(child=serializers.CharField(), required=False)
    followUpInstructions = serializers.CharField(required=False, allow_blank=True)
    nextAppointment = serializers.DateField(required=False, allow_null=True)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if value.get('nextAppointment'):
            value['nextAppointment'] = value['nextAppointment'].isoformat()
        return value


class ClinicalContentSerializer(serializers.Serializer):
    """Fields of a record that the treating doctor may write."""
    visitDate = serializers.DateTimeField(required=False)
    chiefComplaint = serializers.CharField(max_length=500)
    historyOfPresentIllness = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    physicalExamination = serializers.DictField(required=False)
    diagnosis = DiagnosisSerializer(many=True, required=False)
    treatmentPlan = TreatmentPlanSerializer(required=False)
    labResults = serializers.ListField(child=serializers.DictField(), required=False)
    imagingResults = serializers.ListField(child=serializers.DictField(), required=False)
    allergies = AllergySerializer(many=True, required=False)

    FIELD_MAP = {
        'visitDate': 'visit_date',
        'chiefComplaint': 'chief_complaint',
        'historyOfPresentIllness': 'history_of_present_illness',
        'physicalExamination': 'physical_examination',
        'diagnosis': 'diagnosis',
        'treatmentPlan': 'treatment_plan',
        'labResults': 'lab_results',
        'imagingResults': 'imaging_results',
        'allergies': 'allergies',
    }

    def validate_chiefComplaint(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Chief complaint is required')
        return v

    def validate_historyOfPresentIllness(self, v):
        return clean_text(v)

    def model_values(self) -> dict:
        """Validated data keyed by model field name."""
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items() if k in self.FIELD_MAP}


class MedicalRecordCreateSerializer(ClinicalContentSerializer):
    patientID = serializers.IntegerField(min_value=1)
    doctorID = serializers.IntegerField(min_value=1, required=False)
    hospitalID = serializers.IntegerField(min_value=1)
    appointmentID = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class ProgressNoteCreateSerializer(serializers.Serializer):
    note = serializers.CharField(max_length=5000)

    def validate_note(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Note is required')
        return v


class AttachmentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()

    def validate_file(self, f):
        max_bytes = settings.UPLOAD_MAX_MB * 1024 * 1024
        if f.size > max_bytes:
            raise serializers.ValidationError(f'File exceeds {settings.UPLOAD_MAX_MB} MB')
        content_type = getattr(f, 'content_type', '') or ''
        if not any(content_type.startswith(t) for t in settings.ALLOWED_UPLOAD_TYPES):
            raise serializers.ValidationError('Unsupported file type')
        return f


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def _name(user):
    if user is None:
        return None
    return user.get_full_name() or user.username


class ProgressNoteSerializer(serializers.ModelSerializer):
    authorId = serializers.IntegerField(source='author_id', read_only=True)
    authorName = serializers.SerializerMethodField()

    class Meta:
        model = ProgressNote
        fields = ['id', 'date', 'note', 'authorId', 'authorName']

    def get_authorName(self, obj):
        return _name(obj.author)


class RecordAttachmentSerializer(serializers.ModelSerializer):
    fileName = serializers.CharField(source='file_name')
    fileType = serializers.CharField(source='file_type')
    fileSize = serializers.IntegerField(source='file_size')
    fileUrl = serializers.SerializerMethodField()
    uploadedBy = serializers.IntegerField(source='uploaded_by_id')
    uploadedAt = serializers.DateTimeField(source='uploaded_at')

    class Meta:
        model = RecordAttachment
        fields = ['id', 'fileName', 'fileType', 'fileSize', 'fileUrl', 'uploadedBy', 'uploadedAt']

    def get_fileUrl(self, obj):
        return obj.file.url if obj.file else None


class RecordAccessSerializer(serializers.ModelSerializer):
    accessedBy = serializers.IntegerField(source='accessed_by_id')
    accessedAt = serializers.DateTimeField(source='accessed_at')

    class Meta:
        model = RecordAccess
        fields = ['id', 'accessedBy', 'accessedAt', 'action']


class MedicalRecordSerializer(serializers.ModelSerializer):
    recordId = serializers.CharField(source='record_id', read_only=True)
    patientId = serializers.IntegerField(source='patient_id', read_only=True)
    patientName = serializers.SerializerMethodField()
    doctorId = serializers.IntegerField(source='doctor_id', read_only=True)
    doctorName = serializers.SerializerMethodField()
    hospitalId = serializers.IntegerField(source='hospital_id', read_only=True)
    hospitalName = serializers.CharField(source='hospital.name', read_only=True)
    appointmentId = serializers.IntegerField(source='appointment_id', read_only=True, allow_null=True)
    visitDate = serializers.DateTimeField(source='visit_date')
    chiefComplaint = serializers.CharField(source='chief_complaint')
    historyOfPresentIllness = serializers.CharField(source='history_of_present_illness')
    physicalExamination = serializers.JSONField(source='physical_examination')
    treatmentPlan = serializers.JSONField(source='treatment_plan')
    labResults = serializers.JSONField(source='lab_results')
    imagingResults = serializers.JSONField(source='imaging_results')
    isActive = serializers.BooleanField(source='is_active')
    progressNotes = ProgressNoteSerializer(source='progress_notes', many=True, read_only=True)
    attachments = RecordAttachmentSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = MedicalRecord
        fields = [
            'id', 'recordId', 'patientId', 'patientName', 'doctorId', 'doctorName',
            'hospitalId', 'hospitalName', 'appointmentId', 'visitDate', 'chiefComplaint',
            'historyOfPresentIllness', 'physicalExamination', 'diagnosis', 'treatmentPlan',
            'labResults', 'imagingResults', 'allergies', 'isActive', 'progressNotes',
            'attachments', 'createdAt', 'updatedAt',
        ]

    def get_patientName(self, obj):
        return _name(obj.patient)

    def get_doctorName(self, obj):
        return _name(obj.doctor)


class MedicalRecordListSerializer(MedicalRecordSerializer):
    class Meta(MedicalRecordSerializer.Meta):
        fields = [
            'id', 'recordId', 'patientId', 'patientName', 'doctorId', 'doctorName',
            'hospitalId', 'hospitalName', 'visitDate', 'chiefComplaint', 'diagnosis',
            'isActive', 'createdAt',
        ]
