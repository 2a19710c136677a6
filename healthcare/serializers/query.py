"""
Query-string serializers for the list endpoints.

Each serializer validates the whole query string at once so that a request
with several bad parameters is rejected with every offending field listed.
Class attributes describe how the validated values map onto the model:
``sort_fields`` whitelists ``sortBy`` values, ``date_lookup`` is the lookup
``dateFrom``/``dateTo`` are applied to.
"""
from django.db.models import Q
from rest_framework import serializers

from healthcare.models import Appointment, MedicalRecord, Payment

DATE_INPUT_FORMATS = [
    'iso-8601',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M:%SZ',
    '%Y-%m-%dT%H:%M:%S.%fZ',
]


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=10)
    sortOrder = serializers.ChoiceField(choices=['asc', 'desc'], default='desc')


class ListQuerySerializer(PageQuerySerializer):
    resource_kind = ''
    date_lookup = ''
    sort_fields: dict = {}
    default_sort = ''

    patientID = serializers.IntegerField(required=False, min_value=1)
    doctorID = serializers.IntegerField(required=False, min_value=1)
    hospitalID = serializers.IntegerField(required=False, min_value=1)
    dateFrom = serializers.DateField(required=False, input_formats=DATE_INPUT_FORMATS)
    dateTo = serializers.DateField(required=False, input_formats=DATE_INPUT_FORMATS)
    sortBy = serializers.CharField(required=False)

    def validate_sortBy(self, v):
        if v not in self.sort_fields:
            raise serializers.ValidationError(
                f"sortBy must be one of: {', '.join(sorted(self.sort_fields))}"
            )
        return v

    def validate(self, attrs):
        date_from, date_to = attrs.get('dateFrom'), attrs.get('dateTo')
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({'dateFrom': 'dateFrom must not be later than dateTo'})
        return attrs

    def extra_q(self, vd, claim) -> Q:
        return Q()


class MedicalRecordQuerySerializer(ListQuerySerializer):
    resource_kind = MedicalRecord.resource_kind
    date_lookup = 'visit_date__date'
    sort_fields = {'visitDate': 'visit_date', 'createdAt': 'created_at', 'recordID': 'record_id'}
    default_sort = 'visitDate'

    includeInactive = serializers.BooleanField(required=False, default=False)

    def extra_q(self, vd, claim) -> Q:
        # soft-deleted records stay hidden unless a manager asks for them
        if claim.is_manager and vd.get('includeInactive'):
            return Q()
        return Q(is_active=True)


class PaymentQuerySerializer(ListQuerySerializer):
    resource_kind = Payment.resource_kind
    date_lookup = 'created_at__date'
    sort_fields = {'createdAt': 'created_at', 'amount': 'amount', 'status': 'status'}
    default_sort = 'createdAt'

    status = serializers.ChoiceField(choices=Payment.STATUS_CHOICES, required=False)
    method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES, required=False)

    def extra_q(self, vd, claim) -> Q:
        q = Q()
        if vd.get('status'):
            q &= Q(status=vd['status'])
        if vd.get('method'):
            q &= Q(method=vd['method'])
        return q


class AppointmentQuerySerializer(ListQuerySerializer):
    resource_kind = Appointment.resource_kind
    date_lookup = 'date'
    sort_fields = {'date': 'date', 'createdAt': 'created_at', 'status': 'status'}
    default_sort = 'date'

    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES, required=False)
    date = serializers.DateField(required=False, input_formats=DATE_INPUT_FORMATS)

    def extra_q(self, vd, claim) -> Q:
        q = Q()
        if vd.get('status'):
            q &= Q(status=vd['status'])
        if vd.get('date'):
            q &= Q(date=vd['date'])
        return q
