from rest_framework import serializers

from healthcare.serializers.query import DATE_INPUT_FORMATS
from healthcare.services.analytics import ENTITY_KINDS, GROUP_BY


class AnalyticsQuerySerializer(serializers.Serializer):
    dateFrom = serializers.DateField(required=False, input_formats=DATE_INPUT_FORMATS)
    dateTo = serializers.DateField(required=False, input_formats=DATE_INPUT_FORMATS)
    hospitalID = serializers.IntegerField(required=False, min_value=1)
    groupBy = serializers.ChoiceField(choices=list(GROUP_BY), default='day')

    def validate(self, attrs):
        date_from, date_to = attrs.get('dateFrom'), attrs.get('dateTo')
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({'dateFrom': 'dateFrom must not be later than dateTo'})
        return attrs


class ExportQuerySerializer(AnalyticsQuerySerializer):
    type = serializers.ChoiceField(choices=list(ENTITY_KINDS))
    format = serializers.ChoiceField(choices=['json', 'csv'], default='json')
