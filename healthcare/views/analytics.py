"""
Reporting endpoints for managers and hospital staff.
"""
from __future__ import annotations

from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from healthcare.envelope import ok
from healthcare.permissions import IsManagerOrStaff
from healthcare.serializers.analytics import AnalyticsQuerySerializer, ExportQuerySerializer
from healthcare.services import analytics


def _query(request, serializer_class=AnalyticsQuerySerializer) -> dict:
    s = serializer_class(data=request.query_params)
    s.is_valid(raise_exception=True)
    return s.validated_data


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerOrStaff])
def dashboard(request):
    q = _query(request)
    return ok(analytics.compute_dashboard(q.get('hospitalID'), q.get('dateFrom'), q.get('dateTo')))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerOrStaff])
def appointment_report(request):
    q = _query(request)
    return ok(analytics.appointment_analytics(q.get('hospitalID'), q.get('dateFrom'), q.get('dateTo'),
                                              q['groupBy']))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerOrStaff])
def financial_report(request):
    q = _query(request)
    return ok(analytics.financial_analytics(q.get('hospitalID'), q.get('dateFrom'), q.get('dateTo'),
                                            q['groupBy']))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerOrStaff])
def patient_report(request):
    q = _query(request)
    return ok(analytics.patient_analytics(q.get('dateFrom'), q.get('dateTo')))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagerOrStaff])
def export(request):
    q = _query(request, ExportQuerySerializer)
    rows, stem = analytics.export_raw(q['type'], q.get('dateFrom'), q.get('dateTo'), q.get('hospitalID'))
    if q['format'] == 'csv':
        resp = HttpResponse(analytics.rows_to_csv(rows), content_type='text/csv')
        resp['Content-Disposition'] = f'attachment; filename="{stem}.csv"'
        return resp
    return ok({'type': q['type'], 'rows': rows, 'count': len(rows)})
