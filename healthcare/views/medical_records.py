"""
Medical record endpoints.

Views only translate HTTP to service calls: authorization, validation and
the access trail are handled in :mod:`healthcare.services.medical_records`.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated

from healthcare.envelope import ok
from healthcare.permissions import IsManager
from healthcare.serializers.medical_records import (
    MedicalRecordListSerializer,
    MedicalRecordSerializer,
    ProgressNoteSerializer,
    RecordAccessSerializer,
    RecordAttachmentSerializer,
)
from healthcare.services import medical_records as records
from healthcare.services.access import Claim


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def medical_records(request):
    claim = Claim.from_request(request)
    if request.method == 'POST':
        record = records.create_record(claim, request.data)
        return ok({'medicalRecord': MedicalRecordSerializer(record).data},
                  message='Medical record created successfully', status=201)

    items, pagination = records.list_records(claim, request.query_params)
    return ok({
        'medicalRecords': MedicalRecordListSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def medical_record_detail(request, pk: int):
    claim = Claim.from_request(request)
    if request.method == 'PUT':
        record = records.update_record(claim, pk, request.data)
        return ok({'medicalRecord': MedicalRecordSerializer(record).data},
                  message='Medical record updated successfully')
    if request.method == 'DELETE':
        records.delete_record(claim, pk)
        return ok(message='Medical record deleted successfully')

    record = records.view_record(claim, pk)
    return ok({'medicalRecord': MedicalRecordSerializer(record).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def record_attachments(request, pk: int):
    attachment = records.add_attachment(Claim.from_request(request), pk, request.data)
    return ok({'attachment': RecordAttachmentSerializer(attachment).data},
              message='Attachment uploaded successfully', status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def record_progress_notes(request, pk: int):
    note = records.add_progress_note(Claim.from_request(request), pk, request.data)
    return ok({'progressNote': ProgressNoteSerializer(note).data},
              message='Progress note added successfully', status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManager])
def record_access_log(request, pk: int):
    entries = records.access_trail(pk)
    return ok({'accessLog': RecordAccessSerializer(entries, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def record_export(request, pk: int):
    record = records.export_record(Claim.from_request(request), pk)
    resp = ok({'medicalRecord': MedicalRecordSerializer(record).data})
    resp['Content-Disposition'] = f'attachment; filename="{record.record_id}.json"'
    return resp
