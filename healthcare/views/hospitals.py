from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from healthcare.envelope import ok
from healthcare.permissions import IsManager, check
from healthcare.serializers.hospitals import HospitalSerializer
from healthcare.serializers.users import DoctorSerializer
from healthcare.services import hospitals as directory


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def hospitals(request):
    if request.method == 'POST':
        check(request, IsManager)
        hospital = directory.create_hospital(request.user.pk, request.data)
        return ok({'hospital': HospitalSerializer(hospital).data},
                  message='Hospital created successfully', status=201)

    items, pagination = directory.list_hospitals(request.query_params)
    return ok({'hospitals': HospitalSerializer(items, many=True).data, 'pagination': pagination})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def hospital_detail(request, pk: int):
    if request.method == 'PUT':
        check(request, IsManager)
        hospital = directory.update_hospital(request.user.pk, pk, request.data)
        return ok({'hospital': HospitalSerializer(hospital).data}, message='Hospital updated successfully')
    return ok({'hospital': HospitalSerializer(directory.get_hospital(pk)).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def hospital_doctors(request, pk: int):
    hospital, doctors = directory.hospital_doctors(pk, request.query_params)
    return ok({
        'hospital': {'id': hospital.pk, 'name': hospital.name},
        'doctors': DoctorSerializer(doctors, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def specializations(request):
    return ok({'specializations': directory.specializations()})
