from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from healthcare.envelope import ok
from healthcare.serializers.appointments import AppointmentSerializer
from healthcare.services import appointments as booking
from healthcare.services.access import Claim


def _appointment(appointment):
    return {'appointment': AppointmentSerializer(appointment).data}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    claim = Claim.from_request(request)
    if request.method == 'POST':
        appointment = booking.create_appointment(claim, request.data)
        return ok(_appointment(appointment), message='Appointment created successfully', status=201)

    items, pagination = booking.list_appointments(claim, request.query_params)
    return ok({'appointments': AppointmentSerializer(items, many=True).data, 'pagination': pagination})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk: int):
    claim = Claim.from_request(request)
    if request.method == 'PUT':
        appointment = booking.update_appointment(claim, pk, request.data)
        return ok(_appointment(appointment), message='Appointment updated successfully')
    return ok(_appointment(booking.view_appointment(claim, pk)))


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def appointment_cancel(request, pk: int):
    appointment = booking.cancel_appointment(Claim.from_request(request), pk, request.data)
    return ok(_appointment(appointment), message='Appointment cancelled successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_availability(request, doctor_id: int):
    return ok(booking.availability(doctor_id, request.query_params))
