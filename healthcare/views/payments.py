from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from healthcare.envelope import ok
from healthcare.permissions import IsManagerOrStaff, check
from healthcare.serializers.payments import PaymentSerializer
from healthcare.services import payments as billing
from healthcare.services.access import Claim


def _payment(payment):
    return {'payment': PaymentSerializer(payment).data}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def payments(request):
    claim = Claim.from_request(request)
    if request.method == 'POST':
        payment = billing.create_payment(claim, request.data)
        return ok(_payment(payment), message='Payment created successfully', status=201)

    items, pagination = billing.list_payments(claim, request.query_params)
    return ok({'payments': PaymentSerializer(items, many=True).data, 'pagination': pagination})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def payment_detail(request, pk: int):
    claim = Claim.from_request(request)
    if request.method == 'PUT':
        check(request, IsManagerOrStaff)
        payment = billing.update_payment(claim, pk, request.data)
        return ok(_payment(payment), message='Payment updated successfully')
    return ok(_payment(billing.view_payment(claim, pk)))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def payment_items(request, pk: int):
    payment = billing.add_item(Claim.from_request(request), pk, request.data)
    return ok(_payment(payment), message='Billing item added', status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def payment_item_detail(request, pk: int, item_id: int):
    payment = billing.remove_item(Claim.from_request(request), pk, item_id)
    return ok(_payment(payment), message='Billing item removed')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def payment_receipt(request, pk: int):
    receipt = billing.generate_receipt(Claim.from_request(request), pk)
    return ok({'receipt': receipt}, message='Receipt generated successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManagerOrStaff])
def payment_refund(request, pk: int):
    payment = billing.refund_payment(Claim.from_request(request), pk, request.data)
    return ok(_payment(payment), message='Refund processed successfully')
