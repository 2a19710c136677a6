"""
Payment workflows: creation with line items, staff status updates, line
item edits, receipts and refunds.

Line-item changes always end with ``Payment.calculate_total`` so that
``total == subtotal + tax - discount`` and ``amount == total`` hold after
every mutation.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from healthcare.models import Appointment, BillingItem, Hospital, Payment, User, next_identifier
from healthcare.serializers.payments import (
    BillingItemInputSerializer,
    PaymentCreateSerializer,
    PaymentUpdateSerializer,
    RefundSerializer,
)
from healthcare.serializers.query import PaymentQuerySerializer
from healthcare.services import billing
from healthcare.services.access import CREATE, READ, UPDATE, Claim, enforce
from healthcare.services.audit import log_action
from healthcare.services.filters import build_filter, paginate
from healthcare.services.notifications import email_on_commit, notify_on_commit, payment_confirmation

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = (Payment.STATUS_PENDING, Payment.STATUS_PROCESSING)


def get_payment(pk: int) -> Payment:
    payment = Payment.objects.select_related('patient', 'hospital').filter(pk=pk).first()
    if payment is None:
        raise NotFound('Payment not found')
    return payment


def list_payments(claim: Claim, query_params):
    enforce(claim, Payment, READ)
    vf = build_filter(PaymentQuerySerializer, query_params, claim)
    qs = vf.apply(Payment.objects.select_related('patient', 'hospital').prefetch_related('items'))
    return paginate(qs, vf.page, vf.limit)


def view_payment(claim: Claim, pk: int) -> Payment:
    payment = get_payment(pk)
    enforce(claim, payment, READ)
    return payment


def _settle_appointment(payment: Payment) -> None:
    """Mark the matching appointment fee as paid once ``payment`` completes."""
    appointment = payment.appointment
    if appointment is None:
        return
    now = timezone.now()
    if payment.amount == appointment.reservation_fee:
        appointment.reservation_fee_paid = True
        appointment.reservation_fee_paid_at = now
        appointment.reservation_fee_method = payment.method
    else:
        appointment.consultation_fee_paid = True
        appointment.consultation_fee_paid_at = now
        appointment.consultation_fee_method = payment.method
    appointment.save()


def _add_items(payment: Payment, items) -> None:
    for item in items:
        BillingItem.objects.create(
            payment=payment,
            service_name=item['serviceName'],
            service_code=item.get('serviceCode', ''),
            quantity=item['quantity'],
            unit_price=item['unitPrice'],
        )


def create_payment(claim: Claim, data) -> Payment:
    enforce(claim, Payment, CREATE)
    s = PaymentCreateSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    patient = User.objects.filter(pk=vd['patientID'], role=User.ROLE_PATIENT).first()
    if patient is None:
        raise ValidationError({'patientID': 'Patient not found'})
    hospital = Hospital.objects.filter(pk=vd['hospitalID']).first()
    if hospital is None:
        raise ValidationError({'hospitalID': 'Hospital not found'})
    appointment = None
    if vd.get('appointmentID'):
        appointment = Appointment.objects.filter(pk=vd['appointmentID']).first()
        if appointment is None:
            raise ValidationError({'appointmentID': 'Appointment not found'})
        if appointment.patient_id != patient.pk:
            raise ValidationError({'appointmentID': 'Appointment belongs to another patient'})

    method = vd['method']
    payment = Payment(
        patient=patient,
        hospital=hospital,
        appointment=appointment,
        doctor_id=appointment.doctor_id if appointment else None,
        method=method,
        currency=vd['currency'],
        tax=vd['tax'],
        discount=vd['discount'],
        insurance_info=dict(vd.get('insuranceInfo') or {}),
        notes=vd.get('notes', ''),
        status=billing.initial_status(method),
    )
    enforce(claim, payment, CREATE)
    if method != 'cash':
        payment.transaction_reference = billing.transaction_reference()
    if method == 'insurance':
        payment.insurance_info['status'] = 'pending'
    if payment.status == Payment.STATUS_COMPLETED:
        payment.processed_by_id = claim.subject

    with transaction.atomic():
        payment.save()
        _add_items(payment, vd['items'])
        payment.calculate_total()
        if payment.status == Payment.STATUS_COMPLETED:
            _settle_appointment(payment)
        log_action(actor_id=claim.subject, action='payment_create', object_type='payment', object_id=payment.payment_id,
                   detail={'method': method, 'status': payment.status})

    logger.info("payment %s created: %s %s (%s)", payment.payment_id, payment.amount, payment.currency, payment.status)
    if payment.status == Payment.STATUS_COMPLETED:
        notify_on_commit(patient.pk, 'payment.completed', {'paymentId': payment.payment_id})
        email_on_commit(patient.pk, payment_confirmation(payment))
    return payment


def update_payment(claim: Claim, pk: int, data) -> Payment:
    payment = get_payment(pk)
    enforce(claim, payment, UPDATE)
    s = PaymentUpdateSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    previous = payment.status
    target = vd.get('status', previous)
    if not billing.can_transition(previous, target):
        raise ValidationError({'status': f'Cannot change status from {previous} to {target}'})
    if ('tax' in vd or 'discount' in vd) and previous not in EDITABLE_STATUSES:
        raise ValidationError({'status': f'Amounts of a {previous} payment cannot be changed'})
    if 'tax' in vd or 'discount' in vd:
        _check_totals(payment.items.values_list('quantity', 'unit_price'),
                      vd.get('tax', payment.tax), vd.get('discount', payment.discount))

    with transaction.atomic():
        if 'tax' in vd:
            payment.tax = vd['tax']
        if 'discount' in vd:
            payment.discount = vd['discount']
        if 'insuranceInfo' in vd:
            payment.insurance_info = {**payment.insurance_info, **vd['insuranceInfo']}
        if 'notes' in vd:
            payment.notes = vd['notes']
        payment.status = target
        if target == Payment.STATUS_COMPLETED and previous != target:
            payment.processed_by_id = claim.subject
        payment.save()
        if 'tax' in vd or 'discount' in vd:
            payment.calculate_total()
        if target == Payment.STATUS_COMPLETED and previous != target:
            _settle_appointment(payment)
        log_action(actor_id=claim.subject, action='payment_update', object_type='payment', object_id=payment.payment_id,
                   detail={'from': previous, 'to': target})

    if previous != target:
        logger.info("payment %s: %s -> %s", payment.payment_id, previous, target)
        if target == Payment.STATUS_COMPLETED:
            notify_on_commit(payment.patient_id, 'payment.completed', {'paymentId': payment.payment_id})
            email_on_commit(payment.patient_id, payment_confirmation(payment))
    return payment


def _check_totals(items, tax, discount) -> None:
    _, total = billing.compute_totals(items, tax, discount)
    if total < 0:
        raise ValidationError({'discount': 'Discount cannot exceed subtotal plus tax'})


def _ensure_editable(payment: Payment) -> None:
    if payment.status not in EDITABLE_STATUSES:
        raise ValidationError({'status': f'Line items of a {payment.status} payment cannot be changed'})


def add_item(claim: Claim, pk: int, data) -> Payment:
    payment = get_payment(pk)
    enforce(claim, payment, UPDATE)
    _ensure_editable(payment)
    s = BillingItemInputSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    items = list(payment.items.values_list('quantity', 'unit_price'))
    _check_totals(items + [(vd['quantity'], vd['unitPrice'])], payment.tax, payment.discount)
    with transaction.atomic():
        _add_items(payment, [vd])
        payment.calculate_total()
    return payment


def remove_item(claim: Claim, pk: int, item_id: int) -> Payment:
    payment = get_payment(pk)
    enforce(claim, payment, UPDATE)
    _ensure_editable(payment)
    item = payment.items.filter(pk=item_id).first()
    if item is None:
        raise NotFound('Billing item not found')
    _check_totals(payment.items.exclude(pk=item.pk).values_list('quantity', 'unit_price'),
                  payment.tax, payment.discount)
    with transaction.atomic():
        item.delete()
        payment.calculate_total()
    return payment


def generate_receipt(claim: Claim, pk: int) -> dict:
    payment = get_payment(pk)
    enforce(claim, payment, READ)
    if payment.status != Payment.STATUS_COMPLETED:
        raise ValidationError({'status': 'Receipt can only be generated for completed payments'})
    if not payment.receipt_number:
        with transaction.atomic():
            payment.receipt_number = next_identifier('RCP')
            payment.receipt_generated_at = timezone.now()
            payment.save(update_fields=['receipt_number', 'receipt_generated_at', 'updated_at'])

    return {
        'receiptNumber': payment.receipt_number,
        'generatedAt': payment.receipt_generated_at.isoformat(),
        'paymentDate': payment.created_at.isoformat(),
        'paymentId': payment.payment_id,
        'patient': payment.patient.get_full_name() or payment.patient.username,
        'hospital': payment.hospital.name,
        'appointmentId': payment.appointment_id,
        'services': [
            {
                'serviceName': i.service_name,
                'serviceCode': i.service_code,
                'quantity': i.quantity,
                'unitPrice': i.unit_price,
                'totalPrice': i.total_price,
            }
            for i in payment.items.all()
        ],
        'subtotal': payment.subtotal,
        'tax': payment.tax,
        'discount': payment.discount,
        'total': payment.total,
        'currency': payment.currency,
        'paymentMethod': payment.method,
        'transactionReference': payment.transaction_reference,
        'status': payment.status,
    }


def refund_payment(claim: Claim, pk: int, data) -> Payment:
    payment = get_payment(pk)
    enforce(claim, payment, UPDATE)
    s = RefundSerializer(data=data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if payment.status != Payment.STATUS_COMPLETED:
        raise ValidationError({'status': 'Can only refund completed payments'})
    if vd['refundAmount'] > payment.amount:
        raise ValidationError({'refundAmount': 'Refund amount cannot exceed payment amount'})

    with transaction.atomic():
        payment.refund_amount = vd['refundAmount']
        payment.refund_reason = vd['refundReason']
        payment.refund_method = vd['refundMethod']
        payment.refund_reference = billing.refund_reference()
        payment.refunded_at = timezone.now()
        payment.status = billing.refund_status(vd['refundAmount'], payment.amount)
        payment.save()
        log_action(actor_id=claim.subject, action='payment_refund', object_type='payment', object_id=payment.payment_id,
                   detail={'amount': str(vd['refundAmount']), 'status': payment.status})

    logger.info("payment %s refunded %s (%s)", payment.payment_id, payment.refund_amount, payment.status)
    notify_on_commit(payment.patient_id, 'payment.refunded', {'paymentId': payment.payment_id})
    return payment
