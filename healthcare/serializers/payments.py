from decimal import Decimal

import bleach
from rest_framework import serializers

from healthcare.models import BillingItem, Payment

UPDATABLE_STATUSES = ['pending', 'processing', 'completed', 'failed', 'cancelled']


class BillingItemInputSerializer(serializers.Serializer):
    serviceName = serializers.CharField(max_length=200)
    serviceCode = serializers.CharField(required=False, allow_blank=True, max_length=32)
    quantity = serializers.IntegerField(min_value=1, default=1)
    unitPrice = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))

    def validate_serviceName(self, v):
        v = bleach.clean((v or '').strip(), tags=[], strip=True)
        if not v:
            raise serializers.ValidationError('Service name is required')
        return v


class PaymentCreateSerializer(serializers.Serializer):
    patientID = serializers.IntegerField(min_value=1)
    appointmentID = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    hospitalID = serializers.IntegerField(min_value=1)
    method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES)
    currency = serializers.ChoiceField(choices=Payment.CURRENCY_CHOICES, default='LKR')
    items = BillingItemInputSerializer(many=True, allow_empty=False)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    insuranceInfo = serializers.DictField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)

    def validate(self, attrs):
        subtotal = sum((i['quantity'] * i['unitPrice'] for i in attrs['items']), Decimal('0'))
        if attrs['discount'] > subtotal + attrs['tax']:
            raise serializers.ValidationError({'discount': 'Discount cannot exceed subtotal plus tax'})
        return attrs


class PaymentUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=UPDATABLE_STATUSES, required=False)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    insuranceInfo = serializers.DictField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class RefundSerializer(serializers.Serializer):
    refundAmount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    refundReason = serializers.CharField(max_length=1000)
    refundMethod = serializers.ChoiceField(choices=['original', 'cash', 'bank_transfer'])


class BillingItemSerializer(serializers.ModelSerializer):
    serviceName = serializers.CharField(source='service_name')
    serviceCode = serializers.CharField(source='service_code')
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=12, decimal_places=2)
    totalPrice = serializers.DecimalField(source='total_price', max_digits=12, decimal_places=2)

    class Meta:
        model = BillingItem
        fields = ['id', 'serviceName', 'serviceCode', 'quantity', 'unitPrice', 'totalPrice']


class PaymentSerializer(serializers.ModelSerializer):
    paymentId = serializers.CharField(source='payment_id', read_only=True)
    patientId = serializers.IntegerField(source='patient_id', read_only=True)
    patientName = serializers.SerializerMethodField()
    doctorId = serializers.IntegerField(source='doctor_id', read_only=True, allow_null=True)
    appointmentId = serializers.IntegerField(source='appointment_id', read_only=True, allow_null=True)
    hospitalId = serializers.IntegerField(source='hospital_id', read_only=True)
    hospitalName = serializers.CharField(source='hospital.name', read_only=True)
    transactionReference = serializers.CharField(source='transaction_reference', allow_null=True)
    items = BillingItemSerializer(many=True, read_only=True)
    insuranceInfo = serializers.JSONField(source='insurance_info')
    receipt = serializers.SerializerMethodField()
    refund = serializers.SerializerMethodField()
    processedBy = serializers.IntegerField(source='processed_by_id', allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at')
    updatedAt = serializers.DateTimeField(source='updated_at')

    class Meta:
        model = Payment
        fields = [
            'id', 'paymentId', 'patientId', 'patientName', 'doctorId', 'appointmentId',
            'hospitalId', 'hospitalName', 'amount', 'currency', 'method', 'status',
            'transactionReference', 'items', 'subtotal', 'tax', 'discount', 'total',
            'insuranceInfo', 'receipt', 'refund', 'notes', 'processedBy', 'createdAt', 'updatedAt',
        ]

    def get_patientName(self, obj):
        return obj.patient.get_full_name() or obj.patient.username

    def get_receipt(self, obj):
        return {
            'generated': bool(obj.receipt_number),
            'receiptNumber': obj.receipt_number,
            'generatedAt': obj.receipt_generated_at.isoformat() if obj.receipt_generated_at else None,
        }

    def get_refund(self, obj):
        if obj.refund_amount is None:
            return None
        return {
            'refundAmount': str(obj.refund_amount),
            'refundReason': obj.refund_reason,
            'refundMethod': obj.refund_method,
            'refundReference': obj.refund_reference,
            'refundedAt': obj.refunded_at.isoformat() if obj.refunded_at else None,
        }
