from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone

from healthcare.models import Appointment, AuditEvent, Payment

pytestmark = pytest.mark.django_db


@pytest.fixture
def appointment(patient, doctor, hospital):
    return Appointment.objects.create(
        patient=patient, doctor=doctor, hospital=hospital, date=timezone.localdate(), time='10:00',
        consultation_fee=Decimal('2500'), reservation_fee=Decimal('500'),
    )


def payload(patient, hospital, **extra):
    data = {
        'patientID': patient.pk,
        'hospitalID': hospital.pk,
        'method': 'cash',
        'items': [
            {'serviceName': 'Consultation', 'serviceCode': 'CONS', 'unitPrice': '2000.00'},
            {'serviceName': 'Blood test', 'quantity': 2, 'unitPrice': '250.00'},
        ],
        'tax': '125.00',
        'discount': '100.00',
    }
    data.update(extra)
    return data


def create(client, patient, hospital, **extra):
    r = client.post(reverse('payments'), payload(patient, hospital, **extra), format='json')
    assert r.status_code == 201, r.data
    return r.data['data']['payment']


def test_cash_payment_completes_immediately(api, staff, patient, hospital):
    body = create(api(staff), patient, hospital)
    assert body['status'] == 'completed'
    assert body['subtotal'] == '2500.00'
    assert body['total'] == '2525.00'
    assert body['amount'] == body['total']
    assert body['transactionReference'] is None
    assert body['processedBy'] == staff.pk
    assert body['paymentId'].startswith('PAY')
    assert len(body['items']) == 2
    assert AuditEvent.objects.filter(action='payment_create', user=staff).count() == 1


@pytest.mark.parametrize('method,status', [('insurance', 'pending'), ('credit_card', 'processing')])
def test_deferred_methods(api, staff, patient, hospital, method, status):
    body = create(api(staff), patient, hospital, method=method)
    assert body['status'] == status
    assert body['transactionReference'].startswith('TXN')
    assert body['processedBy'] is None
    if method == 'insurance':
        assert body['insuranceInfo']['status'] == 'pending'


def test_discount_cannot_exceed_subtotal_plus_tax(api, staff, patient, hospital):
    r = api(staff).post(reverse('payments'), payload(patient, hospital, discount='99999'), format='json')
    assert r.status_code == 400
    assert 'discount' in r.data['errors']
    assert Payment.objects.count() == 0


def test_items_are_required(api, staff, patient, hospital):
    r = api(staff).post(reverse('payments'), payload(patient, hospital, items=[]), format='json')
    assert r.status_code == 400
    assert 'items' in r.data['errors']


def test_patient_cannot_create_payment(api, patient, hospital):
    r = api(patient).post(reverse('payments'), payload(patient, hospital), format='json')
    assert r.status_code == 403


def test_payment_settles_appointment_fee(api, staff, patient, hospital, appointment):
    create(api(staff), patient, hospital, appointmentID=appointment.pk, tax='0', discount='0',
           items=[{'serviceName': 'Reservation', 'unitPrice': '500.00'}])
    appointment.refresh_from_db()
    assert appointment.reservation_fee_paid is True
    assert appointment.reservation_fee_method == 'cash'
    assert appointment.consultation_fee_paid is False


def test_appointment_of_another_patient_is_rejected(api, staff, other_patient, hospital, appointment):
    r = api(staff).post(reverse('payments'), payload(other_patient, hospital, appointmentID=appointment.pk),
                        format='json')
    assert r.status_code == 400
    assert 'appointmentID' in r.data['errors']


def test_patient_sees_only_own_payments(api, staff, patient, other_patient, hospital):
    create(api(staff), patient, hospital)
    create(api(staff), other_patient, hospital)

    r = api(patient).get(reverse('payments'))
    assert r.status_code == 200
    assert [p['patientId'] for p in r.data['data']['payments']] == [patient.pk]
    assert r.data['data']['pagination']['totalItems'] == 1

    other = Payment.objects.get(patient=other_patient)
    assert api(patient).get(reverse('payment_detail', args=[other.pk])).status_code == 403


def test_list_filters_by_status(api, staff, manager, patient, hospital):
    create(api(staff), patient, hospital)
    create(api(staff), patient, hospital, method='insurance')
    r = api(manager).get(reverse('payments'), {'status': 'pending'})
    assert [p['method'] for p in r.data['data']['payments']] == ['insurance']


def test_status_update_and_transition_rules(api, staff, patient, hospital):
    body = create(api(staff), patient, hospital, method='credit_card')
    url = reverse('payment_detail', args=[body['id']])

    assert api(patient).put(url, {'status': 'completed'}, format='json').status_code == 403

    r = api(staff).put(url, {'status': 'completed'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['payment']['status'] == 'completed'
    assert r.data['data']['payment']['processedBy'] == staff.pk

    r = api(staff).put(url, {'status': 'pending'}, format='json')
    assert r.status_code == 400
    assert 'status' in r.data['errors']


def test_line_items_recompute_total(api, staff, patient, hospital):
    body = create(api(staff), patient, hospital, method='credit_card')
    client = api(staff)

    r = client.post(reverse('payment_items', args=[body['id']]),
                    {'serviceName': 'X-ray', 'unitPrice': '1500.00'}, format='json')
    assert r.status_code == 201
    assert r.data['data']['payment']['subtotal'] == '4000.00'
    assert r.data['data']['payment']['total'] == '4025.00'

    item_id = r.data['data']['payment']['items'][-1]['id']
    r = client.delete(reverse('payment_item_detail', args=[body['id'], item_id]))
    assert r.status_code == 200
    assert r.data['data']['payment']['total'] == '2525.00'

    r = client.delete(reverse('payment_item_detail', args=[body['id'], 999999]))
    assert r.status_code == 404


def test_item_edits_keep_total_non_negative(api, staff, patient, hospital):
    body = create(api(staff), patient, hospital, method='credit_card', discount='1500.00', tax='0',
                  items=[{'serviceName': 'Surgery consult', 'unitPrice': '2000.00'}])
    client = api(staff)
    r = client.post(reverse('payment_items', args=[body['id']]),
                    {'serviceName': 'Bandage', 'unitPrice': '10.00'}, format='json')
    assert r.status_code == 201
    big_item = r.data['data']['payment']['items'][0]['id']

    r = client.delete(reverse('payment_item_detail', args=[body['id'], big_item]))
    assert r.status_code == 400
    assert 'discount' in r.data['errors']

    payment = Payment.objects.get(pk=body['id'])
    assert payment.items.count() == 2
    assert payment.total == Decimal('510.00')
    assert payment.amount == payment.total


def test_completed_payment_is_emailed(api, staff, patient, hospital, mailoutbox,
                                      django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        body = create(api(staff), patient, hospital)
    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == [patient.email]
    assert mailoutbox[0].subject.startswith('Payment Confirmation')
    assert body['paymentId'] in mailoutbox[0].body


def test_pending_payment_is_not_emailed(api, staff, patient, hospital, mailoutbox,
                                        django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        create(api(staff), patient, hospital, method='insurance')
    assert mailoutbox == []


def test_completed_payment_items_are_frozen(api, staff, patient, hospital):
    body = create(api(staff), patient, hospital)
    r = api(staff).post(reverse('payment_items', args=[body['id']]),
                        {'serviceName': 'X-ray', 'unitPrice': '1500.00'}, format='json')
    assert r.status_code == 400


def test_receipt(api, staff, patient, hospital):
    body = create(api(staff), patient, hospital)
    url = reverse('payment_receipt', args=[body['id']])

    r = api(patient).post(url, {}, format='json')
    assert r.status_code == 200
    receipt = r.data['data']['receipt']
    assert receipt['receiptNumber'].startswith('RCP')
    assert receipt['paymentId'] == body['paymentId']
    assert len(receipt['services']) == 2

    # generating again keeps the number
    again = api(staff).post(url, {}, format='json')
    assert again.data['data']['receipt']['receiptNumber'] == receipt['receiptNumber']


def test_receipt_requires_completed_payment(api, staff, patient, hospital):
    body = create(api(staff), patient, hospital, method='insurance')
    r = api(staff).post(reverse('payment_receipt', args=[body['id']]), {}, format='json')
    assert r.status_code == 400


def test_refund(api, staff, patient, hospital):
    body = create(api(staff), patient, hospital)
    url = reverse('payment_refund', args=[body['id']])
    refund = {'refundAmount': '500.00', 'refundReason': 'Duplicate test', 'refundMethod': 'cash'}

    assert api(patient).post(url, refund, format='json').status_code == 403

    r = api(staff).post(url, {**refund, 'refundAmount': '9999.00'}, format='json')
    assert r.status_code == 400
    assert 'refundAmount' in r.data['errors']

    r = api(staff).post(url, refund, format='json')
    assert r.status_code == 200
    payment = r.data['data']['payment']
    assert payment['status'] == 'partially_refunded'
    assert payment['refund']['refundReference'].startswith('REF')


def test_full_refund(api, manager, staff, patient, hospital):
    body = create(api(staff), patient, hospital)
    r = api(manager).post(reverse('payment_refund', args=[body['id']]),
                          {'refundAmount': body['amount'], 'refundReason': 'Cancelled', 'refundMethod': 'original'},
                          format='json')
    assert r.data['data']['payment']['status'] == 'refunded'


def test_unknown_payment_is_404(api, manager):
    r = api(manager).get(reverse('payment_detail', args=[424242]))
    assert r.status_code == 404
    assert r.data['message'] == 'Payment not found'
