import datetime
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from healthcare.models import Appointment, Payment
from healthcare.services import analytics

pytestmark = pytest.mark.django_db


@pytest.fixture
def make_appointment(patient, doctor, hospital):
    def _make(status, day=None, time='09:00', **extra):
        return Appointment.objects.create(
            patient=patient, doctor=doctor, hospital=hospital,
            date=day or timezone.localdate(), time=time, status=status,
            consultation_fee=Decimal('2000'), **extra,
        )
    return _make


@pytest.fixture
def make_payment(patient, hospital):
    def _make(amount, status=Payment.STATUS_COMPLETED, method='cash', **extra):
        return Payment.objects.create(patient=patient, hospital=hospital, amount=Decimal(amount),
                                      total=Decimal(amount), status=status, method=method, **extra)
    return _make


def test_dashboard_rates_and_revenue(make_appointment, make_payment):
    make_appointment(Appointment.STATUS_COMPLETED, time='09:00')
    make_appointment(Appointment.STATUS_CANCELLED, time='09:30')
    make_appointment(Appointment.STATUS_NO_SHOW, time='10:00')
    make_payment('2000')

    data = analytics.compute_dashboard()

    assert data['overview']['totalAppointments'] == 3
    assert data['overview']['completedAppointments'] == 1
    assert data['overview']['cancelledAppointments'] == 1
    assert data['overview']['totalRevenue'] == Decimal('2000.00')
    assert data['overview']['totalPayments'] == 1
    assert data['metrics']['appointmentCompletionRate'] == pytest.approx(1 / 3)
    assert data['metrics']['noShowRate'] == pytest.approx(1 / 3)
    assert data['metrics']['averageRevenuePerAppointment'] == Decimal('2000.00')


def test_pending_payments_do_not_count_as_revenue(make_payment):
    make_payment('500', status=Payment.STATUS_PENDING, method='insurance')
    data = analytics.compute_dashboard()
    assert data['overview']['totalRevenue'] == Decimal('0.00')
    assert data['overview']['pendingPayments'] == 1


def test_empty_database_yields_zero_rates(db):
    data = analytics.compute_dashboard()
    assert data['metrics']['appointmentCompletionRate'] == 0
    assert data['metrics']['noShowRate'] == 0
    assert data['metrics']['bedOccupancyRate'] == 0
    assert data['metrics']['averageRevenuePerAppointment'] == Decimal('0')


def test_ratio_guards_zero_denominator():
    assert analytics.ratio(5, 0) == 0.0
    assert analytics.ratio(1, 4) == 0.25


def test_bed_occupancy_follows_hospital_filter(hospital):
    data = analytics.compute_dashboard(hospital_id=hospital.pk)
    assert data['overview']['totalBeds'] == 100
    assert data['metrics']['bedOccupancyRate'] == pytest.approx(0.4)


def test_default_range_is_last_thirty_days():
    rng = analytics.resolve_range()
    assert rng.end == timezone.localdate()
    assert (rng.end - rng.start).days == analytics.DEFAULT_RANGE_DAYS


def test_appointment_trends_are_ascending(make_appointment):
    d1 = datetime.date(2023, 2, 1)
    d2 = datetime.date(2023, 2, 3)
    make_appointment(Appointment.STATUS_COMPLETED, day=d2)
    make_appointment(Appointment.STATUS_NO_SHOW, day=d1)
    make_appointment(Appointment.STATUS_COMPLETED, day=d1, time='11:00')

    buckets = analytics.compute_trends('appointments', 'day', d1, d2)

    assert [b['period'] for b in buckets] == ['2023-02-01', '2023-02-03']
    assert buckets[0]['total'] == 2
    assert buckets[0]['noShow'] == 1
    assert buckets[1]['completed'] == 1


def test_monthly_trends_use_year_month_labels(make_appointment):
    make_appointment(Appointment.STATUS_COMPLETED, day=datetime.date(2023, 1, 20))
    make_appointment(Appointment.STATUS_COMPLETED, day=datetime.date(2023, 2, 5))
    buckets = analytics.compute_trends('appointments', 'month', datetime.date(2023, 1, 1),
                                       datetime.date(2023, 2, 28))
    assert [b['period'] for b in buckets] == ['2023-01', '2023-02']


def test_trends_reject_unknown_grouping():
    with pytest.raises(ValidationError):
        analytics.compute_trends('appointments', 'year')
    with pytest.raises(ValidationError):
        analytics.compute_trends('beds', 'day')


@pytest.mark.parametrize('dob,expected', [
    (None, 'Other'),
    (datetime.date(2020, 6, 1), '0-17'),
    (datetime.date(1995, 1, 1), '18-29'),
    (datetime.date(1955, 1, 1), '60-74'),
    (datetime.date(1900, 1, 1), 'Other'),
])
def test_age_bucket(dob, expected):
    assert analytics.age_bucket(dob, datetime.date(2024, 1, 1)) == expected


def test_age_distribution_lists_every_bucket(patient):
    rows = analytics.age_distribution()
    assert [r['range'] for r in rows] == ['0-17', '18-29', '30-44', '45-59', '60-74', '75-99', 'Other']
    assert sum(r['count'] for r in rows) == 1


def test_financial_status_summary_covers_all_statuses(make_payment):
    make_payment('1000')
    make_payment('300', status=Payment.STATUS_FAILED, method='credit_card')
    data = analytics.financial_analytics()
    statuses = {r['status']: r for r in data['statusSummary']}
    assert set(statuses) == {'completed', 'failed'}
    assert data['metrics']['totalRevenue'] == Decimal('1000.00')
    assert data['metrics']['totalTransactions'] == 1


def test_export_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        analytics.export_raw('beds')


def test_export_rows_and_csv(make_appointment):
    make_appointment(Appointment.STATUS_COMPLETED)
    rows, stem = analytics.export_raw('appointments')
    assert len(rows) == 1
    assert stem.startswith('appointments_')
    text = analytics.rows_to_csv(rows)
    assert text.splitlines()[0].startswith('appointmentId,patient,doctor')
    assert analytics.rows_to_csv([]) == ''


def test_dashboard_endpoint_is_office_only(api, manager, patient):
    assert api(patient).get(reverse('analytics_dashboard')).status_code == 403
    r = api(manager).get(reverse('analytics_dashboard'))
    assert r.status_code == 200
    assert r.data['success'] is True
    assert 'overview' in r.data['data']


def test_export_endpoint_serves_csv(api, staff, make_appointment):
    make_appointment(Appointment.STATUS_COMPLETED)
    r = api(staff).get(reverse('analytics_export'), {'type': 'appointments', 'format': 'csv'})
    assert r.status_code == 200
    assert r['Content-Type'].startswith('text/csv')
    assert 'attachment;' in r['Content-Disposition']


def test_analytics_query_rejects_inverted_range(api, manager):
    r = api(manager).get(reverse('analytics_dashboard'), {'dateFrom': '2023-03-01', 'dateTo': '2023-02-01'})
    assert r.status_code == 400
    assert r.data['success'] is False
    assert r.data['message'] == 'Validation failed'
