import datetime
import math

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from healthcare.models import MedicalRecord
from healthcare.serializers.query import MedicalRecordQuerySerializer, PaymentQuerySerializer
from healthcare.services.access import Claim
from healthcare.services.filters import build_filter, paginate, pagination_meta

pytestmark = pytest.mark.django_db


def noon(day: datetime.date) -> datetime.datetime:
    return timezone.make_aware(datetime.datetime.combine(day, datetime.time(12, 0)))


@pytest.fixture
def make_record(hospital, doctor, patient):
    def _make(day, **extra):
        values = dict(patient=patient, doctor=doctor, hospital=hospital,
                      visit_date=noon(day), chief_complaint='Headache')
        values.update(extra)
        return MedicalRecord.objects.create(**values)
    return _make


def records_for(claim, params):
    vf = build_filter(MedicalRecordQuerySerializer, params, claim)
    return vf, vf.apply(MedicalRecord.objects.all())


@pytest.mark.parametrize('total,limit', [(0, 10), (1, 10), (10, 10), (11, 10), (25, 7)])
def test_total_pages_is_ceiling(total, limit):
    meta = pagination_meta(1, limit, total)
    assert meta['totalPages'] == math.ceil(total / limit)
    assert meta['totalItems'] == total
    assert meta['itemsPerPage'] == limit


@pytest.mark.parametrize('order', ['asc', 'desc'])
def test_pages_are_consecutive_slices(manager, make_record, order):
    start = datetime.date(2023, 3, 1)
    # two records share a day so the pk tie-breaker decides their order
    days = [0, 1, 1, 2, 3, 4, 5]
    made = [make_record(start + datetime.timedelta(days=d)) for d in days]
    expected = [r.pk for r in sorted(made, key=lambda r: (r.visit_date, r.pk), reverse=(order == 'desc'))]
    claim = Claim.from_user(manager)

    _, full = records_for(claim, {'sortBy': 'visitDate', 'sortOrder': order})
    assert list(full.values_list('pk', flat=True)) == expected

    limit = 3
    seen = []
    for page in (1, 2, 3):
        vf, qs = records_for(claim, {'page': page, 'limit': limit, 'sortBy': 'visitDate', 'sortOrder': order})
        items, meta = paginate(qs, vf.page, vf.limit)
        assert meta['currentPage'] == page
        assert meta['totalPages'] == 3
        assert [r.pk for r in items] == expected[(page - 1) * limit:page * limit]
        seen.extend(r.pk for r in items)
    assert seen == expected


def test_date_range_is_inclusive_on_both_days(manager, make_record):
    for day in ['2023-01-31', '2023-02-01', '2023-02-15', '2023-02-28', '2023-03-01']:
        make_record(datetime.date.fromisoformat(day))

    _, qs = records_for(Claim.from_user(manager), {'dateFrom': '2023-02-01', 'dateTo': '2023-02-28'})

    days = sorted(timezone.localdate(r.visit_date).isoformat() for r in qs)
    assert days == ['2023-02-01', '2023-02-15', '2023-02-28']


def test_every_bad_parameter_is_reported(manager):
    with pytest.raises(ValidationError) as exc:
        build_filter(MedicalRecordQuerySerializer, {'page': 0, 'limit': 200}, Claim.from_user(manager))
    assert set(exc.value.detail) >= {'page', 'limit'}


def test_date_from_after_date_to_is_rejected(manager):
    with pytest.raises(ValidationError) as exc:
        build_filter(MedicalRecordQuerySerializer, {'dateFrom': '2023-03-01', 'dateTo': '2023-02-01'},
                     Claim.from_user(manager))
    assert 'dateFrom' in exc.value.detail


def test_sort_by_is_whitelisted(manager):
    claim = Claim.from_user(manager)
    with pytest.raises(ValidationError) as exc:
        build_filter(MedicalRecordQuerySerializer, {'sortBy': 'patient__password'}, claim)
    assert 'sortBy' in exc.value.detail

    vf = build_filter(MedicalRecordQuerySerializer, {'sortBy': 'createdAt', 'sortOrder': 'asc'}, claim)
    assert vf.ordering == ['created_at', 'pk']


def test_defaults(manager):
    vf = build_filter(PaymentQuerySerializer, {}, Claim.from_user(manager))
    assert (vf.page, vf.limit) == (1, 10)
    assert vf.ordering == ['-created_at', '-pk']


def test_scope_is_applied_for_patients(make_record, make_user, patient):
    someone_else = make_user('patient')
    mine = make_record(datetime.date(2023, 2, 1))
    make_record(datetime.date(2023, 2, 2), patient=someone_else)

    _, qs = records_for(Claim.from_user(patient), {})
    assert [r.pk for r in qs] == [mine.pk]


def test_inactive_records_hidden_unless_manager_asks(manager, doctor, make_record):
    active = make_record(datetime.date(2023, 2, 1))
    make_record(datetime.date(2023, 2, 2), is_active=False)

    _, qs = records_for(Claim.from_user(manager), {})
    assert [r.pk for r in qs] == [active.pk]

    _, qs = records_for(Claim.from_user(manager), {'includeInactive': 'true'})
    assert qs.count() == 2

    # the flag is ignored for everyone else
    _, qs = records_for(Claim.from_user(doctor), {'includeInactive': 'true'})
    assert qs.count() == 1
