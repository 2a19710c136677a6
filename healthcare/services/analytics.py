"""
Dashboard and reporting aggregates.

Everything here is computed with the ORM (conditional ``Count``/``Sum`` and
``Trunc*`` bucketing) so the database does the grouping.  Rates are ratios
in ``[0, 1]`` and are ``0`` whenever their denominator is ``0``.  Date
ranges are inclusive on the calendar day; when a bound is missing the range
defaults to the last 30 days.
"""
from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncDay, TruncMonth, TruncWeek
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from healthcare.models import Appointment, Hospital, Payment, User

logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 30
TOP_N = 10

GROUP_BY = {
    'day': TruncDay,
    'week': TruncWeek,
    'month': TruncMonth,
}
ENTITY_KINDS = ('appointments', 'payments', 'patients')

AGE_BOUNDARIES = [0, 18, 30, 45, 60, 75, 100]
AGE_OTHER = 'Other'


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def as_dict(self) -> dict[str, str]:
        return {'startDate': self.start.isoformat(), 'endDate': self.end.isoformat()}


def resolve_range(date_from: Optional[date] = None, date_to: Optional[date] = None) -> DateRange:
    today = timezone.localdate()
    return DateRange(
        start=date_from or today - timedelta(days=DEFAULT_RANGE_DAYS),
        end=date_to or today,
    )


def ratio(numerator, denominator) -> float:
    if not denominator:
        return 0.0
    return float(numerator) / float(denominator)


def _money(value) -> Decimal:
    return (value or Decimal('0')).quantize(Decimal('0.01'))


def _in_range(field: str, rng: DateRange, *, is_datetime: bool) -> Q:
    lookup = f"{field}__date" if is_datetime else field
    return Q(**{f"{lookup}__gte": rng.start, f"{lookup}__lte": rng.end})


def _appointments(rng: DateRange, hospital_id: Optional[int] = None):
    qs = Appointment.objects.filter(_in_range('date', rng, is_datetime=False))
    if hospital_id:
        qs = qs.filter(hospital_id=hospital_id)
    return qs


def _payments(rng: DateRange, hospital_id: Optional[int] = None):
    qs = Payment.objects.filter(_in_range('created_at', rng, is_datetime=True))
    if hospital_id:
        qs = qs.filter(hospital_id=hospital_id)
    return qs


def _patients():
    return User.objects.filter(role=User.ROLE_PATIENT)


def _display_name(user: Optional[User]) -> Optional[str]:
    if user is None:
        return None
    return user.get_full_name() or user.username


def _completed():
    return Count('id', filter=Q(status=Appointment.STATUS_COMPLETED))


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def compute_dashboard(hospital_id: Optional[int] = None, date_from: Optional[date] = None,
                      date_to: Optional[date] = None) -> dict:
    rng = resolve_range(date_from, date_to)
    month_start = timezone.localdate().replace(day=1)

    patients = _patients()
    total_patients = patients.count()
    new_patients = patients.filter(date_joined__date__gte=month_start).count()

    appts = _appointments(rng, hospital_id).aggregate(
        total=Count('id'),
        completed=_completed(),
        cancelled=Count('id', filter=Q(status=Appointment.STATUS_CANCELLED)),
        no_show=Count('id', filter=Q(status=Appointment.STATUS_NO_SHOW)),
    )
    pays = _payments(rng, hospital_id).aggregate(
        revenue=Sum('amount', filter=Q(status=Payment.STATUS_COMPLETED)),
        completed=Count('id', filter=Q(status=Payment.STATUS_COMPLETED)),
        pending=Count('id', filter=Q(status=Payment.STATUS_PENDING)),
    )
    revenue = _money(pays['revenue'])

    doctors = User.objects.filter(role=User.ROLE_PROFESSIONAL)
    total_doctors = doctors.count()
    active_doctors = doctors.filter(is_active=True).count()

    hospitals = Hospital.objects.all()
    if hospital_id:
        hospitals = hospitals.filter(pk=hospital_id)
    beds = hospitals.aggregate(total=Sum('total_beds'), occupied=Sum('occupied_beds'))
    total_beds = beds['total'] or 0
    occupied_beds = beds['occupied'] or 0

    avg_revenue = Decimal('0')
    if appts['completed']:
        avg_revenue = _money(revenue / appts['completed'])

    return {
        'overview': {
            'totalPatients': total_patients,
            'newPatientsThisMonth': new_patients,
            'totalAppointments': appts['total'],
            'completedAppointments': appts['completed'],
            'cancelledAppointments': appts['cancelled'],
            'noShowAppointments': appts['no_show'],
            'totalRevenue': revenue,
            'totalPayments': pays['completed'],
            'pendingPayments': pays['pending'],
            'totalDoctors': total_doctors,
            'activeDoctors': active_doctors,
            'totalBeds': total_beds,
            'occupiedBeds': occupied_beds,
        },
        'metrics': {
            'appointmentCompletionRate': ratio(appts['completed'], appts['total']),
            'noShowRate': ratio(appts['no_show'], appts['total']),
            'bedOccupancyRate': ratio(occupied_beds, total_beds),
            'averageRevenuePerAppointment': avg_revenue,
        },
        'dateRange': rng.as_dict(),
    }


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

def _period_label(period, group_by: str) -> str:
    if isinstance(period, datetime):
        period = period.date()
    if group_by == 'month':
        return period.strftime('%Y-%m')
    return period.isoformat()


def compute_trends(entity_kind: str, group_by: str, date_from: Optional[date] = None,
                   date_to: Optional[date] = None, hospital_id: Optional[int] = None) -> list[dict]:
    """Bucket ``entity_kind`` rows by ``group_by`` and return buckets in ascending order.

    Weeks are labelled with the date of their Monday, months as ``YYYY-MM``.
    """
    if group_by not in GROUP_BY:
        raise ValidationError({'groupBy': f"groupBy must be one of: {', '.join(GROUP_BY)}"})
    if entity_kind not in ENTITY_KINDS:
        raise ValidationError({'type': f"type must be one of: {', '.join(ENTITY_KINDS)}"})
    trunc = GROUP_BY[group_by]
    rng = resolve_range(date_from, date_to)

    if entity_kind == 'appointments':
        rows = (
            _appointments(rng, hospital_id)
            .annotate(period=trunc('date'))
            .values('period')
            .annotate(
                total=Count('id'),
                completed=_completed(),
                cancelled=Count('id', filter=Q(status=Appointment.STATUS_CANCELLED)),
                noShow=Count('id', filter=Q(status=Appointment.STATUS_NO_SHOW)),
            )
            .order_by('period')
        )
    elif entity_kind == 'payments':
        rows = (
            _payments(rng, hospital_id)
            .filter(status=Payment.STATUS_COMPLETED)
            .annotate(period=trunc('created_at'))
            .values('period')
            .annotate(totalRevenue=Sum('amount'), transactionCount=Count('id'))
            .order_by('period')
        )
    else:
        rows = (
            _patients()
            .filter(_in_range('date_joined', rng, is_datetime=True))
            .annotate(period=trunc('date_joined'))
            .values('period')
            .annotate(count=Count('id'))
            .order_by('period')
        )

    buckets = []
    for row in rows:
        period = row.pop('period')
        buckets.append({'period': _period_label(period, group_by), **row})
    return buckets


# ---------------------------------------------------------------------------
# Detailed reports
# ---------------------------------------------------------------------------

def appointment_analytics(hospital_id: Optional[int] = None, date_from: Optional[date] = None,
                          date_to: Optional[date] = None, group_by: str = 'day') -> dict:
    rng = resolve_range(date_from, date_to)
    qs = _appointments(rng, hospital_id)

    by_status = [
        {'status': r['status'], 'count': r['count']}
        for r in qs.values('status').annotate(count=Count('id')).order_by('status')
    ]
    by_type = [
        {'type': r['appointment_type'], 'count': r['count']}
        for r in qs.values('appointment_type').annotate(count=Count('id')).order_by('appointment_type')
    ]

    top = list(
        qs.values('doctor')
        .annotate(appointmentCount=Count('id'), completedCount=_completed())
        .order_by('-appointmentCount', 'doctor')[:TOP_N]
    )
    doctors = User.objects.select_related('professional_profile').in_bulk([r['doctor'] for r in top])
    top_doctors = []
    for r in top:
        doctor = doctors.get(r['doctor'])
        profile = getattr(doctor, 'professional_profile', None)
        top_doctors.append({
            'doctorId': r['doctor'],
            'doctorName': _display_name(doctor),
            'specialization': profile.specialization if profile else None,
            'appointmentCount': r['appointmentCount'],
            'completedCount': r['completedCount'],
            'completionRate': ratio(r['completedCount'], r['appointmentCount']),
        })

    return {
        'trends': compute_trends('appointments', group_by, rng.start, rng.end, hospital_id),
        'byStatus': by_status,
        'byType': by_type,
        'topDoctors': top_doctors,
        'dateRange': rng.as_dict(),
        'groupBy': group_by,
    }


def financial_analytics(hospital_id: Optional[int] = None, date_from: Optional[date] = None,
                        date_to: Optional[date] = None, group_by: str = 'day') -> dict:
    rng = resolve_range(date_from, date_to)
    all_payments = _payments(rng, hospital_id)
    completed = all_payments.filter(status=Payment.STATUS_COMPLETED)

    by_method = [
        {'method': r['method'], 'totalRevenue': _money(r['totalRevenue']), 'transactionCount': r['transactionCount']}
        for r in completed.values('method')
        .annotate(totalRevenue=Sum('amount'), transactionCount=Count('id'))
        .order_by('method')
    ]
    by_hospital = [
        {
            'hospitalId': r['hospital'],
            'hospitalName': r['hospital__name'],
            'totalRevenue': _money(r['totalRevenue']),
            'transactionCount': r['transactionCount'],
        }
        for r in completed.values('hospital', 'hospital__name')
        .annotate(totalRevenue=Sum('amount'), transactionCount=Count('id'))
        .order_by('-totalRevenue', 'hospital')
    ]
    status_summary = [
        {'status': r['status'], 'count': r['count'], 'totalAmount': _money(r['totalAmount'])}
        for r in all_payments.values('status')
        .annotate(count=Count('id'), totalAmount=Sum('amount'))
        .order_by('status')
    ]

    totals = completed.aggregate(revenue=Sum('amount'), count=Count('id'))
    revenue = _money(totals['revenue'])
    average = _money(revenue / totals['count']) if totals['count'] else Decimal('0')

    return {
        'trends': compute_trends('payments', group_by, rng.start, rng.end, hospital_id),
        'byMethod': by_method,
        'byHospital': by_hospital,
        'statusSummary': status_summary,
        'metrics': {
            'totalRevenue': revenue,
            'totalTransactions': totals['count'],
            'averageTransactionValue': average,
        },
        'dateRange': rng.as_dict(),
        'groupBy': group_by,
    }


def age_bucket(date_of_birth: Optional[date], today: date) -> str:
    if date_of_birth is None:
        return AGE_OTHER
    age = int((today - date_of_birth).days // 365.25)
    for low, high in zip(AGE_BOUNDARIES, AGE_BOUNDARIES[1:]):
        if low <= age < high:
            return f"{low}-{high - 1}"
    return AGE_OTHER


def age_distribution(today: Optional[date] = None) -> list[dict]:
    today = today or timezone.localdate()
    labels = [f"{low}-{high - 1}" for low, high in zip(AGE_BOUNDARIES, AGE_BOUNDARIES[1:])] + [AGE_OTHER]
    counts = dict.fromkeys(labels, 0)
    for dob in _patients().values_list('date_of_birth', flat=True):
        counts[age_bucket(dob, today)] += 1
    return [{'range': label, 'count': counts[label]} for label in labels]


def patient_analytics(date_from: Optional[date] = None, date_to: Optional[date] = None) -> dict:
    rng = resolve_range(date_from, date_to)

    activity = list(
        _appointments(rng)
        .values('patient')
        .annotate(appointmentCount=Count('id'), completedCount=_completed())
        .order_by('-appointmentCount', 'patient')[:TOP_N]
    )
    patients = User.objects.in_bulk([r['patient'] for r in activity])

    return {
        'registrationTrends': compute_trends('patients', 'day', rng.start, rng.end),
        'ageDistribution': age_distribution(),
        'patientActivity': [
            {
                'patientId': r['patient'],
                'patientName': _display_name(patients.get(r['patient'])),
                'appointmentCount': r['appointmentCount'],
                'completedCount': r['completedCount'],
            }
            for r in activity
        ],
        'summary': {
            'totalPatients': _patients().count(),
            'newPatientsThisPeriod': _patients().filter(_in_range('date_joined', rng, is_datetime=True)).count(),
        },
        'dateRange': rng.as_dict(),
    }


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _appointment_rows(qs):
    for a in qs.select_related('patient', 'doctor', 'hospital').order_by('date', 'pk'):
        yield {
            'appointmentId': a.appointment_id,
            'patient': _display_name(a.patient),
            'doctor': _display_name(a.doctor),
            'hospital': a.hospital.name,
            'date': a.date.isoformat(),
            'time': a.time,
            'status': a.status,
            'type': a.appointment_type,
            'priority': a.priority,
            'reservationFee': str(a.reservation_fee),
            'consultationFee': str(a.consultation_fee),
        }


def _payment_rows(qs):
    for p in qs.select_related('patient', 'hospital').order_by('created_at', 'pk'):
        yield {
            'paymentId': p.payment_id,
            'patient': _display_name(p.patient),
            'hospital': p.hospital.name,
            'amount': str(p.amount),
            'currency': p.currency,
            'method': p.method,
            'status': p.status,
            'createdAt': p.created_at.isoformat(),
        }


def _patient_rows(qs):
    for u in qs.select_related('patient_profile').order_by('date_joined', 'pk'):
        profile = getattr(u, 'patient_profile', None)
        yield {
            'id': u.pk,
            'patientId': profile.patient_id if profile else '',
            'username': u.username,
            'name': _display_name(u),
            'email': u.email,
            'phone': u.phone,
            'dateOfBirth': u.date_of_birth.isoformat() if u.date_of_birth else '',
            'dateJoined': u.date_joined.isoformat(),
        }


def export_raw(entity_kind: str, date_from: Optional[date] = None, date_to: Optional[date] = None,
               hospital_id: Optional[int] = None) -> tuple[list[dict], str]:
    """Return the unaggregated rows of ``entity_kind`` in range and a download filename stem."""
    if entity_kind not in ENTITY_KINDS:
        raise ValidationError({'type': f"type must be one of: {', '.join(ENTITY_KINDS)}"})
    rng = resolve_range(date_from, date_to)
    if entity_kind == 'appointments':
        rows = list(_appointment_rows(_appointments(rng, hospital_id)))
    elif entity_kind == 'payments':
        rows = list(_payment_rows(_payments(rng, hospital_id)))
    else:
        rows = list(_patient_rows(_patients().filter(_in_range('date_joined', rng, is_datetime=True))))
    logger.info("analytics export: kind=%s rows=%d", entity_kind, len(rows))
    return rows, f"{entity_kind}_{rng.start.isoformat()}_to_{rng.end.isoformat()}"


def rows_to_csv(rows: list[dict]) -> str:
    buf = io.StringIO()
    if rows:
        writer = csv.DictWriter(buf, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    return buf.getvalue()
