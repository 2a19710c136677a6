"""
Translate list-endpoint query strings into ORM filters.

``build_filter`` validates the query string with one of the serializers in
:mod:`healthcare.serializers.query`, turns the validated values into a ``Q``
object and ANDs the caller's role scope on top.  ``paginate`` slices a
queryset and produces the pagination block returned to clients.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from django.db.models import Q, QuerySet

from healthcare.services.access import Claim, scope_q

ID_FILTERS = {
    'patientID': 'patient_id',
    'doctorID': 'doctor_id',
    'hospitalID': 'hospital_id',
}


@dataclass
class ValidatedFilter:
    q: Q
    ordering: list[str]
    page: int
    limit: int
    params: dict[str, Any] = field(default_factory=dict)

    def apply(self, qs: QuerySet) -> QuerySet:
        return qs.filter(self.q).order_by(*self.ordering)


def build_filter(serializer_class, query_params, claim: Claim) -> ValidatedFilter:
    s = serializer_class(data=query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    q = Q()
    for param, lookup in ID_FILTERS.items():
        if vd.get(param) is not None:
            q &= Q(**{lookup: vd[param]})
    if vd.get('dateFrom'):
        q &= Q(**{f"{s.date_lookup}__gte": vd['dateFrom']})
    if vd.get('dateTo'):
        q &= Q(**{f"{s.date_lookup}__lte": vd['dateTo']})
    q &= s.extra_q(vd, claim)
    q &= scope_q(claim, s.resource_kind)

    sort_field = s.sort_fields[vd.get('sortBy') or s.default_sort]
    prefix = '-' if vd['sortOrder'] == 'desc' else ''
    # pk as tie-breaker keeps page boundaries stable
    ordering = [f"{prefix}{sort_field}", f"{prefix}pk"]

    return ValidatedFilter(q=q, ordering=ordering, page=vd['page'], limit=vd['limit'], params=dict(vd))


def pagination_meta(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        'currentPage': page,
        'itemsPerPage': limit,
        'totalItems': total,
        'totalPages': math.ceil(total / limit),
    }


def paginate(qs: QuerySet, page: int, limit: int) -> tuple[list, dict[str, int]]:
    total = qs.count()
    start = (page - 1) * limit
    return list(qs[start:start + limit]), pagination_meta(page, limit, total)
