"""
Record-level access policy.

A single table keyed by ``(role, resource kind)`` lists the actions a role
may perform on that kind and, for roles that only see their own data, the
attribute of the resource that must equal the caller's id.  The role gate
is evaluated before the ownership gate, so a role that is not structurally
capable of an action is refused whatever the resource holds.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db.models import Q
from rest_framework.exceptions import NotAuthenticated, PermissionDenied

from healthcare.models import User

logger = logging.getLogger(__name__)

READ = 'read'
CREATE = 'create'
UPDATE = 'update'
DELETE = 'delete'
ATTACH = 'attach'
ACTIONS = frozenset({READ, CREATE, UPDATE, DELETE, ATTACH})

MEDICAL_RECORD = 'medical_record'
PAYMENT = 'payment'
APPOINTMENT = 'appointment'


@dataclass(frozen=True)
class Claim:
    """The authenticated identity attached to a request."""
    subject: int
    role: str

    @classmethod
    def from_user(cls, user) -> Optional['Claim']:
        if not (user and getattr(user, 'is_authenticated', False)):
            return None
        return cls(subject=user.pk, role=user.role)

    @classmethod
    def from_request(cls, request) -> Optional['Claim']:
        return cls.from_user(getattr(request, 'user', None))

    @property
    def is_manager(self) -> bool:
        return self.role == User.ROLE_MANAGER

    @property
    def is_staff(self) -> bool:
        return self.role == User.ROLE_STAFF


@dataclass(frozen=True)
class Rule:
    actions: frozenset
    owner_field: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ''
    authenticated: bool = True

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)
UNAUTHENTICATED = Decision(False, 'no identity', authenticated=False)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


_ALL = ACTIONS
_PATIENT_OWNED = 'patient_id'
_DOCTOR_OWNED = 'doctor_id'

POLICY: dict[tuple[str, str], Rule] = {
    (User.ROLE_MANAGER, MEDICAL_RECORD): Rule(_ALL),
    (User.ROLE_MANAGER, PAYMENT): Rule(_ALL),
    (User.ROLE_MANAGER, APPOINTMENT): Rule(_ALL),

    (User.ROLE_STAFF, MEDICAL_RECORD): Rule(frozenset({READ, ATTACH})),
    (User.ROLE_STAFF, PAYMENT): Rule(frozenset({READ, CREATE, UPDATE})),
    (User.ROLE_STAFF, APPOINTMENT): Rule(frozenset({READ, CREATE, UPDATE})),

    (User.ROLE_PROFESSIONAL, MEDICAL_RECORD): Rule(_ALL, _DOCTOR_OWNED),
    (User.ROLE_PROFESSIONAL, PAYMENT): Rule(frozenset({READ, CREATE, UPDATE}), _DOCTOR_OWNED),
    (User.ROLE_PROFESSIONAL, APPOINTMENT): Rule(frozenset({READ, UPDATE}), _DOCTOR_OWNED),

    (User.ROLE_PATIENT, MEDICAL_RECORD): Rule(frozenset({READ}), _PATIENT_OWNED),
    (User.ROLE_PATIENT, PAYMENT): Rule(frozenset({READ}), _PATIENT_OWNED),
    (User.ROLE_PATIENT, APPOINTMENT): Rule(frozenset({READ, CREATE, UPDATE}), _PATIENT_OWNED),
}


def authorize(claim: Optional[Claim], resource, action: str) -> Decision:
    """Decide whether ``claim`` may perform ``action`` on ``resource``.

    ``resource`` is either a model instance or a model class.  For a class
    (list and create endpoints) only the role gate is evaluated.
    """
    if claim is None:
        return UNAUTHENTICATED
    if action not in ACTIONS:
        raise ValueError(f"unknown action {action!r}")
    kind = resource.resource_kind
    rule = POLICY.get((claim.role, kind))
    if rule is None or action not in rule.actions:
        return deny(f"role {claim.role} cannot {action} {kind}")
    if rule.owner_field is None or isinstance(resource, type):
        return ALLOW
    if getattr(resource, rule.owner_field) != claim.subject:
        return deny(f"{kind} not owned by subject")
    return ALLOW


def enforce(claim: Optional[Claim], resource, action: str) -> None:
    """Raise the DRF exception matching a negative decision."""
    decision = authorize(claim, resource, action)
    if decision:
        return
    if not decision.authenticated:
        raise NotAuthenticated()
    logger.info("access denied: subject=%s action=%s reason=%s",
                claim.subject if claim else None, action, decision.reason)
    raise PermissionDenied('Access denied')


def scope_q(claim: Claim, kind: str) -> Q:
    """Row filter restricting a listing to what ``claim`` may read."""
    rule = POLICY.get((claim.role, kind))
    if rule is None or READ not in rule.actions:
        return Q(pk__in=[])
    if rule.owner_field is None:
        return Q()
    return Q(**{rule.owner_field: claim.subject})
