"""
Role based permission classes for the API views.

Record-level decisions (ownership of a record, payment or appointment) are
made by :mod:`healthcare.services.access`; these classes only gate whole
endpoints by role.
"""
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

from healthcare.models import User

MANAGER_ROLES = {User.ROLE_MANAGER}
OFFICE_ROLES = {User.ROLE_MANAGER, User.ROLE_STAFF}
CLINICAL_ROLES = {User.ROLE_MANAGER, User.ROLE_STAFF, User.ROLE_PROFESSIONAL}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsManager(BasePermission):
    """Allow access only to healthcare managers."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in MANAGER_ROLES


class IsManagerOrStaff(BasePermission):
    """Managers and hospital staff."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in OFFICE_ROLES


class IsClinicalOrOffice(BasePermission):
    """Anyone but patients."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in CLINICAL_ROLES


def check(request, permission_class) -> None:
    """Method-level role gate for views that share one URL across roles."""
    if not permission_class().has_permission(request, None):
        raise PermissionDenied('Access denied')
