from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from healthcare.models import AuditEvent, MedicalRecord, RecordAccess

User = get_user_model()


def log_action(*, user: Optional[User] = None, actor_id: Optional[int] = None, action: str,
               object_type: Optional[str] = None, object_id: Optional[Any] = None,
               detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    if actor_id is None and getattr(user, 'pk', None):
        actor_id = user.pk
    return AuditEvent.objects.create(
        user_id=actor_id,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )


def log_access(record: MedicalRecord, actor_id: int, action: str) -> RecordAccess:
    """Append one entry to the access trail of ``record``.

    Callers run this inside the transaction of the operation being logged,
    so a failed insert rolls the operation back with it.
    """
    if action not in dict(RecordAccess.ACTION_CHOICES):
        raise ValueError(f"unknown access action {action!r}")
    return RecordAccess.objects.create(record=record, accessed_by_id=actor_id, action=action)
