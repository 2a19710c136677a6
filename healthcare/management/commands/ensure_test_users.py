from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction

from healthcare.models import PatientProfile, ProfessionalProfile, StaffProfile, User

TEST_SET = [
    ("manager1", User.ROLE_MANAGER),
    ("staff1", User.ROLE_STAFF),
    ("doctor1", User.ROLE_PROFESSIONAL),
    ("patient1", User.ROLE_PATIENT),
]


def _ensure_profile(user):
    if user.role == User.ROLE_PATIENT:
        PatientProfile.objects.get_or_create(user=user)
    elif user.role == User.ROLE_PROFESSIONAL:
        ProfessionalProfile.objects.get_or_create(
            user=user,
            defaults={"specialization": "General Medicine", "license_number": f"TEST-{user.username}",
                      "department": "Outpatient"},
        )
    elif user.role == User.ROLE_STAFF:
        StaffProfile.objects.get_or_create(
            user=user,
            defaults={"staff_role": "receptionist", "department": "Front desk",
                      "employee_id": f"TEST-{user.username}"},
        )


class Command(BaseCommand):
    help = "Ensure one test user per role exists with password=123456 (idempotent)."

    def handle(self, *args, **opts):
        for username, role in TEST_SET:
            with transaction.atomic():
                u, created = User.objects.get_or_create(
                    username=username,
                    defaults={"role": role, "password": make_password("123456"), "is_active": True,
                              "email": f"{username}@hms.local"},
                )
                if not created:
                    # reset password, role and activation
                    u.password = make_password("123456")
                    u.role = role
                    u.is_active = True
                    u.save(update_fields=["password", "role", "is_active"])
                _ensure_profile(u)
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
