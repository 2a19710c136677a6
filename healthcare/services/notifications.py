"""
Push user-facing events to the user's WebSocket group and email the
patient about bookings, cancellations, payments and upcoming visits.

Delivery is best effort: the request that produced the event has already
committed, so a channel layer or mail backend failure is logged and dropped.
"""
import logging
from typing import Any, Dict

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction

from healthcare.models import User

logger = logging.getLogger(__name__)

SIGNATURE = "Best regards,\nSmart Healthcare System"


def user_group(user_id: int) -> str:
    return f"user.{user_id}"


def notify_user(user_id: int, event: str, payload: Dict[str, Any]) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    message = {"type": "notify.event", "event": event, "payload": payload}
    try:
        async_to_sync(channel_layer.group_send)(user_group(user_id), message)
    except Exception:
        logger.warning("notification %s for user %s not delivered", event, user_id, exc_info=True)


def notify_on_commit(user_id: int, event: str, payload: Dict[str, Any]) -> None:
    transaction.on_commit(lambda: notify_user(user_id, event, payload))


# ---------------------------------------------------------------------------
# Email
# ---------------------------------------------------------------------------

def _name(user) -> str:
    return user.get_full_name() or user.username


def appointment_confirmation(appointment) -> tuple[str, str]:
    lines = [
        f"Dear {_name(appointment.patient)},",
        "",
        "Your appointment has been booked. Here are the details:",
        "",
        f"Appointment ID: {appointment.appointment_id}",
        f"Doctor: Dr. {_name(appointment.doctor)}",
        f"Hospital: {appointment.hospital.name}",
        f"Date: {appointment.date.isoformat()}",
        f"Time: {appointment.time}",
        f"Type: {appointment.appointment_type}",
        "",
        "Please arrive 15 minutes before your scheduled time.",
        "If you need to reschedule or cancel, please contact us at least 24 hours in advance.",
        "",
        SIGNATURE,
    ]
    return "Appointment Confirmation - Smart Healthcare System", "\n".join(lines)


def appointment_reminder(appointment) -> tuple[str, str]:
    lines = [
        f"Dear {_name(appointment.patient)},",
        "",
        "This is a reminder that you have an appointment tomorrow:",
        "",
        f"Doctor: Dr. {_name(appointment.doctor)}",
        f"Hospital: {appointment.hospital.name}",
        f"Date: {appointment.date.isoformat()}",
        f"Time: {appointment.time}",
        "",
        "Please remember to bring your ID and any relevant medical documents.",
        "",
        SIGNATURE,
    ]
    return "Appointment Reminder - Tomorrow", "\n".join(lines)


def appointment_cancellation(appointment) -> tuple[str, str]:
    lines = [
        f"Dear {_name(appointment.patient)},",
        "",
        "Your appointment has been cancelled.",
        "",
        f"Appointment ID: {appointment.appointment_id}",
        f"Doctor: Dr. {_name(appointment.doctor)}",
        f"Date: {appointment.date.isoformat()}",
        f"Time: {appointment.time}",
        f"Reason: {appointment.cancellation_reason}",
    ]
    if appointment.refund_amount:
        lines += [
            "",
            f"Refund amount: LKR {appointment.refund_amount}",
            "Your refund will be processed within 3-5 business days.",
        ]
    lines += ["", SIGNATURE]
    return "Appointment Cancelled - Smart Healthcare System", "\n".join(lines)


def payment_confirmation(payment) -> tuple[str, str]:
    lines = [
        f"Dear {_name(payment.patient)},",
        "",
        "Your payment has been processed. Here are the details:",
        "",
        f"Payment ID: {payment.payment_id}",
        f"Amount: {payment.currency} {payment.amount}",
        f"Method: {payment.method.replace('_', ' ').upper()}",
    ]
    if payment.transaction_reference:
        lines.append(f"Transaction reference: {payment.transaction_reference}")
    lines += ["", SIGNATURE]
    return "Payment Confirmation - Smart Healthcare System", "\n".join(lines)


def email_user(user_id: int, subject: str, body: str) -> bool:
    """Send one plain-text email; returns False when nothing was delivered."""
    email = User.objects.filter(pk=user_id).values_list('email', flat=True).first()
    if not email:
        return False
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [email], fail_silently=False)
    except Exception:
        logger.warning("email %r for user %s not delivered", subject, user_id, exc_info=True)
        return False
    return True


def email_on_commit(user_id: int, message: tuple[str, str]) -> None:
    subject, body = message
    transaction.on_commit(lambda: email_user(user_id, subject, body))
