import logging
from datetime import date
from typing import Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.text import slugify

from website.availability import slot_conflict, to_calendar_date
from website.constants import TIME_SLOTS
from website.models import Appointment, JobApplication, JobPost, Message
from website.signals import notify_changed

logger = logging.getLogger(__name__)


class InvalidTransition(ValidationError):
    pass


class SlotUnavailable(ValidationError):
    pass


# What staff may do from each status. cancelled/completed only allow
# notes editing and deletion.
ALLOWED_TRANSITIONS = {
    Appointment.STATUS_PENDING: {
        Appointment.STATUS_CONFIRMED,
        Appointment.STATUS_CANCELLED,
        Appointment.STATUS_RESCHEDULED,
    },
    Appointment.STATUS_CONFIRMED: {
        Appointment.STATUS_COMPLETED,
        Appointment.STATUS_RESCHEDULED,
    },
    Appointment.STATUS_RESCHEDULED: {
        Appointment.STATUS_COMPLETED,
        Appointment.STATUS_RESCHEDULED,
    },
    Appointment.STATUS_CANCELLED: set(),
    Appointment.STATUS_COMPLETED: set(),
}


def allowed_actions(appointment: Appointment) -> List[str]:
    return sorted(ALLOWED_TRANSITIONS.get(appointment.status, set()))


def _update_appointment(pk, **fields) -> Appointment:
    """Apply fields to the single matching row, stamping updated_at."""
    fields["updated_at"] = timezone.now()
    updated = Appointment.objects.filter(pk=pk).update(**fields)
    if not updated:
        raise Appointment.DoesNotExist(f"Appointment {pk} does not exist")
    appt = Appointment.objects.get(pk=pk)
    notify_changed(Appointment, appt, "updated")
    return appt


def transition_appointment(pk, status: str, new_date=None, new_time: Optional[str] = None) -> Appointment:
    """
    Move an appointment to ``status``. Repeating the current status is a
    no-op apart from the update timestamp.
    """
    if status == Appointment.STATUS_RESCHEDULED:
        return reschedule_appointment(pk, new_date, new_time)

    appt = Appointment.objects.get(pk=pk)
    if status != appt.status and status not in ALLOWED_TRANSITIONS.get(appt.status, set()):
        raise InvalidTransition(
            f"Cannot change a {appt.status} appointment to {status}."
        )

    logger.info("Appointment %s: %s -> %s", pk, appt.status, status)
    return _update_appointment(pk, status=status)


def reschedule_appointment(pk, new_date, new_time: Optional[str]) -> Appointment:
    appt = Appointment.objects.get(pk=pk)
    if appt.status != Appointment.STATUS_RESCHEDULED and \
            Appointment.STATUS_RESCHEDULED not in ALLOWED_TRANSITIONS.get(appt.status, set()):
        raise InvalidTransition(f"Cannot reschedule a {appt.status} appointment.")

    target_date = to_calendar_date(new_date) if new_date else None
    if not target_date or not new_time:
        raise ValidationError("Please select both date and time")
    if new_time not in TIME_SLOTS:
        raise ValidationError(f"{new_time} is not a bookable time.")
    if target_date < timezone.localdate():
        raise ValidationError("Past dates cannot be selected.")

    if slot_conflict(target_date, new_time, exclude_pk=pk):
        raise SlotUnavailable("The selected date or time is already booked.")

    try:
        with transaction.atomic():
            appt = _update_appointment(
                pk,
                appointment_date=target_date,
                appointment_time=new_time,
                status=Appointment.STATUS_RESCHEDULED,
            )
    except IntegrityError as e:
        raise SlotUnavailable("The selected date or time is already booked.") from e

    logger.info("Appointment %s rescheduled to %s %s", pk, target_date, new_time)
    return appt


def update_appointment_notes(pk, notes: str) -> Appointment:
    return _update_appointment(pk, notes=notes or "")


def delete_appointment(pk) -> None:
    appt = Appointment.objects.get(pk=pk)
    appt.delete()
    logger.info("Appointment %s deleted", pk)


# --- applications, messages and jobs


def update_application_status(pk, status: str) -> JobApplication:
    valid = {s for s, _ in JobApplication.STATUS_CHOICES}
    if status not in valid:
        raise InvalidTransition(f"Unknown application status {status}.")
    app = JobApplication.objects.get(pk=pk)
    app.status = status
    app.save(update_fields=["status", "updated_at"])
    return app


def update_application_notes(pk, notes: str) -> JobApplication:
    app = JobApplication.objects.get(pk=pk)
    app.admin_notes = notes or ""
    app.save(update_fields=["admin_notes", "updated_at"])
    return app


def update_message_status(pk, status: str) -> Message:
    valid = {s for s, _ in Message.STATUS_CHOICES}
    if status not in valid:
        raise InvalidTransition(f"Unknown message status {status}.")
    msg = Message.objects.get(pk=pk)
    msg.status = status
    msg.save(update_fields=["status", "updated_at"])
    return msg


def reply_to_message(pk, response: str) -> Message:
    """Record a staff reply. Delivery by email is not handled here."""
    response = (response or "").strip()
    if not response:
        raise ValidationError("Please write a response.")
    msg = Message.objects.get(pk=pk)
    msg.response = response
    msg.responded_at = timezone.now()
    msg.status = Message.STATUS_REPLIED
    msg.save(update_fields=["response", "responded_at", "status", "updated_at"])
    return msg


def delete_message(pk) -> None:
    Message.objects.get(pk=pk).delete()


def unique_job_slug(title: str, exclude_pk=None) -> str:
    base = slugify(title) or "job"
    slug = base
    n = 2
    qs = JobPost.objects.all()
    if exclude_pk:
        qs = qs.exclude(pk=exclude_pk)
    while qs.filter(slug=slug).exists():
        slug = f"{base}-{n}"
        n += 1
    return slug


def toggle_job_active(pk) -> JobPost:
    job = JobPost.objects.get(pk=pk)
    job.is_active = not job.is_active
    job.save(update_fields=["is_active", "updated_at"])
    return job


def delete_job(pk) -> None:
    JobPost.objects.get(pk=pk).delete()


# --- overview


def dashboard_stats() -> Dict[str, int]:
    return {
        "jobs": JobPost.objects.count(),
        "active_jobs": JobPost.objects.filter(is_active=True).count(),
        "appointments": Appointment.objects.count(),
        "pending_appointments": Appointment.objects.filter(status=Appointment.STATUS_PENDING).count(),
        "applications": JobApplication.objects.count(),
        "pending_applications": JobApplication.objects.filter(status=JobApplication.STATUS_PENDING).count(),
        "messages": Message.objects.count(),
        "new_messages": Message.objects.filter(status=Message.STATUS_NEW).count(),
    }


def get_upcoming_appointments(limit: int = 5, today: Optional[date] = None) -> List[Appointment]:
    """
    Next active appointments from today on, soonest first.
    """
    today = today or timezone.localdate()
    qs = (
        Appointment.objects
        .filter(status__in=Appointment.ACTIVE_STATUSES, appointment_date__gte=today)
        .order_by("appointment_date", "appointment_time")
    )
    return list(qs[:limit])
