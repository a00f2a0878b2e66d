"""
Booking wizard.

The public booking flow is a small linear state machine kept in the
session::

    date -> time -> details -> confirmed

with backward moves (time -> date, details -> time) and a reset from
confirmed back to date. Availability is re-checked when a choice is made,
not only when the page was rendered, so a slot taken in the meantime is
refused.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction

from .availability import invalidate_cache, load_availability, slot_conflict, to_calendar_date
from .constants import DEFAULT_DEPARTMENT, TIME_SLOTS
from .forms import BookingDetailsForm
from .models import Appointment

logger = logging.getLogger(__name__)

STEP_DATE = "date"
STEP_TIME = "time"
STEP_DETAILS = "details"
STEP_CONFIRMED = "confirmed"

STEPS = [STEP_DATE, STEP_TIME, STEP_DETAILS, STEP_CONFIRMED]

SESSION_KEY = "booking_wizard"

MSG_PAST_DATE = "Past dates cannot be selected."
MSG_DATE_BOOKED = "This date is fully booked. Please select another date."
MSG_SLOT_BOOKED = "This time slot is no longer available. Please choose another time."
MSG_SUBMIT_FAILED = "Failed to book appointment. Please try again."


class BookingError(ValidationError):
    pass


class BookingWizard:
    def __init__(self, session):
        self.session = session
        state = session.get(SESSION_KEY) or {}
        self.step = state.get("step", STEP_DATE)
        self.date = to_calendar_date(state.get("date")) if state.get("date") else None
        self.time = state.get("time", "")
        self.appointment_id = state.get("appointment_id")
        self._availability = None

    # --- persistence

    def save(self):
        self.session[SESSION_KEY] = {
            "step": self.step,
            "date": self.date.isoformat() if self.date else None,
            "time": self.time,
            "appointment_id": self.appointment_id,
        }
        self.session.modified = True

    @property
    def availability(self):
        if self._availability is None:
            self._availability = load_availability()
        return self._availability

    def refresh_availability(self):
        self._availability = load_availability()
        return self._availability

    # --- transitions

    def select_date(self, value):
        if self.step != STEP_DATE:
            raise BookingError("A date can only be chosen at the start of a booking.")
        chosen = to_calendar_date(value)
        if chosen is None:
            raise BookingError("Please choose a valid date.")

        availability = self.refresh_availability()
        if availability.is_past(chosen):
            raise BookingError(MSG_PAST_DATE)
        if not availability.is_date_available(chosen):
            raise BookingError(MSG_DATE_BOOKED)

        self.date = chosen
        self.time = ""
        self.step = STEP_TIME
        self.save()

    def select_time(self, value):
        if self.step != STEP_TIME or self.date is None:
            raise BookingError("Please select a date first.")
        if value not in TIME_SLOTS:
            raise BookingError("Please choose one of the listed times.")

        availability = self.refresh_availability()
        if not availability.is_time_slot_available(self.date, value):
            raise BookingError(MSG_SLOT_BOOKED)

        self.time = value
        self.step = STEP_DETAILS
        self.save()

    def back(self):
        if self.step == STEP_TIME:
            self.date = None
            self.step = STEP_DATE
        elif self.step == STEP_DETAILS:
            self.time = ""
            self.step = STEP_TIME
        self.save()

    def confirm(self, data):
        """
        Validate contact details and create the appointment (status pending).
        Returns (appointment, form). On failure the wizard stays on the
        details step and BookingError is raised; the bound form is attached
        as ``error.form`` so the view can re-render field errors.
        """
        if self.step != STEP_DETAILS or self.date is None or not self.time:
            raise BookingError("Please choose a date and time before confirming.")

        form = BookingDetailsForm(data)
        if not form.is_valid():
            error = BookingError("Please correct the errors below.")
            error.form = form
            raise error

        if slot_conflict(self.date, self.time):
            logger.warning("Slot %s %s was taken before the booking was confirmed", self.date, self.time)
            error = BookingError(MSG_SLOT_BOOKED)
            error.form = form
            raise error

        reason = form.final_reason()
        try:
            with transaction.atomic():
                appointment = Appointment.objects.create(
                    client_name=form.cleaned_data["name"].strip(),
                    client_email=form.cleaned_data["email"].strip(),
                    client_phone=form.cleaned_data["phone"].strip(),
                    subject=reason,
                    reason=reason,
                    department=DEFAULT_DEPARTMENT,
                    appointment_date=self.date,
                    appointment_time=self.time,
                    status=Appointment.STATUS_PENDING,
                )
        except IntegrityError:
            logger.warning("Slot %s %s was taken before the booking was saved", self.date, self.time)
            error = BookingError(MSG_SLOT_BOOKED)
            error.form = form
            raise error
        except DatabaseError:
            logger.exception("Error submitting appointment for %s %s", self.date, self.time)
            error = BookingError(MSG_SUBMIT_FAILED)
            error.form = form
            raise error

        logger.info("Appointment %s booked for %s %s", appointment.pk, self.date, self.time)
        self.appointment_id = appointment.pk
        self.step = STEP_CONFIRMED
        self.save()

        invalidate_cache()
        self.refresh_availability()
        return appointment, form

    def reset(self):
        self.step = STEP_DATE
        self.date = None
        self.time = ""
        self.appointment_id = None
        self.save()
        self.refresh_availability()

    # --- presentation helpers

    @property
    def step_index(self):
        return STEPS.index(self.step)

    def context(self):
        ctx = {
            "step": self.step,
            "steps": STEPS,
            "step_index": self.step_index,
            "selected_date": self.date,
            "selected_time": self.time,
        }
        if self.step == STEP_DATE:
            ctx["dates"] = self.availability.available_dates()
        elif self.step == STEP_TIME and self.date:
            ctx["time_slots"] = self.availability.time_slots_for(self.date)
        elif self.step == STEP_CONFIRMED and self.appointment_id:
            ctx["appointment"] = Appointment.objects.filter(pk=self.appointment_id).first()
        return ctx
