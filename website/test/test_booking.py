from datetime import timedelta
from unittest import mock

from django.contrib.sessions.backends.db import SessionStore
from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone

from website.booking import (
    MSG_DATE_BOOKED,
    MSG_PAST_DATE,
    MSG_SLOT_BOOKED,
    STEP_CONFIRMED,
    STEP_DATE,
    STEP_DETAILS,
    STEP_TIME,
    BookingError,
    BookingWizard,
)
from website.constants import DEFAULT_DEPARTMENT, DEFAULT_REASON
from website.models import Appointment

DETAILS = {
    "name": "Mary Jones",
    "email": "mary@test.com",
    "phone": "07700 900123",
    "reason": "Personal Care",
    "other_reason": "",
}


@override_settings(BOOKING_OCCUPANCY_POLICY="day")
class BookingWizardTests(TestCase):
    def setUp(self):
        cache.clear()
        self.session = SessionStore()
        self.day = timezone.localdate() + timedelta(days=5)

    def wizard(self):
        return BookingWizard(self.session)

    def advance_to_details(self, time="10:00"):
        wizard = self.wizard()
        wizard.select_date(self.day)
        wizard.select_time(time)
        return wizard

    def test_happy_path(self):
        wizard = self.wizard()
        self.assertEqual(wizard.step, STEP_DATE)

        wizard.select_date(self.day.isoformat())
        self.assertEqual(wizard.step, STEP_TIME)

        wizard.select_time("10:00")
        self.assertEqual(wizard.step, STEP_DETAILS)

        appointment, _ = wizard.confirm(DETAILS)

        self.assertEqual(wizard.step, STEP_CONFIRMED)
        self.assertEqual(appointment.status, Appointment.STATUS_PENDING)
        self.assertEqual(appointment.appointment_date, self.day)
        self.assertEqual(appointment.appointment_time, "10:00")
        self.assertEqual(appointment.reason, "Personal Care")
        self.assertEqual(appointment.subject, "Personal Care")
        self.assertEqual(appointment.department, DEFAULT_DEPARTMENT)

        # availability reflects the new booking straight away
        self.assertTrue(wizard.availability.is_time_slot_booked(self.day, "10:00"))

    def test_state_survives_a_new_request(self):
        self.wizard().select_date(self.day)

        restored = self.wizard()

        self.assertEqual(restored.step, STEP_TIME)
        self.assertEqual(restored.date, self.day)

    def test_past_date_rejected(self):
        wizard = self.wizard()
        with self.assertRaisesMessage(BookingError, MSG_PAST_DATE):
            wizard.select_date(timezone.localdate() - timedelta(days=1))
        self.assertEqual(wizard.step, STEP_DATE)

    def test_booked_date_rejected_at_selection_time(self):
        # page was rendered before this booking existed
        wizard = self.wizard()
        wizard.context()
        Appointment.objects.create(
            client_name="Someone", client_email="s@test.com", client_phone="1",
            appointment_date=self.day, appointment_time="14:00",
        )

        with self.assertRaisesMessage(BookingError, MSG_DATE_BOOKED):
            wizard.select_date(self.day)
        self.assertEqual(wizard.step, STEP_DATE)

    @override_settings(BOOKING_OCCUPANCY_POLICY="slot")
    def test_booked_slot_rejected_under_slot_policy(self):
        Appointment.objects.create(
            client_name="Someone", client_email="s@test.com", client_phone="1",
            appointment_date=self.day, appointment_time="14:00",
        )
        wizard = self.wizard()
        wizard.select_date(self.day)

        with self.assertRaisesMessage(BookingError, MSG_SLOT_BOOKED):
            wizard.select_time("14:00")
        self.assertEqual(wizard.step, STEP_TIME)

        wizard.select_time("14:30")
        self.assertEqual(wizard.step, STEP_DETAILS)

    def test_time_requires_date(self):
        with self.assertRaises(BookingError):
            self.wizard().select_time("10:00")

    def test_unknown_time_rejected(self):
        wizard = self.wizard()
        wizard.select_date(self.day)
        with self.assertRaises(BookingError):
            wizard.select_time("08:45")

    def test_back_navigation(self):
        wizard = self.advance_to_details()

        wizard.back()
        self.assertEqual(wizard.step, STEP_TIME)
        self.assertEqual(wizard.time, "")
        self.assertEqual(wizard.date, self.day)

        wizard.back()
        self.assertEqual(wizard.step, STEP_DATE)
        self.assertIsNone(wizard.date)

    def test_confirm_requires_contact_fields(self):
        wizard = self.advance_to_details()

        with self.assertRaises(BookingError) as ctx:
            wizard.confirm({**DETAILS, "name": "  ", "phone": ""})

        self.assertEqual(wizard.step, STEP_DETAILS)
        self.assertIn("name", ctx.exception.form.errors)
        self.assertIn("phone", ctx.exception.form.errors)
        self.assertFalse(Appointment.objects.exists())

    def test_other_reason_needs_elaboration(self):
        wizard = self.advance_to_details()

        with self.assertRaises(BookingError) as ctx:
            wizard.confirm({**DETAILS, "reason": "Other", "other_reason": "   "})
        self.assertIn("other_reason", ctx.exception.form.errors)

        appointment, _ = wizard.confirm({**DETAILS, "reason": "Other", "other_reason": "Respite for my carer"})
        self.assertEqual(appointment.reason, "Respite for my carer")

    def test_missing_reason_defaults(self):
        wizard = self.advance_to_details()

        appointment, _ = wizard.confirm({**DETAILS, "reason": ""})

        self.assertEqual(appointment.reason, DEFAULT_REASON)

    def test_slot_taken_before_insert_stays_on_details(self):
        wizard = self.advance_to_details("11:00")
        Appointment.objects.create(
            client_name="Racer", client_email="r@test.com", client_phone="1",
            appointment_date=self.day, appointment_time="11:00",
        )

        with self.assertRaisesMessage(BookingError, MSG_SLOT_BOOKED):
            wizard.confirm(DETAILS)

        self.assertEqual(wizard.step, STEP_DETAILS)
        self.assertEqual(Appointment.objects.count(), 1)

    def test_database_failure_stays_on_details(self):
        wizard = self.advance_to_details()

        with mock.patch.object(Appointment.objects, "create", side_effect=DatabaseError("connection lost")):
            with self.assertLogs("website.booking", level="ERROR"):
                with self.assertRaises(BookingError):
                    wizard.confirm(DETAILS)

        self.assertEqual(wizard.step, STEP_DETAILS)

    def test_reset_from_confirmed(self):
        wizard = self.advance_to_details()
        wizard.confirm(DETAILS)

        wizard.reset()

        self.assertEqual(wizard.step, STEP_DATE)
        self.assertIsNone(wizard.date)
        self.assertEqual(wizard.time, "")
        self.assertIsNone(wizard.appointment_id)
        self.assertTrue(wizard.availability.is_date_booked(self.day))


@override_settings(BOOKING_OCCUPANCY_POLICY="day")
class BookingViewTests(TestCase):
    def setUp(self):
        cache.clear()
        self.day = timezone.localdate() + timedelta(days=3)

    def test_full_flow_through_view(self):
        response = self.client.get("/appointment/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["step"], STEP_DATE)

        self.client.post("/appointment/", {"action": "select_date", "date": self.day.isoformat()})
        self.client.post("/appointment/", {"action": "select_time", "time": "09:30"})
        response = self.client.post("/appointment/", {"action": "confirm", **DETAILS})
        self.assertRedirects(response, "/appointment/")

        response = self.client.get("/appointment/")
        self.assertEqual(response.context["step"], STEP_CONFIRMED)
        self.assertEqual(response.context["appointment"].client_name, "Mary Jones")

        self.client.post("/appointment/", {"action": "reset"})
        response = self.client.get("/appointment/")
        self.assertEqual(response.context["step"], STEP_DATE)
        flags = {d["date"]: d["available"] for d in response.context["dates"]}
        self.assertFalse(flags[self.day])

    def test_invalid_details_rerender_with_errors(self):
        self.client.post("/appointment/", {"action": "select_date", "date": self.day.isoformat()})
        self.client.post("/appointment/", {"action": "select_time", "time": "09:30"})

        response = self.client.post("/appointment/", {"action": "confirm", **DETAILS, "email": "nope"})

        self.assertEqual(response.status_code, 200)
        self.assertIn("email", response.context["details_form"].errors)
        self.assertEqual(response.context["step"], STEP_DETAILS)

    def test_past_date_message(self):
        past = timezone.localdate() - timedelta(days=2)

        response = self.client.post("/appointment/", {"action": "select_date", "date": past.isoformat()}, follow=True)

        self.assertContains(response, MSG_PAST_DATE)
        self.assertEqual(response.context["step"], STEP_DATE)
