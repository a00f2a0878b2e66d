from datetime import timedelta
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from website.models import Appointment
from website.forms import SLOT_TAKEN_MESSAGE, AppointmentForm
from website.constants import APPOINTMENT_REASONS, DEFAULT_REASON

class AppointmentFormTests(TestCase):
    def setUp(self):
        cache.clear()
        self.day = timezone.localdate() + timedelta(days=10)

    def form_data(self, **overrides):
        data = {
            "client_name": "New Client",
            "client_email": "b@test.com",
            "client_phone": "0987654321",
            "subject": "",
            "reason": APPOINTMENT_REASONS[0],
            "department": "General Inquiry",
            "appointment_date": self.day.isoformat(),
            "appointment_time": "10:00",
            "notes": "",
        }
        data.update(overrides)
        return data

    def make(self, status, time="10:00", **kwargs):
        defaults = dict(
            client_name="Existing Client",
            client_email="a@test.com",
            client_phone="1234567890",
            appointment_date=self.day,
            appointment_time=time,
            status=status,
        )
        defaults.update(kwargs)
        return Appointment.objects.create(**defaults)

    def test_double_booking_if_active(self):
        print("\n[TEST] double booking is blocked for pending/confirmed/rescheduled")

        for i, status in enumerate(Appointment.ACTIVE_STATUSES):
            time = ["10:00", "11:00", "12:00"][i]
            self.make(status, time=time)

            form = AppointmentForm(data=self.form_data(appointment_time=time))

            print("  - status:", status, "is the form valid?:", form.is_valid())
            self.assertFalse(form.is_valid())
            self.assertTrue(
                any("already booked" in err.lower() for err in form.non_field_errors()),
                list(form.non_field_errors()),
            )

    def test_allow_booking_if_exist_cancelled_or_completed(self):
        print("\n[TEST] cancelled/completed does NOT block booking")

        self.make(Appointment.STATUS_CANCELLED, time="11:00")
        self.make(Appointment.STATUS_COMPLETED, time="13:00", client_email="c@test.com")

        for time in ("11:00", "13:00"):
            form = AppointmentForm(data=self.form_data(appointment_time=time))
            if not form.is_valid():
                print("  - errors:", form.errors.as_text())
            self.assertTrue(form.is_valid(), form.errors.as_text())

    def test_edit_same_appointment_does_not_self_collide(self):
        print("\n[TEST] editing the same appointment should not self-collide")

        appt = self.make(Appointment.STATUS_CONFIRMED, time="12:00")

        form = AppointmentForm(
            data=self.form_data(
                client_name="Existing Client",
                client_email="a@test.com",
                appointment_time="12:00",
                notes="updated",
            ),
            instance=appt,
        )

        self.assertTrue(form.is_valid(), form.errors.as_text())

    @override_settings(BOOKING_OCCUPANCY_POLICY="day")
    def test_day_policy_blocks_other_times_on_a_booked_day(self):
        print("\n[TEST] day policy: one booking blocks the whole day for every booking path")

        self.make(Appointment.STATUS_PENDING, time="10:00")

        form = AppointmentForm(data=self.form_data(appointment_time="14:00"))
        self.assertFalse(form.is_valid())
        self.assertIn(SLOT_TAKEN_MESSAGE, form.non_field_errors())

        data = {f"appt-{k}": v for k, v in self.form_data(appointment_time="14:00").items()}
        data["form"] = "appointment"
        response = self.client.post("/contact/", data)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(Appointment.objects.count(), 1)

    @override_settings(BOOKING_OCCUPANCY_POLICY="slot")
    def test_slot_policy_only_blocks_the_same_time(self):
        print("\n[TEST] slot policy: other times on a booked day stay open")

        self.make(Appointment.STATUS_PENDING, time="10:00")

        self.assertTrue(AppointmentForm(data=self.form_data(appointment_time="14:00")).is_valid())
        self.assertFalse(AppointmentForm(data=self.form_data(appointment_time="10:00")).is_valid())

    def test_past_date_is_rejected(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        form = AppointmentForm(data=self.form_data(appointment_date=yesterday.isoformat()))

        self.assertFalse(form.is_valid())
        self.assertIn("Past dates cannot be selected.", form.non_field_errors())

    def test_unknown_time_slot_is_rejected(self):
        form = AppointmentForm(data=self.form_data(appointment_time="08:15"))

        self.assertFalse(form.is_valid())
        self.assertIn("appointment_time", form.errors)

    def test_save_sets_pending_and_subject(self):
        print("\n[TEST] saving an appointment sets status and a default subject")

        form = AppointmentForm(data=self.form_data(appointment_time="14:00", reason=""))
        self.assertTrue(form.is_valid(), form.errors.as_text())

        appt = form.save(status=Appointment.STATUS_PENDING)

        print("  - saved appointment:", appt)
        self.assertEqual(appt.appointment_date, self.day)
        self.assertEqual(appt.appointment_time, "14:00")
        self.assertEqual(appt.status, Appointment.STATUS_PENDING)
        self.assertEqual(appt.subject, DEFAULT_REASON)

    # Database constraints test cases
    def test_db_unique_constraint_blocks_active_duplicate(self):
        print("\n[TEST] DB constraint blocks duplicate for active statuses")

        self.make(Appointment.STATUS_PENDING, time="09:00", client_name="A")

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                self.make(Appointment.STATUS_RESCHEDULED, time="09:00", client_name="B")

    def test_db_allows_if_existing_is_cancelled(self):
        print("\n[TEST] DB allows new active slot if existing is cancelled")

        self.make(Appointment.STATUS_CANCELLED, time="10:00", client_name="Old")
        a2 = self.make(Appointment.STATUS_PENDING, time="10:00", client_name="New")

        self.assertIsNotNone(a2.id)

    def test_contact_page_creates_pending_appointment(self):
        data = {f"appt-{k}": v for k, v in self.form_data(appointment_time="15:00").items()}
        data["form"] = "appointment"

        response = self.client.post("/contact/", data)

        self.assertEqual(response.status_code, 302)
        appt = Appointment.objects.get(appointment_time="15:00")
        self.assertEqual(appt.status, Appointment.STATUS_PENDING)
        self.assertEqual(appt.appointment_date, self.day)


class MessageSubmissionTests(TestCase):
    def test_live_chat_creates_new_message(self):
        from website.models import Message

        response = self.client.post("/message/", {
            "name": "Jane",
            "email": "jane@test.com",
            "message": "Do you cover Leeds?",
            "next": "/careers/",
        })

        self.assertRedirects(response, "/careers/")
        msg = Message.objects.get()
        self.assertEqual(msg.status, Message.STATUS_NEW)

    def test_live_chat_ignores_offsite_next(self):
        response = self.client.post("/message/", {
            "name": "Jane",
            "email": "jane@test.com",
            "message": "Hello",
            "next": "https://example.com/",
        })

        self.assertRedirects(response, "/")

    def test_invalid_message_is_not_saved(self):
        from website.models import Message

        self.client.post("/message/", {"name": "Jane", "email": "not-an-email", "message": ""})

        self.assertFalse(Message.objects.exists())
