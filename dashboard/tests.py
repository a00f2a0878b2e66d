from datetime import date, timedelta
from unittest import mock

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from website.availability import load_availability
from website.models import Appointment, JobApplication, JobPost, Message

from . import services
from .utils.calendar_utils import build_appointment_calendar
from .utils.time_utils import display_timeslot, normalize_timeslot


def make_appointment(day, time, status=Appointment.STATUS_PENDING, name="Client"):
    return Appointment.objects.create(
        client_name=name,
        client_email="client@test.com",
        client_phone="0123",
        appointment_date=day,
        appointment_time=time,
        status=status,
    )


def make_job(title="Care Assistant", slug="care-assistant", **kwargs):
    defaults = dict(department="Care Services", location="Leeds", description="Support clients.")
    defaults.update(kwargs)
    return JobPost.objects.create(title=title, slug=slug, **defaults)


# Create your tests here.
class DashboardSmokeTests(TestCase):
    def setUp(self):
        cache.clear()
        job = make_job()
        make_appointment(timezone.localdate() + timedelta(days=1), "10:00")
        JobApplication.objects.create(
            job=job, job_title=job.title, applicant_name="Sam",
            applicant_email="sam@test.com", applicant_phone="1",
        )
        Message.objects.create(name="Jane", email="jane@test.com", message="Hello")
        self.urls = [
            reverse("dashboard:home"),
            reverse("dashboard:appointments"),
            reverse("dashboard:appointment_form"),
            reverse("dashboard:careers"),
            reverse("dashboard:job_new"),
            reverse("dashboard:job_edit", args=[job.pk]),
            reverse("dashboard:applications"),
            reverse("dashboard:message"),
        ]

    def test_pages_render(self):
        for url in self.urls:
            response = self.client.get(url)
            self.assertEqual(response.status_code, 200, url)

    def test_appointment_filters_and_search(self):
        response = self.client.get(reverse("dashboard:appointments"), {"status": "confirmed"})
        self.assertEqual(len(response.context["rows"]), 0)

        response = self.client.get(reverse("dashboard:appointments"), {"status": "bogus", "q": "client@"})
        self.assertEqual(response.context["status_filter"], "all")
        self.assertEqual(len(response.context["rows"]), 1)

    def test_non_numeric_ids_are_404(self):
        posts = [
            ("dashboard:appointments", {"appointment_id": "abc", "action": "confirm"}),
            ("dashboard:applications", {"application_id": "abc", "action": "status", "status": "reviewed"}),
            ("dashboard:message", {"message_id": "", "action": "read"}),
        ]
        for name, data in posts:
            response = self.client.post(reverse(name), data)
            self.assertEqual(response.status_code, 404, name)

    def test_non_numeric_job_filter_is_ignored(self):
        response = self.client.get(reverse("dashboard:applications"), {"job": "abc"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["job_filter"], "all")
        self.assertEqual(len(response.context["applications"]), 1)

    def test_overview_survives_appointment_query_failure(self):
        with mock.patch(
            "dashboard.views.build_appointment_calendar",
            side_effect=DatabaseError("connection lost"),
        ):
            with self.assertLogs("dashboard.views", level="ERROR"):
                response = self.client.get(reverse("dashboard:home"), follow=True)

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.context["calendar"])
        self.assertContains(response, "Could not load appointments.")

    def test_calendar_month_navigation(self):
        response = self.client.get(reverse("dashboard:home"), {"month": "2025-02-01", "day": "2025-02-14"})

        self.assertEqual(response.context["calendar"]["month_label"], "February 2025")
        self.assertEqual(response.context["calendar"]["selected_date"], date(2025, 2, 14))


class AppointmentTransitionTests(TestCase):
    def setUp(self):
        cache.clear()
        self.day = timezone.localdate() + timedelta(days=7)
        self.appt = make_appointment(self.day, "10:00")

    def test_confirm_then_complete(self):
        appt = services.transition_appointment(self.appt.pk, Appointment.STATUS_CONFIRMED)
        self.assertEqual(appt.status, Appointment.STATUS_CONFIRMED)

        appt = services.transition_appointment(self.appt.pk, Appointment.STATUS_COMPLETED)
        self.assertEqual(appt.status, Appointment.STATUS_COMPLETED)

    def test_confirm_twice_is_a_no_op(self):
        first = services.transition_appointment(self.appt.pk, Appointment.STATUS_CONFIRMED)
        second = services.transition_appointment(self.appt.pk, Appointment.STATUS_CONFIRMED)

        self.assertEqual(second.status, Appointment.STATUS_CONFIRMED)
        self.assertGreaterEqual(second.updated_at, first.updated_at)

    def test_terminal_status_cannot_move(self):
        services.transition_appointment(self.appt.pk, Appointment.STATUS_CANCELLED)

        with self.assertRaises(services.InvalidTransition):
            services.transition_appointment(self.appt.pk, Appointment.STATUS_CONFIRMED)
        self.assertEqual(Appointment.objects.get(pk=self.appt.pk).status, Appointment.STATUS_CANCELLED)

    def test_pending_cannot_complete(self):
        with self.assertRaises(services.InvalidTransition):
            services.transition_appointment(self.appt.pk, Appointment.STATUS_COMPLETED)

    def test_allowed_actions(self):
        self.assertEqual(
            services.allowed_actions(self.appt),
            sorted([Appointment.STATUS_CONFIRMED, Appointment.STATUS_CANCELLED, Appointment.STATUS_RESCHEDULED]),
        )
        self.appt.status = Appointment.STATUS_COMPLETED
        self.assertEqual(services.allowed_actions(self.appt), [])

    def test_cancel_frees_the_slot(self):
        self.assertTrue(load_availability().is_time_slot_booked(self.day, "10:00"))

        services.transition_appointment(self.appt.pk, Appointment.STATUS_CANCELLED)

        self.assertFalse(load_availability().is_time_slot_booked(self.day, "10:00"))

    def test_reschedule_moves_the_booking(self):
        new_day = self.day + timedelta(days=1)

        appt = services.reschedule_appointment(self.appt.pk, new_day.isoformat(), "14:00")

        self.assertEqual(appt.status, Appointment.STATUS_RESCHEDULED)
        self.assertEqual(appt.appointment_date, new_day)
        self.assertEqual(appt.appointment_time, "14:00")
        calc = load_availability()
        self.assertFalse(calc.is_time_slot_booked(self.day, "10:00"))
        self.assertTrue(calc.is_time_slot_booked(new_day, "14:00"))

    def test_reschedule_into_taken_slot(self):
        make_appointment(self.day, "11:00", status=Appointment.STATUS_CONFIRMED, name="Other")

        with self.assertRaises(services.SlotUnavailable):
            services.reschedule_appointment(self.appt.pk, self.day, "11:00")

        appt = Appointment.objects.get(pk=self.appt.pk)
        self.assertEqual(appt.appointment_time, "10:00")
        self.assertEqual(appt.status, Appointment.STATUS_PENDING)

    @override_settings(BOOKING_OCCUPANCY_POLICY="day")
    def test_reschedule_into_booked_day_under_day_policy(self):
        other_day = self.day + timedelta(days=3)
        make_appointment(other_day, "10:00", name="Other")

        with self.assertRaises(services.SlotUnavailable):
            services.reschedule_appointment(self.appt.pk, other_day, "15:00")

        # moving within its own day is still fine
        appt = services.reschedule_appointment(self.appt.pk, self.day, "15:00")
        self.assertEqual(appt.appointment_time, "15:00")

    @override_settings(BOOKING_OCCUPANCY_POLICY="slot")
    def test_reschedule_into_booked_day_under_slot_policy(self):
        other_day = self.day + timedelta(days=3)
        make_appointment(other_day, "10:00", name="Other")

        appt = services.reschedule_appointment(self.appt.pk, other_day, "15:00")

        self.assertEqual(appt.appointment_date, other_day)
        with self.assertRaises(services.SlotUnavailable):
            services.reschedule_appointment(self.appt.pk, other_day, "10:00")

    def test_reschedule_to_same_slot_does_not_self_collide(self):
        appt = services.reschedule_appointment(self.appt.pk, self.day, "10:00")

        self.assertEqual(appt.status, Appointment.STATUS_RESCHEDULED)

    def test_reschedule_needs_date_and_time(self):
        with self.assertRaisesMessage(ValidationError, "Please select both date and time"):
            services.reschedule_appointment(self.appt.pk, None, "10:00")
        with self.assertRaises(ValidationError):
            services.reschedule_appointment(self.appt.pk, self.day, "")
        with self.assertRaises(ValidationError):
            services.reschedule_appointment(self.appt.pk, timezone.localdate() - timedelta(days=1), "10:00")

    def test_notes_do_not_change_status(self):
        appt = services.update_appointment_notes(self.appt.pk, "Prefers morning visits")

        self.assertEqual(appt.notes, "Prefers morning visits")
        self.assertEqual(appt.status, Appointment.STATUS_PENDING)

    def test_missing_appointment(self):
        with self.assertRaises(Appointment.DoesNotExist):
            services.update_appointment_notes(self.appt.pk + 100, "x")


class AppointmentActionViewTests(TestCase):
    def setUp(self):
        cache.clear()
        self.day = timezone.localdate() + timedelta(days=7)
        self.appt = make_appointment(self.day, "10:00")
        self.url = reverse("dashboard:appointments")

    def post(self, **data):
        return self.client.post(self.url, {"appointment_id": self.appt.pk, **data}, follow=True)

    def test_confirm_action(self):
        response = self.post(action="confirm")

        self.assertContains(response, "Appointment confirmed.")
        self.assertEqual(Appointment.objects.get(pk=self.appt.pk).status, Appointment.STATUS_CONFIRMED)

    def test_invalid_transition_is_reported(self):
        self.post(action="cancel")

        response = self.post(action="complete")

        self.assertContains(response, "Cannot change a cancelled appointment to completed.")
        self.assertEqual(Appointment.objects.get(pk=self.appt.pk).status, Appointment.STATUS_CANCELLED)

    def test_reschedule_action(self):
        new_day = self.day + timedelta(days=2)

        self.post(action="reschedule", new_date=new_day.isoformat(), new_time="3:30 PM")

        appt = Appointment.objects.get(pk=self.appt.pk)
        self.assertEqual(appt.appointment_date, new_day)
        self.assertEqual(appt.appointment_time, "15:30")

    def test_delete_needs_confirmation(self):
        response = self.post(action="delete")
        self.assertContains(response, "Please confirm")
        self.assertTrue(Appointment.objects.filter(pk=self.appt.pk).exists())

        self.post(action="delete", confirm="yes")
        self.assertFalse(Appointment.objects.filter(pk=self.appt.pk).exists())
        self.assertFalse(load_availability().is_date_booked(self.day))

    def test_unknown_appointment_is_404(self):
        response = self.client.post(self.url, {"appointment_id": self.appt.pk + 100, "action": "confirm"})

        self.assertEqual(response.status_code, 404)

    def test_manual_booking(self):
        response = self.client.post(reverse("dashboard:appointment_form"), {
            "client_name": "Walk In",
            "client_email": "walkin@test.com",
            "client_phone": "555",
            "appointment_date": (self.day + timedelta(days=1)).isoformat(),
            "appointment_time": "12:00",
            "reason": "",
            "department": "General Inquiry",
        })

        self.assertRedirects(response, self.url)
        self.assertEqual(Appointment.objects.get(client_name="Walk In").status, Appointment.STATUS_PENDING)


class InboxAndApplicationTests(TestCase):
    def setUp(self):
        self.msg = Message.objects.create(name="Jane", email="jane@test.com", message="Hello")
        self.job = make_job()
        self.app = JobApplication.objects.create(
            job=self.job, job_title=self.job.title, applicant_name="Sam",
            applicant_email="sam@test.com", applicant_phone="1",
        )

    def test_reply_marks_replied(self):
        msg = services.reply_to_message(self.msg.pk, "  We do cover Leeds.  ")

        self.assertEqual(msg.status, Message.STATUS_REPLIED)
        self.assertEqual(msg.response, "We do cover Leeds.")
        self.assertIsNotNone(msg.responded_at)

    def test_empty_reply_rejected(self):
        with self.assertRaises(ValidationError):
            services.reply_to_message(self.msg.pk, "   ")

    def test_read_and_archive_actions(self):
        url = reverse("dashboard:message")

        self.client.post(url, {"message_id": self.msg.pk, "action": "read"})
        self.assertEqual(Message.objects.get(pk=self.msg.pk).status, Message.STATUS_READ)

        self.client.post(url, {"message_id": self.msg.pk, "action": "archive"})
        self.assertEqual(Message.objects.get(pk=self.msg.pk).status, Message.STATUS_ARCHIVED)

        response = self.client.get(url, {"status": "archived"})
        self.assertEqual(list(response.context["inbox"]), [Message.objects.get(pk=self.msg.pk)])

    def test_unknown_message_status_rejected(self):
        with self.assertRaises(services.InvalidTransition):
            services.update_message_status(self.msg.pk, "spam")

    def test_application_status_and_notes(self):
        url = reverse("dashboard:applications")

        self.client.post(url, {"application_id": self.app.pk, "action": "status", "status": "approved"})
        self.client.post(url, {"application_id": self.app.pk, "action": "notes", "notes": "Call Monday"})

        app = JobApplication.objects.get(pk=self.app.pk)
        self.assertEqual(app.status, JobApplication.STATUS_APPROVED)
        self.assertEqual(app.admin_notes, "Call Monday")

    def test_invalid_application_status(self):
        with self.assertRaises(services.InvalidTransition):
            services.update_application_status(self.app.pk, "hired")

    def test_stats(self):
        make_job(title="Closed", slug="closed", is_active=False)
        make_appointment(timezone.localdate() + timedelta(days=2), "09:00")

        stats = services.dashboard_stats()

        self.assertEqual(stats["jobs"], 2)
        self.assertEqual(stats["active_jobs"], 1)
        self.assertEqual(stats["appointments"], 1)
        self.assertEqual(stats["pending_appointments"], 1)
        self.assertEqual(stats["applications"], 1)
        self.assertEqual(stats["pending_applications"], 1)
        self.assertEqual(stats["messages"], 1)
        self.assertEqual(stats["new_messages"], 1)


class JobManagementTests(TestCase):
    def job_data(self, **overrides):
        data = {
            "title": "Care Assistant",
            "department": "Care Services",
            "location": "Leeds",
            "type": "Part-time",
            "description": "Support clients at home.",
            "requirements": "Kind\n\n  Reliable  ",
            "responsibilities": "Personal care",
            "salary_range": "",
            "application_link": "",
            "application_fields": "[]",
            "is_active": "on",
        }
        data.update(overrides)
        return data

    def test_create_job_with_unique_slug(self):
        make_job()

        response = self.client.post(reverse("dashboard:job_new"), self.job_data())

        self.assertRedirects(response, reverse("dashboard:careers"))
        job = JobPost.objects.get(slug="care-assistant-2")
        self.assertEqual(job.requirements, ["Kind", "Reliable"])
        self.assertEqual(job.responsibilities, ["Personal care"])

    def test_application_fields_are_validated(self):
        response = self.client.post(
            reverse("dashboard:job_new"),
            self.job_data(application_fields='[{"id": "shift", "label": "Shift", "type": "select"}]'),
        )

        self.assertEqual(response.status_code, 200)
        self.assertIn("application_fields", response.context["form"].errors)
        self.assertFalse(JobPost.objects.exists())

    def test_toggle_and_delete(self):
        job = make_job()

        self.client.post(reverse("dashboard:job_toggle", args=[job.pk]))
        self.assertFalse(JobPost.objects.get(pk=job.pk).is_active)

        self.client.post(reverse("dashboard:job_delete", args=[job.pk]))
        self.assertTrue(JobPost.objects.filter(pk=job.pk).exists())

        self.client.post(reverse("dashboard:job_delete", args=[job.pk]), {"confirm": "yes"})
        self.assertFalse(JobPost.objects.filter(pk=job.pk).exists())

    def test_toggle_requires_post(self):
        job = make_job()

        self.assertEqual(self.client.get(reverse("dashboard:job_toggle", args=[job.pk])).status_code, 405)


class CalendarAndTimeUtilsTests(TestCase):
    def test_month_grid(self):
        make_appointment(date(2025, 6, 10), "10:00")
        make_appointment(date(2025, 6, 10), "11:00", status=Appointment.STATUS_CANCELLED, name="Gone")

        cal = build_appointment_calendar(date(2025, 6, 18), selected=date(2025, 6, 10))

        self.assertEqual(cal["month_label"], "June 2025")
        self.assertEqual(cal["prev_month"], "2025-05-01")
        self.assertEqual(cal["next_month"], "2025-07-01")
        # 1 June 2025 is a Sunday
        self.assertEqual(cal["weeks"][0][0]["date"], date(2025, 6, 1))
        self.assertEqual([a.appointment_time for a in cal["selected_appointments"]], ["10:00"])

    def test_december_rolls_over(self):
        cal = build_appointment_calendar(date(2025, 12, 5))

        self.assertEqual(cal["next_month"], "2026-01-01")
        self.assertIsNone(cal["weeks"][0][0])

    def test_normalize_timeslot(self):
        self.assertEqual(normalize_timeslot("9:30"), "09:30")
        self.assertEqual(normalize_timeslot("09:30:00"), "09:30")
        self.assertEqual(normalize_timeslot("2:00 pm"), "14:00")
        self.assertEqual(normalize_timeslot("later"), "")
        self.assertEqual(display_timeslot("14:00"), "2:00 PM")
