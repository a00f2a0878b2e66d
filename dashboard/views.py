import logging

from django.contrib import messages
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.http import Http404
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone
from django.views.decorators.http import require_POST

from website.constants import TIME_SLOTS
from website.forms import AppointmentForm
from website.models import Appointment, JobApplication, JobPost, Message

from . import services
from .forms import JobPostForm
from .utils.calendar_utils import build_appointment_calendar
from .utils.time_utils import display_timeslot, normalize_timeslot, parse_date

logger = logging.getLogger(__name__)

APPOINTMENT_FILTERS = ["all"] + [s for s, _ in Appointment.STATUS_CHOICES]
APPLICATION_FILTERS = ["all"] + [s for s, _ in JobApplication.STATUS_CHOICES]
MESSAGE_FILTERS = ["all"] + [s for s, _ in Message.STATUS_CHOICES]


def _posted_pk(request, field):
    """Record id from a POST action form; anything non-numeric is a 404."""
    try:
        return int(request.POST.get(field, ""))
    except ValueError:
        raise Http404(f"Invalid {field}")


def index(request):
    today = timezone.localdate()
    base = parse_date(request.GET.get("month")) or today
    selected = parse_date(request.GET.get("day"))

    try:
        stats = services.dashboard_stats()
    except DatabaseError:
        logger.exception("Error fetching stats")
        messages.error(request, "Could not load dashboard statistics.")
        stats = {}

    try:
        calendar = build_appointment_calendar(base, selected)
        upcoming = services.get_upcoming_appointments()
    except DatabaseError:
        logger.exception("Error fetching appointments for the overview")
        messages.error(request, "Could not load appointments.")
        calendar = None
        upcoming = []

    ctx = {
        "today": today,
        "stats": stats,
        "calendar": calendar,
        "upcoming": upcoming,
        "active_page": "home",
    }
    return render(request, "dashboard/index.html", ctx)


def appointments(request):
    status_filter = request.GET.get("status", "all")
    if status_filter not in APPOINTMENT_FILTERS:
        status_filter = "all"
    q = request.GET.get("q", "").strip()

    # ---- Handle actions from buttons (Confirm / Cancel / Complete etc.) ----
    if request.method == "POST":
        appt_id = _posted_pk(request, "appointment_id")
        action = request.POST.get("action")
        get_object_or_404(Appointment, id=appt_id)

        try:
            if action == "confirm":
                services.transition_appointment(appt_id, Appointment.STATUS_CONFIRMED)
                messages.success(request, "Appointment confirmed.")
            elif action == "cancel":
                services.transition_appointment(appt_id, Appointment.STATUS_CANCELLED)
                messages.success(request, "Appointment cancelled.")
            elif action == "complete":
                services.transition_appointment(appt_id, Appointment.STATUS_COMPLETED)
                messages.success(request, "Appointment marked as completed.")
            elif action == "reschedule":
                services.reschedule_appointment(
                    appt_id,
                    parse_date(request.POST.get("new_date")),
                    normalize_timeslot(request.POST.get("new_time", "")),
                )
                messages.success(request, "Appointment rescheduled.")
            elif action == "notes":
                services.update_appointment_notes(appt_id, request.POST.get("notes", ""))
                messages.success(request, "Notes saved.")
            elif action == "delete":
                if request.POST.get("confirm") != "yes":
                    messages.error(request, "Please confirm that you want to delete this appointment.")
                else:
                    services.delete_appointment(appt_id)
                    messages.success(request, "Appointment deleted.")
            else:
                messages.error(request, "Unknown action.")
        except ValidationError as e:
            for msg in e.messages:
                messages.error(request, msg)
        except DatabaseError:
            logger.exception("Error applying %s to appointment %s", action, appt_id)
            messages.error(request, "Failed to update appointment.")

        return redirect(f"{request.path}?status={status_filter}")

    qs = Appointment.objects.all()
    if status_filter != "all":
        qs = qs.filter(status=status_filter)
    if q:
        qs = qs.filter(
            Q(client_name__icontains=q)
            | Q(client_phone__icontains=q)
            | Q(client_email__icontains=q)
        )
    qs = qs.order_by("appointment_date", "appointment_time")

    paginator = Paginator(qs, 20)
    page = paginator.get_page(request.GET.get("page"))
    rows = [
        {"appointment": a, "time": display_timeslot(a.appointment_time), "actions": services.allowed_actions(a)}
        for a in page
    ]

    ctx = {
        "q": q,
        "status_filter": status_filter,
        "filters": APPOINTMENT_FILTERS,
        "page": page,
        "rows": rows,
        "time_slots": TIME_SLOTS,
        "active_page": "appointments",
    }
    return render(request, "dashboard/pages/dappointments.html", ctx)


def appointment_form(request):
    if request.method == 'POST':
        form = AppointmentForm(request.POST)
        if form.is_valid():
            try:
                with transaction.atomic():
                    form.save(status=Appointment.STATUS_PENDING)
            except DatabaseError:
                logger.exception("Error creating appointment")
                messages.error(request, 'Failed to create appointment.')
            else:
                messages.success(request, 'Appointment has been created.')
                return redirect('dashboard:appointments')
        else:
            messages.error(request, 'Please correct the errors below.')
    else:
        form = AppointmentForm()

    return render(request, 'dashboard/pages/appointmentform.html', {
        "form": form,
        "active_page": "appointments",
    })


# --- careers


def careers(request):
    jobs = JobPost.objects.order_by("-created_at")
    return render(request, 'dashboard/pages/careers.html', {
        "jobs": jobs,
        "active_page": "careers",
    })


def job_form(request, pk=None):
    job = get_object_or_404(JobPost, pk=pk) if pk else None

    if request.method == 'POST':
        form = JobPostForm(request.POST, instance=job)
        if form.is_valid():
            instance = form.save(commit=False)
            if not instance.slug or 'title' in form.changed_data:
                instance.slug = services.unique_job_slug(instance.title, exclude_pk=instance.pk)
            try:
                instance.save()
            except DatabaseError:
                logger.exception("Error saving job %s", pk)
                messages.error(request, 'Failed to save job.')
            else:
                messages.success(request, 'Job saved.')
                return redirect('dashboard:careers')
        else:
            messages.error(request, 'Please correct the errors below.')
    else:
        form = JobPostForm(instance=job)

    return render(request, 'dashboard/pages/jobform.html', {
        "form": form,
        "job": job,
        "active_page": "careers",
    })


@require_POST
def job_toggle(request, pk):
    get_object_or_404(JobPost, pk=pk)
    try:
        job = services.toggle_job_active(pk)
    except DatabaseError:
        logger.exception("Error toggling job %s", pk)
        messages.error(request, "Failed to update job status")
    else:
        messages.success(request, f"{job.title} is now {'active' if job.is_active else 'inactive'}.")
    return redirect('dashboard:careers')


@require_POST
def job_delete(request, pk):
    get_object_or_404(JobPost, pk=pk)
    if request.POST.get("confirm") != "yes":
        messages.error(request, "Please confirm that you want to delete this job.")
        return redirect('dashboard:careers')
    try:
        services.delete_job(pk)
    except DatabaseError:
        logger.exception("Error deleting job %s", pk)
        messages.error(request, "Failed to delete job")
    else:
        messages.success(request, "Job deleted.")
    return redirect('dashboard:careers')


# --- applications


def applications(request):
    status_filter = request.GET.get("status", "all")
    if status_filter not in APPLICATION_FILTERS:
        status_filter = "all"
    job_filter = request.GET.get("job", "all")
    if job_filter != "all" and not job_filter.isdigit():
        job_filter = "all"
    q = request.GET.get("q", "").strip()

    if request.method == "POST":
        app_id = _posted_pk(request, "application_id")
        action = request.POST.get("action")
        get_object_or_404(JobApplication, id=app_id)
        try:
            if action == "status":
                services.update_application_status(app_id, request.POST.get("status"))
                messages.success(request, "Application status updated.")
            elif action == "notes":
                services.update_application_notes(app_id, request.POST.get("notes", ""))
                messages.success(request, "Notes saved.")
            else:
                messages.error(request, "Unknown action.")
        except ValidationError as e:
            for msg in e.messages:
                messages.error(request, msg)
        except DatabaseError:
            logger.exception("Error applying %s to application %s", action, app_id)
            messages.error(request, "Failed to update application status")
        return redirect('dashboard:applications')

    qs = JobApplication.objects.select_related("job").order_by("-created_at")
    if status_filter != "all":
        qs = qs.filter(status=status_filter)
    if job_filter != "all":
        qs = qs.filter(job_id=job_filter)
    if q:
        qs = qs.filter(
            Q(applicant_name__icontains=q)
            | Q(applicant_email__icontains=q)
            | Q(applicant_phone__icontains=q)
            | Q(job_title__icontains=q)
            | Q(job__department__icontains=q)
        )

    ctx = {
        "applications": qs,
        "jobs": JobPost.objects.order_by("title").values("id", "title", "slug"),
        "status_filter": status_filter,
        "job_filter": job_filter,
        "q": q,
        "filters": APPLICATION_FILTERS,
        "statuses": JobApplication.STATUS_CHOICES,
        "active_page": "applications",
    }
    return render(request, "dashboard/pages/applications.html", ctx)


# --- messages


def message(request):
    status_filter = request.GET.get("status", "all")
    if status_filter not in MESSAGE_FILTERS:
        status_filter = "all"

    if request.method == "POST":
        msg_id = _posted_pk(request, "message_id")
        action = request.POST.get("action")
        get_object_or_404(Message, id=msg_id)
        try:
            if action == "read":
                services.update_message_status(msg_id, Message.STATUS_READ)
            elif action == "archive":
                services.update_message_status(msg_id, Message.STATUS_ARCHIVED)
            elif action == "reply":
                services.reply_to_message(msg_id, request.POST.get("response", ""))
                messages.success(request, "Response saved.")
            elif action == "delete":
                if request.POST.get("confirm") != "yes":
                    messages.error(request, "Please confirm that you want to delete this message.")
                else:
                    services.delete_message(msg_id)
                    messages.success(request, "Message deleted.")
            else:
                messages.error(request, "Unknown action.")
        except ValidationError as e:
            for msg in e.messages:
                messages.error(request, msg)
        except DatabaseError:
            logger.exception("Error applying %s to message %s", action, msg_id)
            messages.error(request, "Failed to update message")
        return redirect(f"{request.path}?status={status_filter}")

    qs = Message.objects.order_by("-created_at")
    if status_filter != "all":
        qs = qs.filter(status=status_filter)

    return render(request, 'dashboard/pages/message.html', {
        "inbox": qs,
        "status_filter": status_filter,
        "filters": MESSAGE_FILTERS,
        "active_page": "message",
    })
