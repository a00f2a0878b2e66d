import logging

from django.contrib import messages
from django.db import DatabaseError, transaction
from django.shortcuts import get_object_or_404, redirect, render
from django.utils.http import url_has_allowed_host_and_scheme

from .booking import BookingError, BookingWizard
from .forms import AppointmentForm, ApplicationForm, BookingDetailsForm, MessageForm
from .models import Appointment, JobApplication, JobPost
from .storage import StorageConfigurationError, upload_application_files

logger = logging.getLogger(__name__)


def home(request):
	return render(request, 'home.html', {"message_form": MessageForm()})

def contact(request):
	"""Contact page: direct appointment request plus a plain message form."""
	appointment_form = AppointmentForm(prefix="appt")
	message_form = MessageForm(prefix="msg")

	if request.method == "POST":
		if request.POST.get("form") == "message":
			message_form = MessageForm(request.POST, prefix="msg")
			if message_form.is_valid():
				try:
					message_form.save()
				except DatabaseError:
					logger.exception("Error submitting message")
					messages.error(request, "Failed to send message. Please try again.")
				else:
					messages.success(request, "Thanks for your message. We will get back to you soon.")
					return redirect('contact')
			else:
				messages.error(request, "Please correct the errors below.")
		else:
			appointment_form = AppointmentForm(request.POST, prefix="appt")
			if appointment_form.is_valid():
				try:
					with transaction.atomic():
						appointment_form.save(status=Appointment.STATUS_PENDING)
				except DatabaseError:
					logger.exception("Error submitting appointment")
					messages.error(request, "Failed to submit appointment. Please try again.")
				else:
					messages.success(request, "Your appointment request has been sent. We will contact you to confirm.")
					return redirect('contact')
			else:
				messages.error(request, "Please correct the errors below.")

	return render(request, 'pages/contact.html', {
		"appointment_form": appointment_form,
		"message_form": message_form,
	})

def send_message(request):
	"""Live chat widget posts here from any page."""
	if request.method != "POST":
		return redirect('home')

	form = MessageForm(request.POST)
	if form.is_valid():
		try:
			form.save()
		except DatabaseError:
			logger.exception("Error submitting message")
			messages.error(request, "Failed to send message. Please try again.")
		else:
			messages.success(request, "Message sent! We'll get back to you soon.")
	else:
		messages.error(request, "Please fill in your name, a valid email and a message.")
	next_url = request.POST.get("next")
	if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
		return redirect(next_url)
	return redirect('home')

def appointment_form(request):
    wizard = BookingWizard(request.session)
    details_form = BookingDetailsForm()

    if request.method == "POST":
        action = request.POST.get("action")
        try:
            if action == "select_date":
                wizard.select_date(request.POST.get("date"))
            elif action == "select_time":
                wizard.select_time(request.POST.get("time"))
            elif action == "back":
                wizard.back()
            elif action == "confirm":
                wizard.confirm(request.POST)
                messages.success(request, "Your appointment request has been sent. We will contact you to confirm.")
            elif action == "reset":
                wizard.reset()
            else:
                messages.error(request, "Unknown action.")
            return redirect('appointment_form')
        except BookingError as e:
            details_form = getattr(e, "form", details_form)
            for msg in e.messages:
                messages.error(request, msg)
            if details_form.is_bound:
                # keep entered details on screen
                ctx = wizard.context()
                ctx["details_form"] = details_form
                return render(request, "pages/appointment.html", ctx)
            return redirect('appointment_form')

    ctx = wizard.context()
    ctx["details_form"] = details_form
    return render(request, "pages/appointment.html", ctx)

def careers(request):
	jobs = JobPost.objects.filter(is_active=True).order_by("-created_at")
	return render(request, 'pages/careers.html', {"jobs": jobs})

def job_detail(request, slug):
	job = get_object_or_404(JobPost, slug=slug, is_active=True)
	return render(request, 'pages/job_detail.html', {"job": job})

def job_apply(request, slug):
    job = get_object_or_404(JobPost, slug=slug, is_active=True)

    if request.method == "POST":
        form = ApplicationForm(request.POST, request.FILES, job=job)
        if not form.is_valid():
            messages.error(request, "Please fill in all required fields.")
            return render(request, "pages/job_apply.html", {"job": job, "form": form})

        try:
            file_responses, file_urls = upload_application_files(form.custom_files(), job.pk)
        except StorageConfigurationError as e:
            logger.error("Application upload aborted for job %s: %s", job.pk, e)
            messages.error(request, e.operator_message)
            return render(request, "pages/job_apply.html", {"job": job, "form": form})

        custom_responses = form.custom_data()
        custom_responses.update(file_responses)

        try:
            JobApplication.objects.create(
                job=job,
                job_title=job.title,
                applicant_name=form.cleaned_data["name"].strip(),
                applicant_email=form.cleaned_data["email"].strip(),
                applicant_phone=form.cleaned_data["phone"].strip(),
                cover_letter=form.cleaned_data.get("cover_letter", ""),
                files=file_urls,
                custom_responses=custom_responses,
                status=JobApplication.STATUS_PENDING,
            )
        except DatabaseError:
            logger.exception("Error submitting application for job %s", job.pk)
            messages.error(request, "Failed to submit application. Please try again.")
            return render(request, "pages/job_apply.html", {"job": job, "form": form})

        messages.success(request, "Application submitted! We'll be in touch soon.")
        return redirect('job_detail', slug=job.slug)

    form = ApplicationForm(job=job)
    return render(request, "pages/job_apply.html", {"job": job, "form": form})
