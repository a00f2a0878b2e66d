from django.db import models
from django.db.models import Q


class Appointment(models.Model):
	STATUS_PENDING     = "pending"
	STATUS_CONFIRMED   = "confirmed"
	STATUS_RESCHEDULED = "rescheduled"
	STATUS_CANCELLED   = "cancelled"
	STATUS_COMPLETED   = "completed"

	STATUS_CHOICES = [
		(STATUS_PENDING, "Pending"),
		(STATUS_CONFIRMED, "Confirmed"),
		(STATUS_RESCHEDULED, "Rescheduled"),
		(STATUS_CANCELLED, "Cancelled"),
		(STATUS_COMPLETED, "Completed"),
	]

	# statuses that occupy their (date, time) slot
	ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_RESCHEDULED)

	client_name = models.CharField(max_length=120)
	client_email = models.EmailField()
	client_phone = models.CharField(max_length=40)
	subject = models.CharField(max_length=200, blank=True)
	reason = models.CharField(max_length=200, blank=True)
	department = models.CharField(max_length=120, blank=True)
	appointment_date = models.DateField()
	appointment_time = models.CharField(max_length=5)

	status = models.CharField(
		max_length=12,
		choices=STATUS_CHOICES,
		default=STATUS_PENDING,
	)
	notes = models.TextField(blank=True) # for staff notes
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		indexes = [
			models.Index(fields=["appointment_date"], name="website_appt_date_idx"),
			models.Index(fields=["status"], name="website_appt_status_idx"),
		]
		constraints = [
			models.UniqueConstraint(
				fields=["appointment_date", "appointment_time"],
				condition=Q(status__in=["pending", "confirmed", "rescheduled"]),
				name="unique_active_appointment_slot",
			),
		]
		ordering = ["appointment_date", "appointment_time", "client_name"]

	def __str__(self):
		return f"{self.client_name} - {self.appointment_date} {self.appointment_time}"

	@property
	def is_active(self):
		return self.status in self.ACTIVE_STATUSES


class JobPost(models.Model):
	TYPE_CHOICES = [
		("Full-time", "Full-time"),
		("Part-time", "Part-time"),
		("Contract", "Contract"),
		("Temporary", "Temporary"),
	]

	title = models.CharField(max_length=200)
	slug = models.SlugField(max_length=220, unique=True)
	department = models.CharField(max_length=120)
	location = models.CharField(max_length=120)
	type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="Full-time")
	description = models.TextField()
	requirements = models.JSONField(default=list, blank=True)
	responsibilities = models.JSONField(default=list, blank=True)
	application_link = models.URLField(blank=True)
	salary_range = models.CharField(max_length=120, blank=True)
	# custom application form, list of field definitions
	application_fields = models.JSONField(default=list, blank=True)
	is_active = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["-created_at"]

	def __str__(self):
		return self.title


class JobApplication(models.Model):
	STATUS_PENDING  = "pending"
	STATUS_REVIEWED = "reviewed"
	STATUS_APPROVED = "approved"
	STATUS_DECLINED = "declined"

	STATUS_CHOICES = [
		(STATUS_PENDING, "Pending"),
		(STATUS_REVIEWED, "Reviewed"),
		(STATUS_APPROVED, "Approved"),
		(STATUS_DECLINED, "Declined"),
	]

	job = models.ForeignKey(JobPost, on_delete=models.CASCADE, related_name="applications")
	job_title = models.CharField(max_length=200, blank=True)
	applicant_name = models.CharField(max_length=120)
	applicant_email = models.EmailField()
	applicant_phone = models.CharField(max_length=40)
	cover_letter = models.TextField(blank=True)
	files = models.JSONField(default=list, blank=True)
	custom_responses = models.JSONField(default=dict, blank=True)
	status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
	admin_notes = models.TextField(blank=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["-created_at"]

	def __str__(self):
		return f"{self.applicant_name} - {self.job_title}"


class Message(models.Model):
	STATUS_NEW      = "new"
	STATUS_READ     = "read"
	STATUS_REPLIED  = "replied"
	STATUS_ARCHIVED = "archived"

	STATUS_CHOICES = [
		(STATUS_NEW, "New"),
		(STATUS_READ, "Read"),
		(STATUS_REPLIED, "Replied"),
		(STATUS_ARCHIVED, "Archived"),
	]

	name = models.CharField(max_length=120)
	email = models.EmailField()
	message = models.TextField()
	status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_NEW)
	response = models.TextField(blank=True)
	responded_at = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ["-created_at"]

	def __str__(self):
		return f"{self.name} <{self.email}>"
