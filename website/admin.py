from django.contrib import admin
from .models import Appointment, JobApplication, JobPost, Message

@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    # table columns
    list_display = ("id", "appointment_date", "appointment_time", "client_name", "client_phone", "client_email", "status", "created_at")
    list_display_links = ("id", "client_name")

    # right sidebar filters
    list_filter = ("status", "appointment_date", "department")

    # top search bar
    search_fields = ("client_name", "client_phone", "client_email")

    # date drilldown nav
    date_hierarchy = "appointment_date"

    # pagination
    list_per_page = 25

    # read-only auto fields
    readonly_fields = ("created_at", "updated_at")

    # how the edit form is grouped
    fieldsets = (
        ("Client",  {"fields": ("client_name", "client_phone", "client_email")}),
        ("Booking", {"fields": ("appointment_date", "appointment_time", "status")}),
        ("Request", {"fields": ("subject", "reason", "department")}),
        ("Notes",   {"fields": ("notes",)}),
        ("Meta",    {"fields": ("created_at", "updated_at")}),
    )


@admin.register(JobPost)
class JobPostAdmin(admin.ModelAdmin):
    list_display = ("title", "department", "location", "type", "is_active", "created_at")
    list_filter = ("is_active", "type", "department")
    search_fields = ("title", "department", "location")
    prepopulated_fields = {"slug": ("title",)}


@admin.register(JobApplication)
class JobApplicationAdmin(admin.ModelAdmin):
    list_display = ("applicant_name", "job_title", "applicant_email", "status", "files_count", "created_at")
    list_filter = ("status", "job")
    search_fields = ("applicant_name", "applicant_email", "applicant_phone", "job_title")
    readonly_fields = ("created_at", "updated_at")

    def files_count(self, obj):
        """
        JSONField -> number of uploaded files
        """
        return len(obj.files or [])
    files_count.short_description = "Files"


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "status", "created_at", "responded_at")
    list_filter = ("status",)
    search_fields = ("name", "email", "message")
    readonly_fields = ("created_at", "updated_at", "responded_at")
