from django import forms
from django.utils import timezone

from .availability import slot_conflict
from .constants import APPOINTMENT_REASONS, DEFAULT_REASON, DEPARTMENTS, OTHER_REASON, TIME_SLOTS
from .models import Appointment, Message

SLOT_TAKEN_MESSAGE = "The selected date or time is already booked. Please choose a different date or time."


class AppointmentForm(forms.ModelForm):
    """
    Shared form for requesting appointments.
    Used by:
      - Contact page (status = PENDING)
      - Dashboard manual booking (status = PENDING)
    """

    appointment_date = forms.DateField(
      widget=forms.DateInput(attrs={"type": "date", "class": "form-control"})
    )
    appointment_time = forms.ChoiceField(
      choices=[(s, s) for s in TIME_SLOTS],
      widget=forms.Select(attrs={"class": "form-control"}),
    )
    reason = forms.ChoiceField(
      choices=[("", "Select a reason")] + [(r, r) for r in APPOINTMENT_REASONS],
      required=False,
    )
    department = forms.ChoiceField(
      choices=[(d, d) for d in DEPARTMENTS],
      required=False,
    )

    class Meta:
        model = Appointment
        fields = [
            "client_name", "client_email", "client_phone",
            "subject", "reason", "department",
            "appointment_date", "appointment_time", "notes",
        ]

        widgets = {
            "client_name": forms.TextInput(attrs={"class": "form-control"}),
            "client_phone": forms.TextInput(attrs={"class": "form-control"}),
            "client_email": forms.EmailInput(attrs={"class": "form-control"}),
        }

    def clean(self):
      cleaned = super().clean()
      appt_date = cleaned.get("appointment_date")
      appt_time = cleaned.get("appointment_time")

      # Check if either is missing; let normal "required" errors handle it
      if not appt_date or not appt_time:
          return cleaned

      if appt_date < timezone.localdate():
          raise forms.ValidationError("Past dates cannot be selected.")

      if slot_conflict(appt_date, appt_time, exclude_pk=self.instance.pk):
          # This shows as a "non-field" error at the top of the form
          raise forms.ValidationError(SLOT_TAKEN_MESSAGE)

      return cleaned

    def save(self, commit=True, status=None):
        """
        Optional 'status' lets caller decide the initial status; new
        requests default to PENDING.
        """
        instance = super().save(commit=False)

        instance.client_name = instance.client_name.strip()
        instance.client_email = instance.client_email.strip()
        instance.client_phone = instance.client_phone.strip()
        if not instance.subject:
            instance.subject = instance.reason or DEFAULT_REASON

        if status is not None:
            instance.status = status

        if commit:
            instance.save()

        return instance


class BookingDetailsForm(forms.Form):
    """Contact details step of the booking wizard."""

    name = forms.CharField(max_length=120)
    email = forms.EmailField()
    phone = forms.CharField(max_length=40)
    reason = forms.ChoiceField(
        choices=[("", "Select a reason")] + [(r, r) for r in APPOINTMENT_REASONS],
        required=False,
    )
    other_reason = forms.CharField(max_length=200, required=False)

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("reason") == OTHER_REASON:
            if not (cleaned.get("other_reason") or "").strip():
                self.add_error("other_reason", "Please specify your reason for the appointment.")
        else:
            cleaned["other_reason"] = ""
        return cleaned

    def final_reason(self):
        reason = self.cleaned_data.get("reason")
        if reason == OTHER_REASON:
            return self.cleaned_data["other_reason"].strip()
        return reason or DEFAULT_REASON


class MessageForm(forms.ModelForm):
    class Meta:
        model = Message
        fields = ["name", "email", "message"]
        widgets = {
            "message": forms.Textarea(attrs={"rows": 4}),
        }


class MultipleFileInput(forms.ClearableFileInput):
    allow_multiple_selected = True


class MultipleFileField(forms.FileField):
    def __init__(self, *args, accept="", max_files=1, **kwargs):
        kwargs.setdefault("widget", MultipleFileInput(attrs={"accept": accept} if accept else {}))
        self.accept = accept
        self.max_files = max_files or 1
        super().__init__(*args, **kwargs)

    def clean(self, data, initial=None):
        single_file_clean = super().clean
        if isinstance(data, (list, tuple)):
            files = [single_file_clean(d, initial) for d in data if d]
        elif data:
            files = [single_file_clean(data, initial)]
        else:
            files = []

        if self.required and not files:
            raise forms.ValidationError(self.error_messages["required"], code="required")
        if len(files) > self.max_files:
            raise forms.ValidationError(f"Maximum {self.max_files} file(s) allowed")

        if self.accept:
            accepted = [a.strip().lower() for a in self.accept.split(",") if a.strip()]
            for f in files:
                ext = "." + f.name.rsplit(".", 1)[-1].lower()
                if ext not in accepted:
                    raise forms.ValidationError(f"Invalid file type. Accepted: {self.accept}")
        return files


class ApplicationForm(forms.Form):
    """
    Job application: the standard contact fields plus whatever the job post
    declares in application_fields (text, textarea, select, checkbox, file).
    Custom fields are named "custom_<field id>".
    """

    name = forms.CharField(max_length=120)
    email = forms.EmailField()
    phone = forms.CharField(max_length=40)
    cover_letter = forms.CharField(widget=forms.Textarea, required=False)

    PREFIX = "custom_"

    def __init__(self, *args, job=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.job = job
        self.custom_definitions = list(job.application_fields or []) if job else []
        for definition in self.custom_definitions:
            self.fields[self.PREFIX + str(definition["id"])] = self._build_field(definition)

    @staticmethod
    def _build_field(definition):
        kind = definition.get("type", "text")
        label = definition.get("label", "")
        required = bool(definition.get("required"))
        placeholder = definition.get("placeholder") or ""
        attrs = {"placeholder": placeholder} if placeholder else {}

        if kind == "textarea":
            return forms.CharField(label=label, required=required, widget=forms.Textarea(attrs=attrs))
        if kind == "select":
            options = definition.get("options") or []
            return forms.ChoiceField(
                label=label,
                required=required,
                choices=[("", "Select an option")] + [(o, o) for o in options],
            )
        if kind == "checkbox":
            return forms.BooleanField(label=label, required=required)
        if kind == "file":
            return MultipleFileField(
                label=label,
                required=required,
                accept=definition.get("accept") or "",
                max_files=definition.get("maxFiles") or 1,
            )
        return forms.CharField(label=label, required=required, widget=forms.TextInput(attrs=attrs))

    def custom_data(self):
        data = {}
        for definition in self.custom_definitions:
            if definition.get("type") == "file":
                continue
            value = self.cleaned_data.get(self.PREFIX + str(definition["id"]))
            if value not in (None, ""):
                data[str(definition["id"])] = value
        return data

    def custom_files(self):
        files = {}
        for definition in self.custom_definitions:
            if definition.get("type") != "file":
                continue
            uploaded = self.cleaned_data.get(self.PREFIX + str(definition["id"])) or []
            if uploaded:
                files[str(definition["id"])] = uploaded
        return files
