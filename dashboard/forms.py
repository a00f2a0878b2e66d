from django import forms

from website.constants import APPLICATION_FIELD_TYPES
from website.models import JobPost


class JobPostForm(forms.ModelForm):
    """
    Create / edit a job post. Requirements and responsibilities are typed
    one per line; application_fields is the custom form definition as JSON.
    """

    requirements = forms.CharField(widget=forms.Textarea(attrs={"rows": 5}), required=False)
    responsibilities = forms.CharField(widget=forms.Textarea(attrs={"rows": 5}), required=False)
    application_fields = forms.JSONField(required=False, initial=list)

    class Meta:
        model = JobPost
        fields = [
            "title", "department", "location", "type", "description",
            "requirements", "responsibilities", "salary_range",
            "application_link", "application_fields", "is_active",
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance.pk and not self.is_bound:
            self.initial["requirements"] = "\n".join(self.instance.requirements or [])
            self.initial["responsibilities"] = "\n".join(self.instance.responsibilities or [])

    @staticmethod
    def _lines(value):
        return [line.strip() for line in (value or "").splitlines() if line.strip()]

    def clean_requirements(self):
        return self._lines(self.cleaned_data.get("requirements"))

    def clean_responsibilities(self):
        return self._lines(self.cleaned_data.get("responsibilities"))

    def clean_application_fields(self):
        fields = self.cleaned_data.get("application_fields") or []
        if not isinstance(fields, list):
            raise forms.ValidationError("Application fields must be a list.")

        seen = set()
        for field in fields:
            if not isinstance(field, dict) or not field.get("id") or not field.get("label"):
                raise forms.ValidationError("Every application field needs an id and a label.")
            if field.get("type", "text") not in APPLICATION_FIELD_TYPES:
                raise forms.ValidationError(f"Unknown field type {field.get('type')}.")
            if field["id"] in seen:
                raise forms.ValidationError(f"Duplicate field id {field['id']}.")
            if field.get("type") == "select" and not field.get("options"):
                raise forms.ValidationError(f"Select field {field['label']} needs options.")
            seen.add(field["id"])
        return fields
