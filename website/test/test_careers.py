import re
import shutil
import tempfile
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils.datastructures import MultiValueDict

from website.forms import ApplicationForm
from website.models import JobApplication, JobPost
from website.storage import (
    StorageConfigurationError,
    UploadError,
    build_upload_path,
    upload_application_files,
)

MEDIA_ROOT = tempfile.mkdtemp()

APPLICATION_FIELDS = [
    {"id": "experience", "type": "textarea", "label": "Care experience", "required": True},
    {"id": "shift", "type": "select", "label": "Preferred shift", "required": False, "options": ["Days", "Nights"]},
    {"id": "driver", "type": "checkbox", "label": "I hold a driving licence", "required": False},
    {"id": "cv", "type": "file", "label": "CV", "required": True, "accept": ".pdf,.doc", "maxFiles": 2},
]

STORAGES_WITH_APPLICATIONS = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "applications": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
        "OPTIONS": {"location": MEDIA_ROOT, "base_url": "/media/applications/"},
    },
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}


def pdf(name="cv.pdf"):
    return SimpleUploadedFile(name, b"%PDF-1.4 test", content_type="application/pdf")


@override_settings(STORAGES=STORAGES_WITH_APPLICATIONS)
class CareersTests(TestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.job = JobPost.objects.create(
            title="Care Assistant",
            slug="care-assistant",
            department="Care Services",
            location="Leeds",
            description="Support clients at home.",
            requirements=["Kind", "Reliable"],
            responsibilities=["Personal care"],
            application_fields=APPLICATION_FIELDS,
        )
        self.closed = JobPost.objects.create(
            title="Closed Role", slug="closed-role", department="Care Services",
            location="York", description="-", is_active=False,
        )

    def application_data(self, **overrides):
        data = {
            "name": "Sam Carer",
            "email": "sam@test.com",
            "phone": "07700 900000",
            "custom_experience": "Three years in residential care",
            "custom_shift": "Nights",
            "custom_driver": "on",
        }
        data.update(overrides)
        return data

    def test_listing_shows_only_active_jobs(self):
        response = self.client.get("/careers/")

        self.assertContains(response, "Care Assistant")
        self.assertNotContains(response, "Closed Role")

    def test_inactive_job_is_404(self):
        self.assertEqual(self.client.get("/careers/closed-role/").status_code, 404)
        self.assertEqual(self.client.get("/careers/closed-role/apply/").status_code, 404)

    def test_detail_lists_requirements(self):
        response = self.client.get("/careers/care-assistant/")

        self.assertContains(response, "Reliable")
        self.assertContains(response, "Personal care")

    def test_form_is_built_from_application_fields(self):
        form = ApplicationForm(job=self.job)

        self.assertIn("custom_experience", form.fields)
        self.assertIn("custom_cv", form.fields)
        self.assertTrue(form.fields["custom_cv"].required)
        self.assertFalse(form.fields["custom_shift"].required)

    def test_required_custom_fields(self):
        form = ApplicationForm(self.application_data(custom_experience=""), MultiValueDict(), job=self.job)

        self.assertFalse(form.is_valid())
        self.assertIn("custom_experience", form.errors)
        self.assertIn("custom_cv", form.errors)

    def test_file_type_is_checked(self):
        form = ApplicationForm(
            self.application_data(), MultiValueDict({"custom_cv": [SimpleUploadedFile("cv.exe", b"MZ")]}), job=self.job,
        )

        self.assertFalse(form.is_valid())
        self.assertIn("Invalid file type", form.errors["custom_cv"][0])

    def test_max_files_is_checked(self):
        form = ApplicationForm(
            self.application_data(), MultiValueDict({"custom_cv": [pdf("a.pdf"), pdf("b.pdf"), pdf("c.pdf")]}), job=self.job,
        )

        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["custom_cv"], ["Maximum 2 file(s) allowed"])

    def test_upload_path_layout(self):
        path = build_upload_path("My CV.PDF", 12, "cv")

        self.assertRegex(path, r"^12/cv/\d+_[0-9a-f]{8}\.pdf$")

    def test_apply_creates_application_with_files(self):
        data = self.application_data()
        data["custom_cv"] = [pdf("one.pdf"), pdf("two.pdf")]

        response = self.client.post("/careers/care-assistant/apply/", data)

        self.assertRedirects(response, "/careers/care-assistant/")
        app = JobApplication.objects.get()
        self.assertEqual(app.status, JobApplication.STATUS_PENDING)
        self.assertEqual(app.job_title, "Care Assistant")
        self.assertEqual(len(app.files), 2)
        for url in app.files:
            self.assertTrue(re.match(rf"^/media/applications/{self.job.pk}/cv/\d+_[0-9a-f]{{8}}\.pdf$", url), url)
        self.assertEqual(app.custom_responses["cv"], app.files)
        self.assertEqual(app.custom_responses["experience"], "Three years in residential care")
        self.assertEqual(app.custom_responses["shift"], "Nights")
        self.assertIs(app.custom_responses["driver"], True)

    def test_failed_upload_is_skipped(self):
        with mock.patch(
            "website.storage.upload_application_file",
            side_effect=[UploadError("Error uploading file a.pdf: disk full"), "/media/applications/1/cv/b.pdf"],
        ):
            with self.assertLogs("website.storage", level="ERROR"):
                responses, urls = upload_application_files({"cv": [pdf("a.pdf"), pdf("b.pdf")]}, self.job.pk)

        self.assertEqual(urls, ["/media/applications/1/cv/b.pdf"])
        self.assertEqual(responses, {"cv": urls})

    @override_settings(STORAGES={
        "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
        "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
    })
    def test_missing_storage_aborts_application(self):
        with self.assertRaises(StorageConfigurationError) as ctx:
            upload_application_files({"cv": [pdf()]}, self.job.pk)
        self.assertEqual(ctx.exception.code, "storage_not_configured")

        data = self.application_data()
        data["custom_cv"] = [pdf()]
        response = self.client.post("/careers/care-assistant/apply/", data)

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Storage Configuration Error")
        self.assertFalse(JobApplication.objects.exists())

    def test_job_without_custom_fields(self):
        job = JobPost.objects.create(
            title="Coordinator", slug="coordinator", department="Management",
            location="Leeds", description="-",
        )

        response = self.client.post("/careers/coordinator/apply/", {
            "name": "Alex", "email": "alex@test.com", "phone": "1", "cover_letter": "Hello",
        })

        self.assertRedirects(response, "/careers/coordinator/")
        app = JobApplication.objects.get(job=job)
        self.assertEqual(app.files, [])
        self.assertEqual(app.custom_responses, {})
        self.assertEqual(app.cover_letter, "Hello")
