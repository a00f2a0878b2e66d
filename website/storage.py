"""
Uploads for job application files.

Files go to the "applications" storage under
``{job-id}/{field-id}/{timestamp}_{random}.{ext}`` and are referenced by
their public URL. Failures are raised as typed errors with a ``code`` so
callers can tell a misconfigured storage apart from a single bad upload.
"""
import logging
import secrets
import time

from django.core.exceptions import ImproperlyConfigured
from django.core.files.storage import InvalidStorageError, storages

logger = logging.getLogger(__name__)

STORAGE_ALIAS = "applications"


class UploadError(Exception):
    code = "upload_failed"

    def __init__(self, message, filename=""):
        super().__init__(message)
        self.filename = filename


class StorageConfigurationError(UploadError):
    code = "storage_not_configured"

    operator_message = (
        "Storage Configuration Error: the file storage for applications is not configured. "
        "Please contact the website administrator."
    )


def get_application_storage():
    try:
        return storages[STORAGE_ALIAS]
    except (InvalidStorageError, ImproperlyConfigured) as e:
        raise StorageConfigurationError(f"Storage '{STORAGE_ALIAS}' is not configured: {e}") from e


def build_upload_path(filename, job_id, field_id):
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    stamp = int(time.time() * 1000)
    token = secrets.token_hex(4)
    return f"{job_id}/{field_id}/{stamp}_{token}.{ext}"


def upload_application_file(uploaded_file, job_id, field_id):
    """Save one uploaded file and return its public URL."""
    storage = get_application_storage()
    path = build_upload_path(uploaded_file.name, job_id, field_id)
    try:
        saved_name = storage.save(path, uploaded_file)
    except PermissionError as e:
        raise StorageConfigurationError(
            f"Storage '{STORAGE_ALIAS}' is not writable: {e}", filename=uploaded_file.name
        ) from e
    except OSError as e:
        raise UploadError(f"Error uploading file {uploaded_file.name}: {e}", filename=uploaded_file.name) from e
    return storage.url(saved_name)


def upload_application_files(files_by_field, job_id):
    """
    Upload every file of every custom file field.

    Returns (responses, urls): responses maps field id -> list of URLs for the
    fields that got at least one file, urls is the flat list. A storage
    configuration error aborts the whole batch; other failures skip the file.
    """
    responses = {}
    urls = []
    for field_id, field_files in files_by_field.items():
        uploaded = []
        for f in field_files:
            try:
                url = upload_application_file(f, job_id, field_id)
            except StorageConfigurationError:
                raise
            except UploadError as e:
                logger.error("%s", e)
                continue
            uploaded.append(url)
            urls.append(url)
        if uploaded:
            responses[field_id] = uploaded
    return responses, urls
