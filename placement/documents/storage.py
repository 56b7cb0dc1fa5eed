"""File uploads to the configured Django storage backend.

Files live under ``<bucket>/<path>``. Callers pick the path; the helpers below
build collision-free ones from a random token and a timestamp. ``store`` never
overwrites: an existing path is treated as a failed upload.
"""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import PurePosixPath
from typing import Optional

from django.conf import settings
from django.core.files.storage import default_storage

logger = logging.getLogger(__name__)

RESUMES = "resumes"
MARKSHEETS = "marksheets"
OFFER_LETTERS = "offer_letters"


def _extension(filename: str) -> str:
    suffix = PurePosixPath(filename or "").suffix.lower().lstrip(".")
    return suffix or "bin"


def random_token(nbytes: int = 8) -> str:
    return secrets.token_hex(nbytes)


def build_upload_path(folder: str, filename: str, *, prefix: Optional[str] = None) -> str:
    name = f"{random_token()}_{int(time.time())}.{_extension(filename)}"
    if prefix:
        name = f"{prefix}_{name}"
    return f"{folder.strip('/')}/{name}" if folder else name


def public_url(name: str) -> str:
    base = getattr(settings, "PORTAL_STORAGE_BASE_URL", "")
    if base:
        return f"{base.rstrip('/')}/{name}"
    return default_storage.url(name)


def store(file, bucket: str, path: str) -> Optional[str]:
    """Save ``file`` at ``bucket/path`` and return its public URL, or None on failure."""
    if bucket not in getattr(settings, "PORTAL_UPLOAD_BUCKETS", (bucket,)):
        logger.error("Upload rejected: unknown bucket=%s", bucket)
        return None
    name = f"{bucket}/{path.lstrip('/')}"
    try:
        if default_storage.exists(name):
            logger.error("Upload rejected: path already exists name=%s", name)
            return None
        saved = default_storage.save(name, file)
    except Exception:
        logger.exception("Upload failed: bucket=%s path=%s", bucket, path)
        return None
    logger.info("File stored: name=%s", saved)
    return public_url(saved)


def upload_file(file, bucket: str, folder: str) -> Optional[str]:
    return store(file, bucket, build_upload_path(folder, getattr(file, "name", "")))


def upload_offer_letter(file, student_id, job_id) -> Optional[str]:
    filename = f"{student_id}_{job_id}_{random_token()}.{_extension(getattr(file, 'name', ''))}"
    return store(file, OFFER_LETTERS, f"{student_id}/{filename}")
