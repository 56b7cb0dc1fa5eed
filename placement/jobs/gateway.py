"""Typed record access with the portal's row-level policy.

Views never write to the ORM for the shared collections directly; they go
through a ``RecordStore`` bound to the caller's session. The store checks
the same rules the database policy enforces (students create applications
only for themselves, companies touch only applications to their own
postings, and so on) and reports every failure as an ``UpstreamFailure``.
Nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import DatabaseError, transaction

from accounts.identity import Session
from accounts.models import Notification, Role, StudentProfile

from .models import JobApplication, JobPosting

logger = logging.getLogger(__name__)

JOB_POSTINGS = "job_postings"
JOB_APPLICATIONS = "job_applications"
STUDENT_PROFILES = "student_profiles"
NOTIFICATIONS = "notifications"

COLLECTIONS = {
    JOB_POSTINGS: JobPosting,
    JOB_APPLICATIONS: JobApplication,
    STUDENT_PROFILES: StudentProfile,
    NOTIFICATIONS: Notification,
}

# Fields a student may change on their own records.
_STUDENT_WRITABLE = {
    STUDENT_PROFILES: {
        "first_name",
        "last_name",
        "dob",
        "gender",
        "phone",
        "address",
        "department",
        "placement_interest",
    },
    NOTIFICATIONS: {"is_read"},
}
_COMPANY_WRITABLE = {
    JOB_APPLICATIONS: {"status", "offer_letter_url"},
    NOTIFICATIONS: {"is_read"},
}


class UpstreamFailure(Exception):
    """The data service could not complete the request."""


class RecordNotFound(UpstreamFailure):
    pass


class PolicyDenied(UpstreamFailure):
    pass


class RecordStore:
    def __init__(self, session: Session):
        if session is None:
            raise PolicyDenied("No session.")
        self.session = session

    # -----------------------------
    # Reads
    # -----------------------------
    def _model(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise UpstreamFailure(f"Unknown collection: {collection}") from None

    def _scoped(self, collection: str):
        model = self._model(collection)
        qs = model.objects.all()
        role = self.session.role
        if collection == NOTIFICATIONS:
            return qs.filter(user_id=self.session.user_id)
        if role == Role.ADMIN:
            return qs
        if role == Role.STUDENT:
            if collection == JOB_APPLICATIONS:
                return qs.filter(student__user_id=self.session.user_id)
            if collection == STUDENT_PROFILES:
                return qs.filter(user_id=self.session.user_id)
            if collection == JOB_POSTINGS:
                return qs.active()
        if role == Role.COMPANY:
            if collection == JOB_APPLICATIONS:
                return qs.filter(job__company__user_id=self.session.user_id)
            if collection == JOB_POSTINGS:
                return qs.filter(company__user_id=self.session.user_id)
            if collection == STUDENT_PROFILES:
                return qs.filter(applications__job__company__user_id=self.session.user_id).distinct()
        return qs.none()

    def get(self, collection: str, pk) -> Any:
        try:
            return self._scoped(collection).get(pk=pk)
        except self._model(collection).DoesNotExist:
            raise RecordNotFound(f"{collection} #{pk} not found") from None
        except DatabaseError as exc:
            logger.exception("Read failed: collection=%s pk=%s", collection, pk)
            raise UpstreamFailure(str(exc)) from exc

    def filter(self, collection: str, **equals) -> list:
        try:
            return list(self._scoped(collection).filter(**equals))
        except DatabaseError as exc:
            logger.exception("Query failed: collection=%s filters=%s", collection, equals)
            raise UpstreamFailure(str(exc)) from exc

    # -----------------------------
    # Writes
    # -----------------------------
    def _deny(self, action: str, collection: str):
        logger.warning(
            "Policy denied: user_id=%s role=%s action=%s collection=%s",
            self.session.user_id,
            self.session.role,
            action,
            collection,
        )
        raise PolicyDenied(f"{self.session.role} may not {action} {collection}")

    def insert(self, collection: str, **fields) -> Any:
        model = self._model(collection)
        role = self.session.role
        if role == Role.STUDENT:
            if collection != JOB_APPLICATIONS:
                self._deny("insert", collection)
            student = StudentProfile.objects.filter(user_id=self.session.user_id).first()
            given = fields.get("student") or fields.get("student_id")
            given_id = getattr(given, "pk", given)
            if student is None or (given_id is not None and given_id != student.pk):
                self._deny("insert", collection)
            fields.pop("student_id", None)
            fields["student"] = student
            fields.pop("status", None)
        elif role == Role.ADMIN:
            if collection not in {JOB_POSTINGS, JOB_APPLICATIONS, NOTIFICATIONS}:
                self._deny("insert", collection)
        else:
            self._deny("insert", collection)

        try:
            with transaction.atomic():
                return model.objects.create(**fields)
        except DatabaseError as exc:
            logger.exception("Insert failed: collection=%s", collection)
            raise UpstreamFailure(str(exc)) from exc

    def update(self, collection: str, pk, **fields) -> Any:
        role = self.session.role
        if role == Role.ADMIN:
            # None: every field
            allowed = {"is_read"} if collection == NOTIFICATIONS else None
        elif role == Role.STUDENT:
            allowed = _STUDENT_WRITABLE.get(collection, set())
        elif role == Role.COMPANY:
            allowed = _COMPANY_WRITABLE.get(collection, set())
        else:
            allowed = set()
        if allowed is not None and (not allowed or not set(fields) <= allowed):
            self._deny("update", collection)

        record = self.get(collection, pk)
        for name, value in fields.items():
            setattr(record, name, value)
        try:
            with transaction.atomic():
                record.save()
        except DatabaseError as exc:
            logger.exception("Update failed: collection=%s pk=%s", collection, pk)
            raise UpstreamFailure(str(exc)) from exc
        return record