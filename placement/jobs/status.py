"""Application status vocabulary.

Every function here is total over ``ApplicationStatus`` and refuses anything
outside it: an unknown value raises ``UnknownStatus`` rather than falling
into a neutral default. Adding a status without extending ``_BADGES`` fails
at import time.
"""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured
from django.db import models


class ApplicationStatus(models.TextChoices):
    APPLIED = "applied", "Applied"
    UNDER_REVIEW = "under_review", "Under review"
    SHORTLISTED = "shortlisted", "Shortlisted"
    REJECTED = "rejected", "Rejected"
    SELECTED = "selected", "Selected"
    INTERNSHIP = "internship", "Internship"
    PPO = "ppo", "PPO"
    PLACEMENT = "placement", "Placement"


class BadgeClass(models.TextChoices):
    POSITIVE = "positive", "Positive"
    NEGATIVE = "negative", "Negative"
    INFORMATIONAL = "informational", "Informational"
    HIGHLIGHT = "highlight", "Highlight"
    NEUTRAL = "neutral", "Neutral"


class UnknownStatus(ValueError):
    def __init__(self, value):
        super().__init__(f"Unknown application status: {value!r}")
        self.value = value


_BADGES = {
    ApplicationStatus.APPLIED: BadgeClass.NEUTRAL,
    ApplicationStatus.UNDER_REVIEW: BadgeClass.INFORMATIONAL,
    ApplicationStatus.SHORTLISTED: BadgeClass.INFORMATIONAL,
    ApplicationStatus.REJECTED: BadgeClass.NEGATIVE,
    ApplicationStatus.SELECTED: BadgeClass.POSITIVE,
    ApplicationStatus.INTERNSHIP: BadgeClass.HIGHLIGHT,
    ApplicationStatus.PPO: BadgeClass.HIGHLIGHT,
    ApplicationStatus.PLACEMENT: BadgeClass.POSITIVE,
}

FINAL_STATUSES = frozenset(
    {
        ApplicationStatus.SELECTED,
        ApplicationStatus.INTERNSHIP,
        ApplicationStatus.PPO,
        ApplicationStatus.PLACEMENT,
    }
)

# Acronyms keep their casing.
_LABEL_OVERRIDES = {ApplicationStatus.PPO: "PPO"}

_missing = [s.value for s in ApplicationStatus if s not in _BADGES]
if _missing:
    raise ImproperlyConfigured(f"No badge class for statuses: {', '.join(_missing)}")


def coerce_status(status) -> ApplicationStatus:
    try:
        return ApplicationStatus(status)
    except ValueError:
        raise UnknownStatus(status) from None


def badge_class(status) -> BadgeClass:
    return _BADGES[coerce_status(status)]


def display_label(status) -> str:
    status = coerce_status(status)
    if status in _LABEL_OVERRIDES:
        return _LABEL_OVERRIDES[status]
    value = status.value
    return value[:1].upper() + value[1:].replace("_", " ")


def is_final(status) -> bool:
    return coerce_status(status) in FINAL_STATUSES


def all_statuses() -> tuple[ApplicationStatus, ...]:
    return tuple(ApplicationStatus)


def status_choices() -> list[tuple[str, str]]:
    return [(s.value, display_label(s)) for s in all_statuses()]
