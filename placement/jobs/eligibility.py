"""Match a student's verified academic record against a posting's criteria."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from accounts.models import EducationStage, Role, StudentProfile

from .utils import create_in_app_notification

logger = logging.getLogger(__name__)


@dataclass
class EligibilityResult:
    is_eligible: bool
    reasons: list[str] = field(default_factory=list)

    def __bool__(self):
        return self.is_eligible


_STAGE_CRITERIA = (
    (EducationStage.CLASS_X, "Class X", "min_class_x_marks", "min_class_x_cgpa"),
    (EducationStage.CLASS_XII, "Class XII", "min_class_xii_marks", "min_class_xii_cgpa"),
    (EducationStage.GRADUATION, "Graduation", "min_graduation_marks", "min_graduation_cgpa"),
)


def _fmt(value):
    if value is None:
        return "-"
    return format(Decimal(str(value)).normalize(), "f")


def profile_blockers(student: StudentProfile) -> list[str]:
    reasons = []
    if student.is_blocked:
        reasons.append("Your profile is blocked from placements")
    if not student.is_verified:
        reasons.append("Your profile is not verified yet")
    flagged = student.flagged_list()
    if flagged:
        reasons.append(f"Sections flagged for correction: {', '.join(flagged)}")
    return reasons


def check_eligibility(student: StudentProfile, job) -> EligibilityResult:
    reasons = profile_blockers(student)
    records = {r.stage: r for r in student.education_records.all()}

    for stage, label, marks_attr, cgpa_attr in _STAGE_CRITERIA:
        record = records.get(stage)
        if record is None:
            continue
        min_marks = getattr(job, marks_attr)
        min_cgpa = getattr(job, cgpa_attr)
        if record.is_cgpa:
            if min_cgpa is not None and record.marks < min_cgpa:
                reasons.append(f"{label} CGPA ({_fmt(record.marks)}) below required {_fmt(min_cgpa)}")
        elif min_marks is not None and record.marks < min_marks:
            reasons.append(f"{label} marks ({_fmt(record.marks)}%) below required {_fmt(min_marks)}%")

    graduation = records.get(EducationStage.GRADUATION)
    if graduation is not None:
        if not job.allow_backlog and graduation.has_backlog:
            reasons.append("Backlog not allowed for this job")
        courses = job.courses_list()
        if courses and graduation.course.strip().lower() not in courses:
            reasons.append(f"Your course ({graduation.course}) is not among eligible courses")
        years = job.passing_years_list()
        if years and graduation.passing_year not in years:
            reasons.append(f"Your passing year ({graduation.passing_year}) is not among eligible years")

    return EligibilityResult(is_eligible=not reasons, reasons=reasons)


def notify_eligible_students(job) -> int:
    """Tell every eligible student about a newly published posting."""
    notified = 0
    students = (
        StudentProfile.objects.filter(user__role=Role.STUDENT, user__is_active=True, is_verified=True, is_blocked=False)
        .select_related("user")
        .prefetch_related("education_records")
    )
    for student in students:
        if not check_eligibility(student, job):
            continue
        create_in_app_notification(
            student.user,
            title="New Job Opportunity",
            message=f"A new job matching your profile has been posted: {job.title} at {job.company_name}",
            url=f"/student/jobs/#job-{job.id}",
        )
        notified += 1
    logger.info("Eligible students notified: job_id=%s count=%s", job.id, notified)
    return notified
