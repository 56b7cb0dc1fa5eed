from django.db import models
from django.utils import timezone

from accounts.models import CompanyProfile, StudentProfile

from .status import ApplicationStatus, is_final


def tokenize_csv(value):
    return [part.strip().lower() for part in (value or "").replace(";", ",").split(",") if part.strip()]


def parse_years(value):
    years = []
    for part in tokenize_csv(value):
        try:
            years.append(int(part))
        except ValueError:
            continue
    return years


class JobPostingStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    CLOSED = "closed", "Closed"
    DRAFT = "draft", "Draft"


class JobPostingQuerySet(models.QuerySet):
    def recent(self):
        return self.order_by("-created_at")

    def active(self):
        return self.filter(status=JobPostingStatus.ACTIVE)

    def open_for_applications(self, today=None):
        today = today or timezone.localdate()
        return self.active().filter(application_deadline__gte=today)

    def for_company(self, company):
        return self.filter(company=company)


class JobPosting(models.Model):
    company = models.ForeignKey(
        CompanyProfile, on_delete=models.SET_NULL, related_name="job_postings", blank=True, null=True
    )
    company_name = models.CharField(max_length=150)
    title = models.CharField(max_length=255)
    description = models.TextField()
    location = models.CharField(max_length=255)
    package = models.CharField(max_length=100, help_text="Offered CTC, e.g. 6-8 LPA.")
    application_deadline = models.DateField()

    min_class_x_marks = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    min_class_xii_marks = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    min_graduation_marks = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    min_class_x_cgpa = models.DecimalField(max_digits=4, decimal_places=2, blank=True, null=True)
    min_class_xii_cgpa = models.DecimalField(max_digits=4, decimal_places=2, blank=True, null=True)
    min_graduation_cgpa = models.DecimalField(max_digits=4, decimal_places=2, blank=True, null=True)
    allow_backlog = models.BooleanField(default=False)
    eligible_courses = models.TextField(
        blank=True, null=True, help_text="Comma separated courses (e.g. B.Tech CSE, MCA). Empty allows all."
    )
    eligible_passing_years = models.CharField(
        max_length=200, blank=True, null=True, help_text="Comma separated years (e.g. 2025, 2026). Empty allows all."
    )

    status = models.CharField(max_length=20, choices=JobPostingStatus.choices, default=JobPostingStatus.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = JobPostingQuerySet.as_manager()

    def __str__(self):
        return f"{self.title} ({self.company_name})"

    def save(self, *args, **kwargs):
        if self.company_id and not self.company_name:
            self.company_name = self.company.company_name
        super().save(*args, **kwargs)

    def courses_list(self):
        return tokenize_csv(self.eligible_courses)

    def passing_years_list(self):
        return parse_years(self.eligible_passing_years)

    def is_open(self, today=None):
        today = today or timezone.localdate()
        return self.status == JobPostingStatus.ACTIVE and self.application_deadline >= today

    def days_to_deadline(self, today=None):
        today = today or timezone.localdate()
        return (self.application_deadline - today).days


class JobApplication(models.Model):
    job = models.ForeignKey(JobPosting, on_delete=models.CASCADE, related_name="applications")
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name="applications")
    status = models.CharField(max_length=20, choices=ApplicationStatus.choices, default=ApplicationStatus.APPLIED)
    admin_notes = models.TextField(blank=True, null=True)
    resume_url = models.CharField(max_length=500, blank=True, null=True)
    offer_letter_url = models.CharField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["job", "student"], name="uniq_application_per_job_student"),
        ]

    def __str__(self):
        return f"{self.student.user.username} → {self.job.title}"

    @property
    def is_final(self):
        return is_final(self.status)
