from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class Role(models.TextChoices):
    STUDENT = "student", "Student"
    ADMIN = "admin", "Admin"
    COMPANY = "company", "Company"


class PortalUserManager(UserManager):
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("role", Role.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    Role = Role

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Role.choices, blank=True)
    company_code = models.CharField(max_length=32, blank=True, null=True)

    objects = PortalUserManager()

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username


class VerificationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class StudentProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="student_profile")
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    dob = models.DateField(blank=True, null=True)
    gender = models.CharField(max_length=20, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    department = models.CharField(max_length=100, blank=True, null=True)
    placement_interest = models.CharField(max_length=100, blank=True, null=True)

    verification_status = models.CharField(
        max_length=20, choices=VerificationStatus.choices, default=VerificationStatus.PENDING
    )
    is_verified = models.BooleanField(default=False)
    verification_notes = models.TextField(blank=True, null=True)
    flagged_sections = models.TextField(
        blank=True, null=True, help_text="Comma separated profile sections needing correction."
    )
    is_blocked = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def flagged_list(self) -> list[str]:
        return [s.strip() for s in (self.flagged_sections or "").split(",") if s.strip()]

    def education(self, stage):
        return self.education_records.filter(stage=stage).first()


class EducationStage(models.TextChoices):
    CLASS_X = "class_x", "Class X"
    CLASS_XII = "class_xii", "Class XII"
    GRADUATION = "graduation", "Graduation"


class EducationRecord(models.Model):
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name="education_records")
    stage = models.CharField(max_length=20, choices=EducationStage.choices)
    institution = models.CharField(max_length=200)
    board = models.CharField(max_length=100, blank=True, help_text="Board for school stages.")
    course = models.CharField(max_length=100, blank=True, help_text="Course for graduation.")
    marks = models.DecimalField(max_digits=5, decimal_places=2, help_text="Percentage, or CGPA when is_cgpa is set.")
    is_cgpa = models.BooleanField(default=False)
    cgpa_scale = models.DecimalField(max_digits=4, decimal_places=1, blank=True, null=True)
    passing_year = models.PositiveIntegerField()
    has_backlog = models.BooleanField(default=False)
    marksheet_url = models.CharField(max_length=500, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "stage"], name="uniq_education_stage_per_student"),
        ]

    def __str__(self):
        return f"{self.student} - {self.get_stage_display()}"


class CompanyProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="company_profile")
    company_name = models.CharField(max_length=150)
    company_code = models.CharField(max_length=32, unique=True)
    website = models.URLField(blank=True, null=True)

    def __str__(self):
        return self.company_name


class Notification(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="notifications")
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True, null=True)
    url = models.CharField(max_length=300, blank=True, null=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.user.username}: {self.title}"
