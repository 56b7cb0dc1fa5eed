from datetime import timedelta
from decimal import Decimal

from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.template import Context, Template
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from django.utils import timezone

from accounts.identity import Session, session_from_user
from accounts.models import (
    CompanyProfile,
    EducationRecord,
    EducationStage,
    Notification,
    Role,
    StudentProfile,
    User,
    VerificationStatus,
)
from documents.models import Resume

from .eligibility import check_eligibility, notify_eligible_students
from .gateway import (
    JOB_APPLICATIONS,
    JOB_POSTINGS,
    NOTIFICATIONS,
    STUDENT_PROFILES,
    PolicyDenied,
    RecordNotFound,
    RecordStore,
)
from .models import JobApplication, JobPosting, JobPostingStatus
from .status import (
    FINAL_STATUSES,
    ApplicationStatus,
    BadgeClass,
    UnknownStatus,
    all_statuses,
    badge_class,
    coerce_status,
    display_label,
    is_final,
    status_choices,
)


def make_student(username="stu", verified=True, **profile_fields):
    user = User.objects.create_user(
        username=username, password="pass", email=f"{username}@example.com", role=Role.STUDENT
    )
    profile = StudentProfile.objects.create(
        user=user,
        first_name=username.title(),
        is_verified=verified,
        verification_status=VerificationStatus.APPROVED if verified else VerificationStatus.PENDING,
        **profile_fields,
    )
    return profile


def add_record(profile, stage, marks, **extra):
    fields = {"institution": "Some School", "passing_year": 2020, "marks": Decimal(str(marks))}
    if stage == EducationStage.GRADUATION:
        fields.update(course="B.Tech CSE", passing_year=2026)
    fields.update(extra)
    return EducationRecord.objects.create(student=profile, stage=stage, **fields)


def make_company(username="acme", name="Acme", code="ACME01"):
    user = User.objects.create_user(
        username=username, password="pass", email=f"hr@{username}.test", role=Role.COMPANY, company_code=code
    )
    return CompanyProfile.objects.create(user=user, company_name=name, company_code=code)


def make_job(company=None, **overrides):
    fields = {
        "company": company,
        "company_name": company.company_name if company else "Walk-in Ltd",
        "title": "Graduate Engineer",
        "description": "Build things",
        "location": "Pune",
        "package": "6 LPA",
        "application_deadline": timezone.localdate() + timedelta(days=20),
    }
    fields.update(overrides)
    return JobPosting.objects.create(**fields)


class StatusVocabularyTests(SimpleTestCase):
    def test_closed_set_in_stable_order(self):
        values = [s.value for s in all_statuses()]
        self.assertEqual(
            values,
            ["applied", "under_review", "shortlisted", "rejected", "selected", "internship", "ppo", "placement"],
        )
        self.assertEqual(len(set(values)), 8)
        self.assertEqual(all_statuses(), all_statuses())

    def test_labels(self):
        expected = {
            "applied": "Applied",
            "under_review": "Under review",
            "shortlisted": "Shortlisted",
            "rejected": "Rejected",
            "selected": "Selected",
            "internship": "Internship",
            "ppo": "PPO",
            "placement": "Placement",
        }
        self.assertEqual(set(expected), set(all_statuses()))
        for status, label in expected.items():
            with self.subTest(status=status):
                self.assertEqual(display_label(status), label)
                self.assertEqual(display_label(ApplicationStatus(status)), label)

    def test_badges(self):
        expected = {
            "applied": BadgeClass.NEUTRAL,
            "under_review": BadgeClass.INFORMATIONAL,
            "shortlisted": BadgeClass.INFORMATIONAL,
            "rejected": BadgeClass.NEGATIVE,
            "selected": BadgeClass.POSITIVE,
            "internship": BadgeClass.HIGHLIGHT,
            "ppo": BadgeClass.HIGHLIGHT,
            "placement": BadgeClass.POSITIVE,
        }
        for status, badge in expected.items():
            with self.subTest(status=status):
                self.assertEqual(badge_class(status), badge)

    def test_final_statuses(self):
        self.assertEqual(
            {s.value for s in all_statuses() if is_final(s)}, {"selected", "internship", "ppo", "placement"}
        )
        self.assertFalse(is_final("rejected"))

    def test_final_statuses_never_neutral_or_negative(self):
        for status in FINAL_STATUSES:
            self.assertIn(badge_class(status), {BadgeClass.POSITIVE, BadgeClass.HIGHLIGHT})

    def test_unknown_status_refused(self):
        for func in (coerce_status, badge_class, display_label, is_final):
            with self.subTest(func=func.__name__):
                with self.assertRaises(UnknownStatus):
                    func("hired")
        with self.assertRaises(UnknownStatus):
            badge_class("")

    def test_choices_follow_vocabulary(self):
        choices = status_choices()
        self.assertEqual(len(choices), 8)
        self.assertIn(("ppo", "PPO"), choices)

    def test_template_filters(self):
        rendered = Template(
            "{% load status_tags %}{{ s|status_label }}|{{ s|status_badge }}|{{ s|status_is_final }}"
        ).render(Context({"s": "ppo"}))
        self.assertEqual(rendered, "PPO|highlight|True")


class EligibilityTests(TestCase):
    def setUp(self):
        self.student = make_student()
        add_record(self.student, EducationStage.CLASS_X, 82)
        add_record(self.student, EducationStage.CLASS_XII, 74)
        self.graduation = add_record(self.student, EducationStage.GRADUATION, "7.8", is_cgpa=True, cgpa_scale=10)

    def test_meets_all_criteria(self):
        job = make_job(min_class_x_marks=60, min_class_xii_marks=60, min_graduation_cgpa=7, eligible_courses="b.tech cse, MCA")
        result = check_eligibility(self.student, job)
        self.assertTrue(result)
        self.assertEqual(result.reasons, [])

    def test_marks_below_minimum(self):
        job = make_job(min_class_xii_marks=Decimal("75.00"))
        result = check_eligibility(self.student, job)
        self.assertFalse(result)
        self.assertEqual(result.reasons, ["Class XII marks (74%) below required 75%"])

    def test_cgpa_compared_against_cgpa_minimum(self):
        job = make_job(min_graduation_cgpa=Decimal("8.00"), min_graduation_marks=Decimal("60.00"))
        result = check_eligibility(self.student, job)
        self.assertEqual(result.reasons, ["Graduation CGPA (7.8) below required 8"])

    def test_backlog_course_and_year(self):
        self.graduation.has_backlog = True
        self.graduation.save()
        job = make_job(eligible_courses="MCA", eligible_passing_years="2024, 2025")
        reasons = check_eligibility(self.student, job).reasons
        self.assertIn("Backlog not allowed for this job", reasons)
        self.assertIn("Your course (B.Tech CSE) is not among eligible courses", reasons)
        self.assertIn("Your passing year (2026) is not among eligible years", reasons)

    def test_backlog_allowed(self):
        self.graduation.has_backlog = True
        self.graduation.save()
        self.assertTrue(check_eligibility(self.student, make_job(allow_backlog=True)))

    def test_missing_stage_is_not_checked(self):
        other = make_student("fresh")
        self.assertTrue(check_eligibility(other, make_job(min_class_x_marks=90)))

    def test_profile_state_blocks(self):
        pending = make_student("pending", verified=False, flagged_sections="Class X")
        reasons = check_eligibility(pending, make_job()).reasons
        self.assertEqual(
            reasons, ["Your profile is not verified yet", "Sections flagged for correction: Class X"]
        )
        blocked = make_student("blocked", is_blocked=True)
        self.assertEqual(
            check_eligibility(blocked, make_job()).reasons, ["Your profile is blocked from placements"]
        )

    def test_notify_eligible_students(self):
        make_student("unverified", verified=False)
        job = make_job(min_class_x_marks=80)
        self.assertEqual(notify_eligible_students(job), 1)
        self.assertEqual(
            Notification.objects.get(title="New Job Opportunity").user, self.student.user
        )


class RecordStoreTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.other_company = make_company("globex", "Globex", "GLX01")
        self.student = make_student()
        self.other_student = make_student("other")
        self.job = make_job(self.company)
        self.other_job = make_job(self.other_company, title="Analyst")
        self.app = JobApplication.objects.create(job=self.job, student=self.student)
        self.other_app = JobApplication.objects.create(job=self.other_job, student=self.other_student)
        self.admin = User.objects.create_user(username="tpo", password="pass", email="tpo@example.com", role=Role.ADMIN)

    def store_for(self, user):
        return RecordStore(session_from_user(user))

    def test_no_session_refused(self):
        with self.assertRaises(PolicyDenied):
            RecordStore(None)

    def test_student_inserts_own_application_only(self):
        store = self.store_for(self.student.user)
        app = store.insert(JOB_APPLICATIONS, job=self.other_job, status=ApplicationStatus.SELECTED)
        self.assertEqual(app.student, self.student)
        self.assertEqual(app.status, ApplicationStatus.APPLIED)
        with self.assertRaises(PolicyDenied):
            store.insert(JOB_APPLICATIONS, job=self.job, student=self.other_student)

    def test_student_cannot_create_postings_or_change_status(self):
        store = self.store_for(self.student.user)
        with self.assertRaises(PolicyDenied):
            store.insert(JOB_POSTINGS, title="Fake")
        with self.assertRaises(PolicyDenied):
            store.update(JOB_APPLICATIONS, self.app.pk, status=ApplicationStatus.SELECTED)
        with self.assertRaises(PolicyDenied):
            store.update(STUDENT_PROFILES, self.student.pk, is_verified=True)

    def test_student_reads_are_scoped(self):
        store = self.store_for(self.student.user)
        self.assertEqual(store.filter(JOB_APPLICATIONS), [self.app])
        with self.assertRaises(RecordNotFound):
            store.get(STUDENT_PROFILES, self.other_student.pk)

    def test_company_updates_own_applications(self):
        store = self.store_for(self.company.user)
        updated = store.update(JOB_APPLICATIONS, self.app.pk, status=ApplicationStatus.SHORTLISTED)
        self.assertEqual(updated.status, ApplicationStatus.SHORTLISTED)
        with self.assertRaises(RecordNotFound):
            store.update(JOB_APPLICATIONS, self.other_app.pk, status=ApplicationStatus.REJECTED)
        with self.assertRaises(PolicyDenied):
            store.update(JOB_APPLICATIONS, self.app.pk, admin_notes="hidden")

    def test_company_sees_only_its_applicants(self):
        store = self.store_for(self.company.user)
        self.assertEqual(store.filter(STUDENT_PROFILES), [self.student])
        self.assertEqual(store.filter(JOB_POSTINGS), [self.job])

    def test_admin_updates_anything(self):
        store = self.store_for(self.admin)
        store.update(JOB_APPLICATIONS, self.other_app.pk, status=ApplicationStatus.REJECTED, admin_notes="No")
        self.other_app.refresh_from_db()
        self.assertEqual(self.other_app.admin_notes, "No")

    def test_notifications_scoped_to_owner(self):
        mine = Notification.objects.create(user=self.admin, title="Mine")
        theirs = Notification.objects.create(user=self.student.user, title="Theirs")
        store = self.store_for(self.admin)
        store.update(NOTIFICATIONS, mine.pk, is_read=True)
        with self.assertRaises(RecordNotFound):
            store.update(NOTIFICATIONS, theirs.pk, is_read=True)

    def test_unknown_role_has_no_access(self):
        store = RecordStore(Session(user_id=self.admin.pk, role="", display_name="x"))
        self.assertEqual(store.filter(JOB_POSTINGS), [])
        with self.assertRaises(PolicyDenied):
            store.insert(JOB_APPLICATIONS, job=self.job)


class StudentJobViewTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.student = make_student()
        add_record(self.student, EducationStage.CLASS_X, 65)
        self.client.force_login(self.student.user)

    def test_dashboard_counts_every_status(self):
        JobApplication.objects.create(job=make_job(self.company), student=self.student)
        resp = self.client.get(reverse("student_dashboard"))
        self.assertEqual(resp.status_code, 200)
        counts = {c["status"]: c["count"] for c in resp.context["counts"]}
        self.assertEqual(len(counts), 8)
        self.assertEqual(counts[ApplicationStatus.APPLIED], 1)
        self.assertEqual(resp.context["total_applications"], 1)

    def test_job_list_shows_eligibility_and_deadline(self):
        make_job(self.company, title="Strict Role", min_class_x_marks=90)
        make_job(self.company, title="Closing Soon", application_deadline=timezone.localdate() + timedelta(days=2))
        make_job(self.company, title="Expired", application_deadline=timezone.localdate() - timedelta(days=1))
        make_job(self.company, title="Draft Role", status=JobPostingStatus.DRAFT)
        resp = self.client.get(reverse("student_jobs"))
        rows = {r["job"].title: r for r in resp.context["rows"]}
        self.assertEqual(set(rows), {"Strict Role", "Closing Soon"})
        self.assertFalse(rows["Strict Role"]["eligibility"].is_eligible)
        self.assertTrue(rows["Closing Soon"]["deadline_near"])
        self.assertContains(resp, "Class X marks (65%) below required 90%")

    def test_apply_creates_application_with_resume(self):
        job = make_job(self.company)
        Resume.objects.create(student=self.student, file_url="/media/resumes/cv.pdf", original_name="cv.pdf")
        resp = self.client.post(reverse("apply_job", args=[job.id]))
        self.assertRedirects(resp, reverse("student_applications"))
        app = JobApplication.objects.get(job=job, student=self.student)
        self.assertEqual(app.status, ApplicationStatus.APPLIED)
        self.assertEqual(app.resume_url, "/media/resumes/cv.pdf")
        self.assertTrue(Notification.objects.filter(user=self.student.user, title="Job Application Submitted").exists())

    def test_apply_twice_refused(self):
        job = make_job(self.company)
        self.client.post(reverse("apply_job", args=[job.id]))
        self.client.post(reverse("apply_job", args=[job.id]))
        self.assertEqual(JobApplication.objects.filter(job=job).count(), 1)

    def test_ineligible_or_closed_refused(self):
        strict = make_job(self.company, min_class_x_marks=90)
        closed = make_job(self.company, status=JobPostingStatus.CLOSED)
        self.client.post(reverse("apply_job", args=[strict.id]))
        self.client.post(reverse("apply_job", args=[closed.id]))
        self.assertFalse(JobApplication.objects.exists())

    def test_unverified_student_cannot_apply(self):
        pending = make_student("pending", verified=False)
        self.client.force_login(pending.user)
        self.client.post(reverse("apply_job", args=[make_job(self.company).id]))
        self.assertFalse(JobApplication.objects.filter(student=pending).exists())

    def test_apply_requires_post(self):
        resp = self.client.get(reverse("apply_job", args=[make_job(self.company).id]))
        self.assertEqual(resp.status_code, 405)

    def test_applications_filter_by_status(self):
        JobApplication.objects.create(job=make_job(self.company, title="A"), student=self.student)
        JobApplication.objects.create(
            job=make_job(self.company, title="B"), student=self.student, status=ApplicationStatus.REJECTED
        )
        resp = self.client.get(reverse("student_applications"), {"status": "rejected"})
        self.assertEqual([a.job.title for a in resp.context["applications"]], ["B"])
        resp = self.client.get(reverse("student_applications"), {"status": "bogus"})
        self.assertEqual(len(resp.context["applications"]), 2)


class AdminJobViewTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="tpo", password="pass", email="tpo@example.com", role=Role.ADMIN)
        self.company = make_company()
        self.client.force_login(self.admin)

    def _post_data(self, **overrides):
        data = {
            "title": "Data Engineer",
            "company": self.company.id,
            "company_name": "",
            "description": "Pipelines",
            "location": "Remote",
            "package": "8 LPA",
            "application_deadline": (timezone.localdate() + timedelta(days=10)).isoformat(),
            "eligible_courses": "",
            "eligible_passing_years": "2025, 2026",
            "status": JobPostingStatus.ACTIVE,
        }
        data.update(overrides)
        return data

    def test_create_job_notifies_eligible_students(self):
        make_student()
        make_student("pending", verified=False)
        resp = self.client.post(reverse("admin_job_create"), self._post_data())
        self.assertRedirects(resp, reverse("admin_jobs"))
        job = JobPosting.objects.get(title="Data Engineer")
        self.assertEqual(job.company_name, "Acme")
        self.assertEqual(job.passing_years_list(), [2025, 2026])
        self.assertEqual(Notification.objects.filter(title="New Job Opportunity").count(), 1)

    def test_invalid_years_rejected(self):
        resp = self.client.post(reverse("admin_job_create"), self._post_data(eligible_passing_years="next year"))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(JobPosting.objects.exists())

    def test_company_or_name_required(self):
        resp = self.client.post(reverse("admin_job_create"), self._post_data(company=""))
        self.assertEqual(resp.status_code, 200)
        self.assertIn("company_name", resp.context["form"].errors)

    def test_edit_job(self):
        job = make_job(self.company, status=JobPostingStatus.DRAFT)
        resp = self.client.post(reverse("admin_job_edit", args=[job.id]), self._post_data(title="Renamed"))
        self.assertRedirects(resp, reverse("admin_jobs"))
        job.refresh_from_db()
        self.assertEqual(job.title, "Renamed")
        self.assertEqual(job.status, JobPostingStatus.ACTIVE)

    def test_job_list_filters(self):
        make_job(self.company, title="Open One")
        make_job(self.company, title="Closed One", status=JobPostingStatus.CLOSED)
        resp = self.client.get(reverse("admin_jobs"), {"status": "closed"})
        self.assertEqual([j.title for j in resp.context["page_obj"]], ["Closed One"])


class ApplicationStatusUpdateTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="tpo", password="pass", email="tpo@example.com", role=Role.ADMIN)
        self.company = make_company()
        self.student = make_student()
        self.job = make_job(self.company, title="Graduate Engineer")
        self.app = JobApplication.objects.create(job=self.job, student=self.student)

    def test_admin_updates_status_and_student_is_told(self):
        self.client.force_login(self.admin)
        resp = self.client.post(
            reverse("admin_update_application", args=[self.app.id]), {"status": "shortlisted", "admin_notes": "Strong"}
        )
        self.assertRedirects(resp, reverse("admin_applications"))
        self.app.refresh_from_db()
        self.assertEqual(self.app.status, ApplicationStatus.SHORTLISTED)
        self.assertEqual(self.app.admin_notes, "Strong")
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["stu@example.com"])
        self.assertIn("shortlisted", mail.outbox[0].subject)
        self.assertTrue(Notification.objects.filter(user=self.student.user, message="Status: Shortlisted").exists())

    def test_final_status_email_congratulates(self):
        self.client.force_login(self.admin)
        self.client.post(reverse("admin_update_application", args=[self.app.id]), {"status": "ppo"})
        self.assertIn("Congratulations! PPO", mail.outbox[0].subject)

    def test_final_status_cannot_change(self):
        self.app.status = ApplicationStatus.PLACEMENT
        self.app.save()
        self.client.force_login(self.admin)
        self.client.post(reverse("admin_update_application", args=[self.app.id]), {"status": "rejected"})
        self.app.refresh_from_db()
        self.assertEqual(self.app.status, ApplicationStatus.PLACEMENT)
        self.assertEqual(len(mail.outbox), 0)

    def test_unknown_status_refused(self):
        self.client.force_login(self.admin)
        self.client.post(reverse("admin_update_application", args=[self.app.id]), {"status": "hired"})
        self.app.refresh_from_db()
        self.assertEqual(self.app.status, ApplicationStatus.APPLIED)

    def test_company_updates_own_application(self):
        self.client.force_login(self.company.user)
        resp = self.client.post(reverse("company_update_application", args=[self.app.id]), {"status": "selected"})
        self.assertRedirects(resp, reverse("company_applications"))
        self.app.refresh_from_db()
        self.assertEqual(self.app.status, ApplicationStatus.SELECTED)

    def test_company_cannot_touch_other_company_applications(self):
        other = make_company("globex", "Globex", "GLX01")
        self.client.force_login(other.user)
        resp = self.client.post(reverse("company_update_application", args=[self.app.id]), {"status": "rejected"})
        self.assertEqual(resp.status_code, 404)

    def test_applications_page_lists_and_filters(self):
        self.client.force_login(self.company.user)
        resp = self.client.get(reverse("company_applications"), {"q": "stu"})
        self.assertEqual(list(resp.context["page_obj"]), [self.app])
        self.assertEqual(resp.context["update_url_name"], "company_update_application")
        resp = self.client.get(reverse("company_applications"), {"status": "rejected"})
        self.assertEqual(list(resp.context["page_obj"]), [])

    def test_company_uploads_offer_letter(self):
        self.client.force_login(self.company.user)
        upload = SimpleUploadedFile("offer.pdf", b"%PDF-1.4 offer", content_type="application/pdf")
        resp = self.client.post(reverse("company_upload_offer_letter", args=[self.app.id]), {"file": upload})
        self.assertRedirects(resp, reverse("company_applications"))
        self.app.refresh_from_db()
        self.assertIn(f"offer_letters/{self.student.id}/{self.student.id}_{self.job.id}_", self.app.offer_letter_url)
        self.assertTrue(self.app.offer_letter_url.endswith(".pdf"))
        self.assertTrue(Notification.objects.filter(user=self.student.user, title="Offer letter from Acme").exists())

    def test_offer_letter_must_be_pdf(self):
        self.client.force_login(self.company.user)
        upload = SimpleUploadedFile("offer.exe", b"MZ", content_type="application/octet-stream")
        self.client.post(reverse("company_upload_offer_letter", args=[self.app.id]), {"file": upload})
        self.app.refresh_from_db()
        self.assertIsNone(self.app.offer_letter_url)


class AdminReportTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="tpo", password="pass", email="tpo@example.com", role=Role.ADMIN)
        acme = make_company()
        placed = make_student()
        add_record(placed, EducationStage.GRADUATION, 80)
        waiting = make_student("waiting")
        add_record(waiting, EducationStage.GRADUATION, 70, course="MCA")
        JobApplication.objects.create(job=make_job(acme), student=placed, status=ApplicationStatus.PLACEMENT)
        JobApplication.objects.create(job=make_job(acme, title="Intern"), student=waiting)
        self.client.force_login(self.admin)

    def test_reports(self):
        resp = self.client.get(reverse("admin_reports"))
        self.assertEqual(resp.status_code, 200)
        counts = {c["status"]: c["count"] for c in resp.context["counts"]}
        self.assertEqual(counts[ApplicationStatus.PLACEMENT], 1)
        self.assertEqual(counts[ApplicationStatus.APPLIED], 1)
        self.assertEqual(resp.context["by_company"], [{"name": "Acme", "value": 1}])
        self.assertEqual(
            resp.context["by_course"],
            [{"name": "B.Tech CSE", "total": 1, "placed": 1}, {"name": "MCA", "total": 1, "placed": 0}],
        )

    def test_dashboard_counts_placed_students(self):
        resp = self.client.get(reverse("admin_dashboard"))
        self.assertEqual(resp.context["placed_students"], 1)
        self.assertEqual(resp.context["total_applications"], 2)
