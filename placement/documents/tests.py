from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse

from accounts.models import EducationRecord, EducationStage, Role, StudentProfile, User

from .models import Resume
from .storage import MARKSHEETS, RESUMES, build_upload_path, store, upload_file


class StorageTests(TestCase):
    def test_upload_paths_do_not_collide(self):
        paths = {build_upload_path("student_1", "cv.PDF") for _ in range(50)}
        self.assertEqual(len(paths), 50)
        for path in paths:
            self.assertTrue(path.startswith("student_1/"))
            self.assertTrue(path.endswith(".pdf"))

    def test_prefix_and_missing_extension(self):
        path = build_upload_path("", "README", prefix="offer")
        self.assertTrue(path.startswith("offer_"))
        self.assertTrue(path.endswith(".bin"))

    def test_store_returns_public_url(self):
        url = upload_file(ContentFile(b"hello", name="cv.pdf"), RESUMES, "student_9")
        self.assertTrue(url.startswith("/media/resumes/student_9/"))
        name = url[len("/media/"):]
        self.assertTrue(default_storage.exists(name))

    def test_store_never_overwrites(self):
        self.assertIsNotNone(store(ContentFile(b"one"), MARKSHEETS, "fixed/name.pdf"))
        self.assertIsNone(store(ContentFile(b"two"), MARKSHEETS, "fixed/name.pdf"))
        with default_storage.open("marksheets/fixed/name.pdf") as f:
            self.assertEqual(f.read(), b"one")

    def test_unknown_bucket_refused(self):
        self.assertIsNone(store(ContentFile(b"x"), "avatars", "a.png"))

    @override_settings(PORTAL_STORAGE_BASE_URL="https://files.example.com/portal/")
    def test_absolute_base_url(self):
        url = upload_file(ContentFile(b"x", name="a.pdf"), RESUMES, "student_2")
        self.assertTrue(url.startswith("https://files.example.com/portal/resumes/student_2/"))


class DocumentViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="stu", password="pass", email="stu@example.com", role=Role.STUDENT)
        self.profile = StudentProfile.objects.create(user=self.user, first_name="Stu")
        self.client.force_login(self.user)

    def test_resume_upload_replaces_previous(self):
        Resume.objects.create(student=self.profile, file_url="/media/resumes/old.pdf", original_name="old.pdf")
        upload = SimpleUploadedFile("cv.pdf", b"%PDF-1.4 cv", content_type="application/pdf")
        resp = self.client.post(reverse("upload_resume"), {"file": upload})
        self.assertRedirects(resp, reverse("resume_list"))
        resume = Resume.objects.get(student=self.profile)
        self.assertEqual(resume.original_name, "cv.pdf")
        self.assertIn(f"resumes/student_{self.profile.id}/", resume.file_url)

    def test_resume_wrong_type_rejected(self):
        upload = SimpleUploadedFile("cv.txt", b"plain", content_type="text/plain")
        resp = self.client.post(reverse("upload_resume"), {"file": upload})
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Resume.objects.exists())

    def test_marksheet_upload_links_record(self):
        record = EducationRecord.objects.create(
            student=self.profile, stage=EducationStage.CLASS_X, institution="School", marks=88, passing_year=2019
        )
        upload = SimpleUploadedFile("x.png", b"\x89PNG", content_type="image/png")
        resp = self.client.post(reverse("upload_marksheet", args=["class_x"]), {"file": upload})
        self.assertRedirects(resp, reverse("student_profile"))
        record.refresh_from_db()
        self.assertIn(f"marksheets/student_{self.profile.id}/class_x/", record.marksheet_url)

    def test_marksheet_for_unknown_stage_is_404(self):
        resp = self.client.get(reverse("upload_marksheet", args=["phd"]))
        self.assertEqual(resp.status_code, 404)

    def test_company_cannot_upload_resume(self):
        company = User.objects.create_user(username="acme", password="pass", email="hr@acme.test", role=Role.COMPANY)
        self.client.force_login(company)
        resp = self.client.get(reverse("upload_resume"))
        self.assertRedirects(resp, reverse("company_dashboard"), fetch_redirect_response=False)
