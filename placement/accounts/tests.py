from io import StringIO

from django.contrib.auth.models import AnonymousUser
from django.core.management import call_command
from django.core.management.base import CommandError
from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase, TestCase
from django.urls import reverse

from .decorators import admin_required, company_required, student_required
from .guard import RENDER, WAIT, RedirectTo, decide, home_for
from .identity import IdentityContext, Session, SessionState, StaticAuth, session_from_user
from .models import CompanyProfile, Notification, Role, StudentProfile, User, VerificationStatus


def _state(role):
    return SessionState.for_session(Session(user_id=1, role=role, display_name="Someone"))


class AccessGuardTests(SimpleTestCase):
    def test_matching_role_renders(self):
        for role in Role:
            self.assertEqual(decide(_state(role), role), RENDER)

    def test_role_mismatch_matrix(self):
        expected = {
            (Role.STUDENT, Role.ADMIN): "student_dashboard",
            (Role.STUDENT, Role.COMPANY): "company_login",
            (Role.ADMIN, Role.STUDENT): "admin_dashboard",
            (Role.ADMIN, Role.COMPANY): "company_login",
            (Role.COMPANY, Role.STUDENT): "company_dashboard",
            (Role.COMPANY, Role.ADMIN): "company_dashboard",
        }
        for (have, need), target in expected.items():
            with self.subTest(have=have, need=need):
                self.assertEqual(decide(_state(have), need), RedirectTo(target))

    def test_unauthenticated_goes_to_matching_login(self):
        anon = SessionState.anonymous()
        self.assertEqual(decide(anon, Role.STUDENT), RedirectTo("login"))
        self.assertEqual(decide(anon, Role.ADMIN), RedirectTo("login"))
        self.assertEqual(decide(anon, Role.COMPANY), RedirectTo("company_login"))

    def test_loading_always_waits(self):
        for role in Role:
            self.assertEqual(decide(SessionState.loading(), role), WAIT)

    def test_unrecognised_session_role_goes_to_login(self):
        self.assertEqual(decide(_state("alumni"), Role.STUDENT), RedirectTo("login"))

    def test_home_for(self):
        self.assertEqual(home_for(_state(Role.COMPANY)), "company_dashboard")
        self.assertEqual(home_for(SessionState.anonymous()), "login")
        self.assertEqual(home_for(SessionState.loading()), "login")


class IdentityContextTests(SimpleTestCase):
    def test_loading_state_is_not_authenticated(self):
        identity = IdentityContext.for_state(SessionState.loading())
        self.assertTrue(identity.is_loading)
        self.assertFalse(identity.is_authenticated)
        self.assertIsNone(identity.user)

    def test_logout_clears_session(self):
        identity = IdentityContext.for_state(_state(Role.STUDENT))
        self.assertTrue(identity.is_authenticated)
        identity.logout()
        self.assertFalse(identity.is_authenticated)
        self.assertIsNone(identity.state().role)

    def test_refresh_reads_collaborator_again(self):
        auth = StaticAuth(SessionState.loading())
        identity = IdentityContext(auth)
        self.assertTrue(identity.is_loading)
        auth._state = _state(Role.ADMIN)
        self.assertTrue(identity.is_loading)
        self.assertEqual(identity.refresh().role, Role.ADMIN)


class RoleDecoratorTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

        @student_required
        def student_view(request):
            return HttpResponse("student page")

        @admin_required
        def admin_view(request):
            return HttpResponse("admin page")

        @company_required
        def company_view(request):
            return HttpResponse("company page")

        self.student_view = student_view
        self.admin_view = admin_view
        self.company_view = company_view

    def _request(self, state):
        request = self.factory.get("/somewhere/")
        request.user = AnonymousUser()
        request.identity = IdentityContext.for_state(state)
        return request

    def test_renders_for_matching_role(self):
        resp = self.student_view(self._request(_state(Role.STUDENT)))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, b"student page")

    def test_student_on_admin_page_goes_to_student_dashboard(self):
        resp = self.admin_view(self._request(_state(Role.STUDENT)))
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp.url, reverse("student_dashboard"))

    def test_admin_on_company_page_goes_to_company_login(self):
        resp = self.company_view(self._request(_state(Role.ADMIN)))
        self.assertEqual(resp.url, reverse("company_login"))

    def test_anonymous_on_company_page_goes_to_company_login(self):
        resp = self.company_view(self._request(SessionState.anonymous()))
        self.assertEqual(resp.url, reverse("company_login"))

    def test_loading_session_shows_waiting_page(self):
        resp = self.admin_view(self._request(SessionState.loading()))
        self.assertEqual(resp.status_code, 202)
        self.assertContains(resp, 'http-equiv="refresh"', status_code=202)
        self.assertNotContains(resp, "admin page", status_code=202)


class SessionFromUserTests(TestCase):
    def test_superuser_without_role_is_admin(self):
        user = User.objects.create_user(
            username="root", password="pass", email="root@example.com", is_superuser=True, role=""
        )
        self.assertEqual(session_from_user(user).role, Role.ADMIN)

    def test_company_code_only_for_companies(self):
        student = User.objects.create_user(
            username="s", password="pass", email="s@example.com", role=Role.STUDENT, company_code="X1"
        )
        company = User.objects.create_user(
            username="c", password="pass", email="c@example.com", role=Role.COMPANY, company_code="X2"
        )
        self.assertIsNone(session_from_user(student).company_code)
        self.assertEqual(session_from_user(company).company_code, "X2")

    def test_inactive_user_has_no_session(self):
        user = User.objects.create_user(username="off", password="pass", email="off@example.com", is_active=False)
        self.assertIsNone(session_from_user(user))
        self.assertIsNone(session_from_user(AnonymousUser()))


class LoginFlowTests(TestCase):
    def setUp(self):
        self.student = User.objects.create_user(
            username="stu", password="pass12345", email="stu@example.com", role=Role.STUDENT
        )
        StudentProfile.objects.create(user=self.student, first_name="Stu")
        self.company_user = User.objects.create_user(
            username="acme", password="pass12345", email="hr@acme.test", role=Role.COMPANY, company_code="ACME01"
        )
        CompanyProfile.objects.create(user=self.company_user, company_name="Acme", company_code="ACME01")

    def test_student_login_lands_on_dashboard(self):
        resp = self.client.post(reverse("login"), {"username": "stu", "password": "pass12345"})
        self.assertRedirects(resp, reverse("student_dashboard"))
        self.assertEqual(self.client.session["role"], Role.STUDENT)

    def test_bad_password_stays_on_login(self):
        resp = self.client.post(reverse("login"), {"username": "stu", "password": "wrong"})
        self.assertEqual(resp.status_code, 200)
        self.assertNotIn("_auth_user_id", self.client.session)

    def test_company_user_sent_to_company_portal(self):
        resp = self.client.post(reverse("login"), {"username": "acme", "password": "pass12345"})
        self.assertRedirects(resp, reverse("company_login"))
        self.assertNotIn("_auth_user_id", self.client.session)

    def test_company_login_requires_matching_code(self):
        resp = self.client.post(
            reverse("company_login"), {"username": "acme", "password": "pass12345", "company_code": "WRONG"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertNotIn("_auth_user_id", self.client.session)

        resp = self.client.post(
            reverse("company_login"), {"username": "acme", "password": "pass12345", "company_code": "ACME01"}
        )
        self.assertRedirects(resp, reverse("company_dashboard"))

    def test_student_cannot_use_company_login(self):
        resp = self.client.post(
            reverse("company_login"), {"username": "stu", "password": "pass12345", "company_code": "ACME01"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertNotIn("_auth_user_id", self.client.session)

    def test_logout_returns_to_matching_login(self):
        self.client.force_login(self.student)
        resp = self.client.post(reverse("logout"))
        self.assertRedirects(resp, reverse("login"))
        self.assertNotIn("_auth_user_id", self.client.session)

        self.client.force_login(self.company_user)
        resp = self.client.post(reverse("logout"))
        self.assertRedirects(resp, reverse("company_login"))

    def test_home_redirects_by_role(self):
        self.assertRedirects(self.client.get(reverse("home")), reverse("login"))
        self.client.force_login(self.company_user)
        self.assertRedirects(self.client.get(reverse("home")), reverse("company_dashboard"))

    def test_student_kept_out_of_admin_pages(self):
        self.client.force_login(self.student)
        resp = self.client.get(reverse("admin_dashboard"))
        self.assertRedirects(resp, reverse("student_dashboard"))

    def test_role_change_ends_session(self):
        self.client.post(reverse("login"), {"username": "stu", "password": "pass12345"})
        User.objects.filter(pk=self.student.pk).update(role=Role.ADMIN)

        resp = self.client.get(reverse("admin_dashboard"))
        self.assertRedirects(resp, reverse("login"))
        self.assertNotIn("_auth_user_id", self.client.session)

    def test_role_pinned_on_first_request(self):
        self.client.force_login(self.student)
        self.assertEqual(self.client.get(reverse("student_dashboard")).status_code, 200)
        self.assertEqual(self.client.session["role"], Role.STUDENT)

        User.objects.filter(pk=self.student.pk).update(role=Role.COMPANY)
        resp = self.client.get(reverse("student_dashboard"))
        self.assertRedirects(resp, reverse("login"))
        self.assertNotIn("_auth_user_id", self.client.session)

    def test_superuser_without_role_keeps_admin_session(self):
        User.objects.create_superuser(username="root", email="root@example.com", password="pass12345", role="")
        resp = self.client.post(reverse("login"), {"username": "root", "password": "pass12345"})
        self.assertRedirects(resp, reverse("admin_dashboard"))
        self.assertEqual(self.client.session["role"], Role.ADMIN)
        self.assertEqual(self.client.get(reverse("admin_dashboard")).status_code, 200)


class RegistrationTests(TestCase):
    def test_register_creates_student_with_profile(self):
        resp = self.client.post(
            reverse("register"),
            {
                "username": "newbie",
                "email": "Newbie@Example.com",
                "password": "longenough1",
                "first_name": "New",
                "last_name": "Bie",
                "phone": "9999999999",
                "department": "CSE",
            },
        )
        self.assertRedirects(resp, reverse("login"))
        user = User.objects.get(username="newbie")
        self.assertEqual(user.role, Role.STUDENT)
        self.assertEqual(user.email, "newbie@example.com")
        self.assertEqual(user.student_profile.verification_status, VerificationStatus.PENDING)
        self.assertFalse(user.student_profile.is_verified)

    def test_duplicate_email_rejected(self):
        User.objects.create_user(username="taken", password="pass", email="dup@example.com", role=Role.STUDENT)
        resp = self.client.post(
            reverse("register"),
            {"username": "other", "email": "dup@example.com", "password": "longenough1", "first_name": "O"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(User.objects.filter(username="other").exists())


class StudentProfileViewTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="stu", password="pass", email="stu@example.com", role=Role.STUDENT)
        self.profile = StudentProfile.objects.create(user=self.user, first_name="Stu")
        self.client.force_login(self.user)

    def test_profile_page_renders_education_sections(self):
        resp = self.client.get(reverse("student_profile"))
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Class XII")
        self.assertEqual(len(resp.context["education_forms"]), 3)

    def test_saving_personal_details_and_graduation(self):
        resp = self.client.post(
            reverse("student_profile"),
            {
                "first_name": "Asha",
                "last_name": "Rao",
                "phone": "9000000000",
                "department": "CSE",
                "graduation-institution": "State University",
                "graduation-course": "B.Tech CSE",
                "graduation-marks": "8.1",
                "graduation-is_cgpa": "on",
                "graduation-cgpa_scale": "10",
                "graduation-passing_year": "2026",
            },
        )
        self.assertRedirects(resp, reverse("student_profile"))
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.full_name, "Asha Rao")
        grad = self.profile.education("graduation")
        self.assertEqual(grad.course, "B.Tech CSE")
        self.assertTrue(grad.is_cgpa)
        self.assertIsNone(self.profile.education("class_x"))

    def test_cgpa_above_scale_rejected(self):
        resp = self.client.post(
            reverse("student_profile"),
            {
                "first_name": "Asha",
                "graduation-institution": "State University",
                "graduation-course": "B.Tech CSE",
                "graduation-marks": "11",
                "graduation-is_cgpa": "on",
                "graduation-cgpa_scale": "10",
                "graduation-passing_year": "2026",
            },
        )
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(self.profile.education_records.exists())


class VerificationTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="tpo", password="pass", email="tpo@example.com", role=Role.ADMIN)
        self.student = User.objects.create_user(username="stu", password="pass", email="stu@example.com", role=Role.STUDENT)
        self.profile = StudentProfile.objects.create(user=self.student, first_name="Stu")
        self.client.force_login(self.admin)

    def test_queue_lists_pending_profiles(self):
        resp = self.client.get(reverse("verification_queue"))
        self.assertContains(resp, "Stu")

    def test_approve_marks_verified_and_notifies(self):
        resp = self.client.post(
            reverse("verification_detail", args=[self.profile.id]), {"decision": "approved", "notes": ""}
        )
        self.assertRedirects(resp, reverse("verification_queue"))
        self.profile.refresh_from_db()
        self.assertTrue(self.profile.is_verified)
        self.assertEqual(self.profile.verification_status, VerificationStatus.APPROVED)
        self.assertTrue(
            Notification.objects.filter(user=self.student, title="Profile Verification Approved").exists()
        )

    def test_reject_records_flagged_sections(self):
        self.client.post(
            reverse("verification_detail", args=[self.profile.id]),
            {"decision": "rejected", "notes": "Marksheet unreadable", "flagged_sections": "Class X, Graduation"},
        )
        self.profile.refresh_from_db()
        self.assertFalse(self.profile.is_verified)
        self.assertEqual(self.profile.flagged_list(), ["Class X", "Graduation"])
        notif = Notification.objects.get(user=self.student)
        self.assertEqual(notif.title, "Profile Verification Rejected")
        self.assertIn("Marksheet unreadable", notif.message)

    def test_students_list_filters_by_status(self):
        resp = self.client.get(reverse("admin_students"), {"status": "approved"})
        self.assertEqual(list(resp.context["students"]), [])


class NotificationTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="stu", password="pass", email="stu@example.com", role=Role.STUDENT)
        self.other = User.objects.create_user(username="oth", password="pass", email="oth@example.com", role=Role.STUDENT)
        self.n1 = Notification.objects.create(user=self.user, title="One")
        self.n2 = Notification.objects.create(user=self.user, title="Two")
        self.foreign = Notification.objects.create(user=self.other, title="Not yours")
        self.client.force_login(self.user)

    def test_list_shows_only_own(self):
        resp = self.client.get(reverse("notifications_list"))
        self.assertContains(resp, "One")
        self.assertNotContains(resp, "Not yours")

    def test_mark_read(self):
        self.client.post(reverse("notification_mark_read", args=[self.n1.id]))
        self.n1.refresh_from_db()
        self.assertTrue(self.n1.is_read)

    def test_cannot_mark_someone_elses(self):
        resp = self.client.post(reverse("notification_mark_read", args=[self.foreign.id]))
        self.assertEqual(resp.status_code, 404)

    def test_mark_all_read(self):
        self.client.post(reverse("notifications_mark_all_read"))
        self.assertFalse(Notification.objects.filter(user=self.user, is_read=False).exists())
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_anonymous_redirected_to_login(self):
        self.client.logout()
        resp = self.client.get(reverse("notifications_list"))
        self.assertEqual(resp.status_code, 302)
        self.assertIn(reverse("login"), resp.url)


class CreateCompanyAccountCommandTests(TestCase):
    def test_creates_user_and_profile(self):
        out = StringIO()
        call_command(
            "create_company_account", "globex", company_name="Globex", email="HR@globex.test", code="gx01", stdout=out
        )
        user = User.objects.get(username="globex")
        self.assertEqual(user.role, Role.COMPANY)
        self.assertEqual(user.company_profile.company_code, "GX01")
        self.assertIn("Generated password", out.getvalue())

    def test_duplicate_code_refused(self):
        call_command("create_company_account", "one", company_name="One", email="a@one.test", code="DUP", stdout=StringIO())
        with self.assertRaises(CommandError):
            call_command(
                "create_company_account", "two", company_name="Two", email="b@two.test", code="DUP", stdout=StringIO()
            )
        self.assertFalse(User.objects.filter(username="two").exists())
