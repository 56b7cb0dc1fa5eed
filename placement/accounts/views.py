import logging

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import authenticate, login, get_user_model
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.db.models import Q
from django.shortcuts import render, redirect, get_object_or_404
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods, require_POST

from jobs.gateway import NOTIFICATIONS, STUDENT_PROFILES, RecordStore, UpstreamFailure
from jobs.utils import create_in_app_notification

from .decorators import admin_required, student_required
from .forms import (
    CompanyLoginForm,
    EducationRecordForm,
    LoginForm,
    StudentProfileForm,
    StudentRegistrationForm,
    VerificationForm,
)
from .guard import COMPANY_LOGIN, LOGIN, home_for
from .identity import SESSION_ROLE_KEY, identity_for, session_from_user
from .models import (
    CompanyProfile,
    EducationStage,
    Notification,
    Role,
    StudentProfile,
    VerificationStatus,
)

logger = logging.getLogger(__name__)
User = get_user_model()


def _start_session(request, user):
    login(request, user)
    request.session.set_expiry(getattr(settings, "SESSION_COOKIE_AGE", 3600))
    request.session[SESSION_ROLE_KEY] = session_from_user(user).role
    state = identity_for(request).refresh()
    logger.info("Login success: username=%s role=%s", user.username, user.role)
    return state


def _safe_next(request, fallback="/"):
    next_url = request.POST.get("next") or request.GET.get("next") or request.META.get("HTTP_REFERER")
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return next_url
    return fallback


def home(request):
    """Send each session to its own dashboard."""
    return redirect(home_for(identity_for(request).state()))


# -----------------------------
# Register (students only; companies are provisioned by the placement cell)
# -----------------------------
@require_http_methods(["GET", "POST"])
def register(request):
    if request.method == "POST":
        form = StudentRegistrationForm(request.POST)
        if form.is_valid():
            with transaction.atomic():
                user = User.objects.create_user(
                    username=form.cleaned_data["username"],
                    email=form.cleaned_data["email"],
                    password=form.cleaned_data["password"],
                    first_name=form.cleaned_data["first_name"],
                    last_name=form.cleaned_data.get("last_name") or "",
                    role=Role.STUDENT,
                )
                profile = form.save(commit=False)
                profile.user = user
                profile.save()

            logger.info("Student registered: username=%s email=%s", user.username, user.email)
            messages.success(request, "Registered! Log in and complete your profile for verification.")
            return redirect(LOGIN)
        logger.warning("Student registration failed: errors=%s", form.errors)
    else:
        form = StudentRegistrationForm()

    return render(request, "accounts/register.html", {"form": form})


# -----------------------------
# Login / Logout
# -----------------------------
@require_http_methods(["GET", "POST"])
def user_login(request):
    if request.method == "POST":
        form = LoginForm(request, data=request.POST)
        if form.is_valid():
            user = form.get_user()
            if user.role == Role.COMPANY:
                messages.error(request, "Company accounts sign in through the company portal.")
                logger.info("Login redirected to company portal: username=%s", user.username)
                return redirect(COMPANY_LOGIN)
            state = _start_session(request, user)
            messages.success(request, "Logged in successfully!")
            return redirect(home_for(state))
        messages.error(request, "Invalid username or password.")
        logger.info("Login failed: username=%s", request.POST.get("username", ""))
    else:
        form = LoginForm()

    return render(request, "accounts/login.html", {"form": form})


@require_http_methods(["GET", "POST"])
def company_login(request):
    state = identity_for(request).state()
    if state.is_authenticated and state.role == Role.COMPANY:
        return redirect(home_for(state))

    if request.method == "POST":
        form = CompanyLoginForm(request.POST)
        if form.is_valid():
            username = form.cleaned_data["username"].strip()
            code = form.cleaned_data["company_code"].strip()
            user = authenticate(request, username=username, password=form.cleaned_data["password"])
            company = CompanyProfile.objects.filter(user=user).first() if user else None
            if user and user.role == Role.COMPANY and company and company.company_code == code:
                state = _start_session(request, user)
                messages.success(request, "Login successful!")
                return redirect(home_for(state))
            messages.error(request, "Invalid credentials or company code.")
            logger.info("Company login failed: username=%s", username)
        else:
            messages.error(request, "Please fill all fields.")
    else:
        form = CompanyLoginForm()

    return render(request, "accounts/company_login.html", {"form": form})


@require_http_methods(["POST", "GET"])
def user_logout(request):
    identity = identity_for(request)
    was_company = identity.state().role == Role.COMPANY
    identity.logout()
    messages.info(request, "Logged out successfully.")
    return redirect(COMPANY_LOGIN if was_company else LOGIN)


# -----------------------------
# Student profile
# -----------------------------
@student_required
def student_profile(request):
    profile, _ = StudentProfile.objects.get_or_create(
        user=request.user,
        defaults={"first_name": request.user.first_name or request.user.username},
    )
    records = {r.stage: r for r in profile.education_records.all()}

    def _education_forms(data=None):
        return [
            EducationRecordForm(data, instance=records.get(stage), stage=stage, prefix=stage)
            for stage in EducationStage.values
        ]

    if request.method == "POST":
        form = StudentProfileForm(request.POST, instance=profile)
        edu_forms = _education_forms(request.POST)
        # Untouched stages are optional: only bind those with a value entered.
        filled = [f for f in edu_forms if f.instance.pk or f.has_changed()]
        if form.is_valid() and all(f.is_valid() for f in filled):
            try:
                store = RecordStore(identity_for(request).user)
                store.update(STUDENT_PROFILES, profile.pk, **{k: form.cleaned_data[k] for k in form.changed_data})
            except UpstreamFailure:
                logger.exception("Profile update failed: user=%s", request.user.username)
                messages.error(request, "Failed to save your profile. Please try again.")
                return redirect("student_profile")
            for edu in filled:
                record = edu.save(commit=False)
                record.student = profile
                record.stage = edu.stage
                record.save()
            logger.info("Student profile updated: user=%s", request.user.username)
            messages.success(request, "Profile saved.")
            return redirect("student_profile")
    else:
        form = StudentProfileForm(instance=profile)
        edu_forms = _education_forms()

    return render(
        request,
        "accounts/profile.html",
        {"form": form, "education_forms": edu_forms, "profile": profile, "records": records},
    )


# -----------------------------
# Admin: students + verification
# -----------------------------
@admin_required
def admin_students(request):
    q = (request.GET.get("q") or "").strip()
    status = (request.GET.get("status") or "").strip()
    qs = StudentProfile.objects.select_related("user").order_by("first_name", "last_name")
    if q:
        qs = qs.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(user__email__icontains=q) | Q(department__icontains=q)
        )
    if status in VerificationStatus.values:
        qs = qs.filter(verification_status=status)
    return render(
        request,
        "accounts/admin_students.html",
        {"students": qs, "q": q, "status": status, "status_choices": VerificationStatus.choices},
    )


@admin_required
def verification_queue(request):
    pending = (
        StudentProfile.objects.select_related("user")
        .filter(verification_status=VerificationStatus.PENDING)
        .order_by("created_at")
    )
    return render(request, "accounts/verification.html", {"students": pending})


@admin_required
@require_http_methods(["GET", "POST"])
def verification_detail(request, student_id):
    profile = get_object_or_404(StudentProfile.objects.select_related("user"), id=student_id)
    if request.method == "POST":
        form = VerificationForm(request.POST)
        if form.is_valid():
            approved = form.cleaned_data["decision"] == VerificationStatus.APPROVED
            notes = form.cleaned_data["notes"]
            try:
                RecordStore(identity_for(request).user).update(
                    STUDENT_PROFILES,
                    profile.pk,
                    verification_status=form.cleaned_data["decision"],
                    is_verified=approved,
                    verification_notes=notes or None,
                    flagged_sections=form.cleaned_data["flagged_sections"] or None,
                )
            except UpstreamFailure:
                logger.exception("Verification update failed: student_id=%s", profile.pk)
                messages.error(request, "Failed to update verification status.")
                return redirect("verification_detail", student_id=profile.pk)

            if approved:
                create_in_app_notification(
                    profile.user,
                    title="Profile Verification Approved",
                    message="Your profile has been verified successfully. You can now apply for job postings.",
                    url="/student/jobs/",
                )
            else:
                create_in_app_notification(
                    profile.user,
                    title="Profile Verification Rejected",
                    message=f"Your profile verification was not approved. Reason: {notes or 'No specific reason provided.'}",
                    url="/student/profile/",
                )
            logger.info("Student verification: student_id=%s approved=%s by=%s", profile.pk, approved, request.user.username)
            messages.success(request, f"Profile has been {'approved' if approved else 'rejected'} successfully.")
            return redirect("verification_queue")
    else:
        form = VerificationForm(initial={"notes": profile.verification_notes, "flagged_sections": profile.flagged_sections})

    records = profile.education_records.order_by("stage")
    resume = profile.resumes.first()
    return render(
        request,
        "accounts/verification_detail.html",
        {"profile": profile, "form": form, "records": records, "resume": resume},
    )


# -----------------------------
# Notifications
# -----------------------------
@login_required(login_url=LOGIN)
def notifications_list(request):
    qs = Notification.objects.filter(user=request.user).order_by("-created_at")
    return render(request, "accounts/notifications.html", {"notifications": qs})


@login_required(login_url=LOGIN)
@require_POST
def notification_mark_read(request, notification_id):
    notif = get_object_or_404(Notification, id=notification_id, user=request.user)
    try:
        RecordStore(identity_for(request).user).update(NOTIFICATIONS, notif.pk, is_read=True)
    except UpstreamFailure:
        messages.error(request, "Failed to update notification.")
    return redirect(_safe_next(request, fallback="/accounts/notifications/"))


@login_required(login_url=LOGIN)
@require_POST
def notifications_mark_all_read(request):
    Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    return redirect(_safe_next(request, fallback="/accounts/notifications/"))
