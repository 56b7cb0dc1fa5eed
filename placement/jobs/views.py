import logging
from collections import Counter

from django.conf import settings
from django.contrib import messages
from django.core.paginator import Paginator
from django.db.models import Count, Q
from django.shortcuts import render, redirect, get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_http_methods, require_POST

from accounts.decorators import admin_required, company_required, student_required
from accounts.identity import identity_for
from accounts.models import CompanyProfile, EducationStage, StudentProfile, VerificationStatus
from documents.forms import OfferLetterForm
from documents.models import Resume
from documents.storage import upload_offer_letter

from .eligibility import check_eligibility, notify_eligible_students, profile_blockers
from .forms import ApplicationStatusForm, JobPostingForm
from .gateway import JOB_APPLICATIONS, RecordStore, UpstreamFailure
from .models import JobApplication, JobPosting, JobPostingStatus
from .status import FINAL_STATUSES, all_statuses, coerce_status, display_label, UnknownStatus
from .utils import create_in_app_notification, send_application_status_notification

logger = logging.getLogger(__name__)


def _paginate(request, queryset, per_page=20):
    paginator = Paginator(queryset, per_page)
    page_number = request.GET.get("page") or 1
    return paginator.get_page(page_number)


def _status_param(request):
    """Status filter from the query string; blank or unknown means all."""
    raw = (request.GET.get("status") or "").strip()
    try:
        return coerce_status(raw) if raw else None
    except UnknownStatus:
        return None


def _status_counts(apps_qs):
    counts = dict(apps_qs.order_by().values_list("status").annotate(c=Count("id")))
    return [
        {"status": s, "label": display_label(s), "count": counts.get(s.value, 0)}
        for s in all_statuses()
    ]


def _store(request):
    return RecordStore(identity_for(request).user)


def _change_status(request, application, form):
    """Apply a validated status form through the caller's record store.

    Returns True when the application changed.
    """
    new_status = form.cleaned_data["status"]
    changes = {}
    if new_status != application.status:
        if application.is_final:
            messages.warning(
                request,
                f"This application is already {display_label(application.status)}; its status can no longer change.",
            )
            return False
        changes["status"] = new_status
    notes = form.cleaned_data.get("admin_notes")
    if "admin_notes" in request.POST and (notes or None) != application.admin_notes:
        changes["admin_notes"] = notes or None
    if not changes:
        messages.info(request, "Nothing to update.")
        return False

    try:
        updated = _store(request).update(JOB_APPLICATIONS, application.pk, **changes)
    except UpstreamFailure:
        logger.exception("Status update failed: app_id=%s by=%s", application.pk, request.user.username)
        messages.error(request, "Failed to update application status.")
        return False

    if "status" in changes:
        logger.info(
            "Application status changed: app_id=%s %s -> %s by=%s",
            application.pk,
            application.status,
            new_status,
            request.user.username,
        )
        send_application_status_notification(updated)
    messages.success(request, "Application status updated successfully.")
    return True


def _status_context():
    return {"status_options": [(s.value, display_label(s)) for s in all_statuses()]}


# -----------------------------
# Student
# -----------------------------
def _student_profile(user):
    profile, _ = StudentProfile.objects.get_or_create(
        user=user, defaults={"first_name": user.first_name or user.username}
    )
    return profile


@student_required
def student_dashboard(request):
    profile = _student_profile(request.user)
    apps = JobApplication.objects.filter(student=profile)
    ctx = {
        "profile": profile,
        "counts": _status_counts(apps),
        "total_applications": apps.count(),
        "recent_applications": apps.select_related("job")[:5],
        "open_jobs": JobPosting.objects.open_for_applications().count(),
        "blockers": profile_blockers(profile),
    }
    return render(request, "jobs/student_dashboard.html", ctx)


@student_required
def student_jobs(request):
    profile = _student_profile(request.user)
    today = timezone.localdate()
    warn_days = getattr(settings, "PORTAL_DEADLINE_WARNING_DAYS", 5)
    q = (request.GET.get("q") or "").strip()

    jobs = JobPosting.objects.open_for_applications(today).order_by("application_deadline")
    if q:
        jobs = jobs.filter(Q(title__icontains=q) | Q(company_name__icontains=q) | Q(location__icontains=q))
    applied = dict(JobApplication.objects.filter(student=profile).values_list("job_id", "status"))
    profile = StudentProfile.objects.prefetch_related("education_records").get(pk=profile.pk)

    rows = []
    for job in jobs:
        days_left = job.days_to_deadline(today)
        rows.append(
            {
                "job": job,
                "eligibility": check_eligibility(profile, job),
                "applied_status": applied.get(job.id),
                "deadline_near": days_left < warn_days,
                "days_left": days_left,
            }
        )
    return render(
        request,
        "jobs/student_jobs.html",
        {"rows": rows, "q": q, "blockers": profile_blockers(profile)},
    )


@student_required
@require_POST
def apply_job(request, job_id):
    job = get_object_or_404(JobPosting, id=job_id)
    profile = StudentProfile.objects.prefetch_related("education_records").get(pk=_student_profile(request.user).pk)

    if not job.is_open():
        messages.error(request, "Applications for this job are closed.")
        return redirect("student_jobs")
    if JobApplication.objects.filter(job=job, student=profile).exists():
        messages.error(request, "You have already applied for this job.")
        return redirect("student_jobs")
    result = check_eligibility(profile, job)
    if not result:
        messages.error(request, "You are not eligible for this job: " + "; ".join(result.reasons))
        return redirect("student_jobs")

    resume = Resume.objects.filter(student=profile).first()
    try:
        application = _store(request).insert(
            JOB_APPLICATIONS,
            job=job,
            student=profile,
            resume_url=resume.file_url if resume else None,
        )
    except UpstreamFailure:
        logger.exception("Application insert failed: job_id=%s user=%s", job.id, request.user.username)
        messages.error(request, "Failed to submit application.")
        return redirect("student_jobs")

    create_in_app_notification(
        request.user,
        title="Job Application Submitted",
        message=f"You have successfully applied for {job.title} at {job.company_name}.",
        url="/student/applications/",
    )
    logger.info("Application submitted: app_id=%s job_id=%s user=%s", application.id, job.id, request.user.username)
    messages.success(request, "Job application submitted successfully.")
    return redirect("student_applications")


@student_required
def student_applications(request):
    profile = _student_profile(request.user)
    status = _status_param(request)
    apps = JobApplication.objects.filter(student=profile).select_related("job")
    if status:
        apps = apps.filter(status=status)
    ctx = {"applications": apps, "status": status or "", **_status_context()}
    return render(request, "jobs/student_applications.html", ctx)


# -----------------------------
# Admin
# -----------------------------
@admin_required
def admin_dashboard(request):
    apps = JobApplication.objects.all()
    students = StudentProfile.objects.all()
    ctx = {
        "total_students": students.count(),
        "verified_students": students.filter(is_verified=True).count(),
        "pending_verification": students.filter(verification_status=VerificationStatus.PENDING).count(),
        "active_jobs": JobPosting.objects.active().count(),
        "total_applications": apps.count(),
        "placed_students": apps.filter(status__in=FINAL_STATUSES).values("student").distinct().count(),
        "counts": _status_counts(apps),
        "recent_applications": apps.select_related("job", "student")[:5],
    }
    return render(request, "jobs/admin_dashboard.html", ctx)


@admin_required
def admin_jobs(request):
    status = (request.GET.get("status") or "").strip()
    jobs = JobPosting.objects.annotate(application_count=Count("applications")).recent()
    if status in JobPostingStatus.values:
        jobs = jobs.filter(status=status)
    else:
        status = ""
    return render(
        request,
        "jobs/admin_jobs.html",
        {"page_obj": _paginate(request, jobs), "status": status, "status_choices": JobPostingStatus.choices},
    )


@admin_required
@require_http_methods(["GET", "POST"])
def admin_job_create(request):
    if request.method == "POST":
        form = JobPostingForm(request.POST)
        if form.is_valid():
            job = form.save()
            logger.info("Job posting created: job_id=%s by=%s", job.id, request.user.username)
            if job.status == JobPostingStatus.ACTIVE:
                notified = notify_eligible_students(job)
                messages.success(request, f"Job posted. {notified} eligible student(s) notified.")
            else:
                messages.success(request, "Job saved.")
            return redirect("admin_jobs")
    else:
        form = JobPostingForm(initial={"status": JobPostingStatus.ACTIVE})
    return render(request, "jobs/job_form.html", {"form": form, "job": None})


@admin_required
@require_http_methods(["GET", "POST"])
def admin_job_edit(request, job_id):
    job = get_object_or_404(JobPosting, id=job_id)
    was_active = job.status == JobPostingStatus.ACTIVE
    if request.method == "POST":
        form = JobPostingForm(request.POST, instance=job)
        if form.is_valid():
            job = form.save()
            logger.info("Job posting updated: job_id=%s by=%s", job.id, request.user.username)
            if not was_active and job.status == JobPostingStatus.ACTIVE:
                notify_eligible_students(job)
            messages.success(request, "Job posting updated successfully.")
            return redirect("admin_jobs")
    else:
        form = JobPostingForm(instance=job)
    return render(request, "jobs/job_form.html", {"form": form, "job": job})


def _filtered_applications(request, base_qs):
    status = _status_param(request)
    job_id = request.GET.get("job") or ""
    q = (request.GET.get("q") or "").strip()
    apps = base_qs.select_related("job", "student", "student__user")
    if status:
        apps = apps.filter(status=status)
    if job_id.isdigit():
        apps = apps.filter(job_id=int(job_id))
    if q:
        apps = apps.filter(
            Q(student__first_name__icontains=q) | Q(student__last_name__icontains=q) | Q(student__user__email__icontains=q)
        )
    sort = request.GET.get("sort") or "-created_at"
    if sort not in {"created_at", "-created_at", "status", "-status"}:
        sort = "-created_at"
    return apps.order_by(sort), {"status": status or "", "job": job_id, "q": q, "sort": sort}


@admin_required
def admin_applications(request):
    apps, filters = _filtered_applications(request, JobApplication.objects.all())
    ctx = {
        "page_obj": _paginate(request, apps),
        "jobs": JobPosting.objects.recent(),
        "update_url_name": "admin_update_application",
        **filters,
        **_status_context(),
    }
    return render(request, "jobs/applications.html", ctx)


@admin_required
@require_POST
def admin_update_application(request, application_id):
    application = get_object_or_404(JobApplication, id=application_id)
    form = ApplicationStatusForm(request.POST)
    if form.is_valid():
        _change_status(request, application, form)
    else:
        messages.error(request, "Choose a valid status.")
    return redirect("admin_applications")


@admin_required
def admin_reports(request):
    apps = JobApplication.objects.all()
    placed = apps.filter(status__in=FINAL_STATUSES)

    by_company = (
        placed.values("job__company_name").annotate(c=Count("student", distinct=True)).order_by("-c", "job__company_name")
    )
    placed_students = set(placed.values_list("student_id", flat=True))
    course_totals = Counter()
    course_placed = Counter()
    graduations = StudentProfile.objects.filter(
        is_verified=True, education_records__stage=EducationStage.GRADUATION
    ).values_list("id", "education_records__course")
    for student_id, course in graduations:
        course_totals[course] += 1
        if student_id in placed_students:
            course_placed[course] += 1

    ctx = {
        "counts": _status_counts(apps),
        "by_company": [{"name": r["job__company_name"] or "Unknown", "value": r["c"]} for r in by_company],
        "by_course": [
            {"name": course, "total": total, "placed": course_placed[course]}
            for course, total in sorted(course_totals.items())
        ],
    }
    return render(request, "jobs/admin_reports.html", ctx)


# -----------------------------
# Company
# -----------------------------
def _company(request):
    return get_object_or_404(CompanyProfile, user_id=identity_for(request).user.user_id)


@company_required
def company_dashboard(request):
    company = _company(request)
    jobs = JobPosting.objects.for_company(company)
    apps = JobApplication.objects.filter(job__company=company)
    ctx = {
        "company": company,
        "job_count": jobs.count(),
        "active_jobs": jobs.filter(status=JobPostingStatus.ACTIVE).count(),
        "total_applications": apps.count(),
        "counts": _status_counts(apps),
    }
    return render(request, "jobs/company_dashboard.html", ctx)


@company_required
def company_jobs(request):
    company = _company(request)
    jobs = JobPosting.objects.for_company(company).annotate(application_count=Count("applications")).recent()
    return render(request, "jobs/company_jobs.html", {"jobs": jobs, "company": company})


@company_required
def company_applications(request):
    company = _company(request)
    apps, filters = _filtered_applications(request, JobApplication.objects.filter(job__company=company))
    ctx = {
        "page_obj": _paginate(request, apps),
        "jobs": JobPosting.objects.for_company(company).recent(),
        "update_url_name": "company_update_application",
        "offer_form": OfferLetterForm(),
        "company": company,
        **filters,
        **_status_context(),
    }
    return render(request, "jobs/applications.html", ctx)


@company_required
@require_POST
def company_update_application(request, application_id):
    company = _company(request)
    application = get_object_or_404(JobApplication, id=application_id, job__company=company)
    form = ApplicationStatusForm(request.POST)
    if form.is_valid():
        _change_status(request, application, form)
    else:
        messages.error(request, "Choose a valid status.")
    return redirect("company_applications")


@company_required
@require_POST
def company_upload_offer_letter(request, application_id):
    company = _company(request)
    application = get_object_or_404(JobApplication, id=application_id, job__company=company)
    form = OfferLetterForm(request.POST, request.FILES)
    if not form.is_valid():
        messages.error(request, "Upload a PDF offer letter (max 5 MB).")
        return redirect("company_applications")

    url = upload_offer_letter(form.cleaned_data["file"], application.student_id, application.job_id)
    if not url:
        messages.error(request, "Failed to upload offer letter.")
        return redirect("company_applications")
    try:
        _store(request).update(JOB_APPLICATIONS, application.pk, offer_letter_url=url)
    except UpstreamFailure:
        logger.exception("Offer letter link failed: app_id=%s", application.pk)
        messages.error(request, "Failed to upload offer letter.")
        return redirect("company_applications")

    create_in_app_notification(
        application.student.user,
        title=f"Offer letter from {application.job.company_name}",
        message=f"An offer letter for {application.job.title} is available.",
        url="/student/applications/",
    )
    logger.info("Offer letter uploaded: app_id=%s company=%s", application.pk, company.company_code)
    messages.success(request, "Offer letter uploaded successfully.")
    return redirect("company_applications")
