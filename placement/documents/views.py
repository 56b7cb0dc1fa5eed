import logging

from django.contrib import messages
from django.http import Http404
from django.shortcuts import render, redirect

from accounts.decorators import student_required
from accounts.models import EducationRecord, EducationStage, StudentProfile

from .forms import MarksheetForm, ResumeUploadForm
from .models import Resume
from .storage import MARKSHEETS, RESUMES, upload_file

logger = logging.getLogger(__name__)


def _student_or_redirect(request):
    profile = StudentProfile.objects.filter(user=request.user).first()
    if profile is None:
        messages.error(request, "Complete your profile before uploading documents.")
        logger.warning("Upload denied (no student profile): user=%s", request.user.username)
    return profile


@student_required
def upload_resume(request):
    profile = _student_or_redirect(request)
    if profile is None:
        return redirect("student_profile")

    if request.method == "POST":
        form = ResumeUploadForm(request.POST, request.FILES)
        if form.is_valid():
            upload = form.cleaned_data["file"]
            url = upload_file(upload, RESUMES, f"student_{profile.pk}")
            if not url:
                messages.error(request, "Failed to upload resume. Please try again.")
                return redirect("upload_resume")
            # Only one resume is kept per student (latest replaces older ones)
            Resume.objects.filter(student=profile).delete()
            resume = Resume.objects.create(student=profile, file_url=url, original_name=upload.name)
            logger.info("Resume uploaded: resume_id=%s user=%s", resume.id, request.user.username)
            messages.success(request, "Resume uploaded successfully.")
            return redirect("resume_list")
        logger.warning("Resume upload failed: user=%s errors=%s", request.user.username, form.errors)
    else:
        form = ResumeUploadForm()

    return render(request, "documents/upload.html", {"form": form, "title": "Upload resume"})


@student_required
def resume_list(request):
    profile = _student_or_redirect(request)
    if profile is None:
        return redirect("student_profile")

    resumes = Resume.objects.filter(student=profile).order_by("-created_at")
    return render(request, "documents/list.html", {"resumes": resumes})


@student_required
def upload_marksheet(request, stage):
    if stage not in EducationStage.values:
        raise Http404("Unknown education stage")
    profile = _student_or_redirect(request)
    if profile is None:
        return redirect("student_profile")
    record = EducationRecord.objects.filter(student=profile, stage=stage).first()
    if record is None:
        messages.error(request, "Add your education details before uploading a marksheet.")
        return redirect("student_profile")

    if request.method == "POST":
        form = MarksheetForm(request.POST, request.FILES)
        if form.is_valid():
            url = upload_file(form.cleaned_data["file"], MARKSHEETS, f"student_{profile.pk}/{stage}")
            if not url:
                messages.error(request, "Failed to upload marksheet. Please try again.")
                return redirect("upload_marksheet", stage=stage)
            record.marksheet_url = url
            record.save(update_fields=["marksheet_url", "updated_at"])
            logger.info("Marksheet uploaded: student_id=%s stage=%s", profile.pk, stage)
            messages.success(request, "Marksheet uploaded.")
            return redirect("student_profile")
    else:
        form = MarksheetForm()

    return render(
        request,
        "documents/upload.html",
        {"form": form, "title": f"Upload {record.get_stage_display()} marksheet"},
    )
