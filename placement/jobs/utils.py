import logging

from placement.outbox import send_portal_email

from .status import ApplicationStatus, display_label, is_final

logger = logging.getLogger(__name__)


def create_in_app_notification(user, title: str, message: str = "", url: str = ""):
    try:
        from accounts.models import Notification
        Notification.objects.create(user=user, title=title, message=message or None, url=url or None)
    except Exception:
        logger.exception("Failed to create in-app notification: user_id=%s", getattr(user, "pk", None))


def send_application_status_notification(application):
    """Tell the student their application moved to a new status (in-app + email)."""
    user = application.student.user
    job = application.job
    label = display_label(application.status)

    if application.status == ApplicationStatus.REJECTED:
        title = f"Application update for {job.title}"
        body = (
            f"Hello {user.display_name},\n\n"
            f"Unfortunately, your application for '{job.title}' at {job.company_name} was not taken forward.\n\n"
            "Thank you for applying.\n"
            "Placement Cell"
        )
    elif is_final(application.status):
        title = f"Congratulations! {label} for {job.title}"
        body = (
            f"Hello {user.display_name},\n\n"
            f"Your application for '{job.title}' at {job.company_name} is now marked as {label.upper()}.\n"
            "The placement cell will contact you with next steps.\n\n"
            "Placement Cell"
        )
    else:
        title = f"Application for {job.title} is now {label.lower()}"
        body = (
            f"Hello {user.display_name},\n\n"
            f"Your application for '{job.title}' at {job.company_name} moved to: {label}.\n\n"
            "Placement Cell"
        )

    create_in_app_notification(
        user,
        title=title,
        message=f"Status: {label}",
        url="/student/applications/",
    )

    if not user.email:
        return
    try:
        send_portal_email(
            to_emails=[user.email],
            subject=f"Placement Portal: {title}",
            message=body,
            tag="APPLICATION_STATUS",
            meta={
                "application_id": application.id,
                "job_id": job.id,
                "status": application.status,
                "user_id": user.id,
            },
        )
        logger.info("Status email sent: app_id=%s status=%s to=%s", application.id, application.status, user.email)
    except Exception:
        logger.exception("Status email failed: app_id=%s to=%s", application.id, user.email)
