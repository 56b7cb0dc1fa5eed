from django.urls import path
from accounts import views as account_views
from . import views

student_urlpatterns = [
    path("dashboard/", views.student_dashboard, name="student_dashboard"),
    path("profile/", account_views.student_profile, name="student_profile"),
    path("jobs/", views.student_jobs, name="student_jobs"),
    path("jobs/<int:job_id>/apply/", views.apply_job, name="apply_job"),
    path("applications/", views.student_applications, name="student_applications"),
]

admin_urlpatterns = [
    path("dashboard/", views.admin_dashboard, name="admin_dashboard"),
    path("jobs/", views.admin_jobs, name="admin_jobs"),
    path("jobs/new/", views.admin_job_create, name="admin_job_create"),
    path("jobs/<int:job_id>/edit/", views.admin_job_edit, name="admin_job_edit"),
    path("applications/", views.admin_applications, name="admin_applications"),
    path("applications/<int:application_id>/status/", views.admin_update_application, name="admin_update_application"),
    path("students/", account_views.admin_students, name="admin_students"),
    path("verification/", account_views.verification_queue, name="verification_queue"),
    path("verification/<int:student_id>/", account_views.verification_detail, name="verification_detail"),
    path("reports/", views.admin_reports, name="admin_reports"),
]

company_urlpatterns = [
    path("dashboard/", views.company_dashboard, name="company_dashboard"),
    path("jobs/", views.company_jobs, name="company_jobs"),
    path("applications/", views.company_applications, name="company_applications"),
    path("applications/<int:application_id>/status/", views.company_update_application, name="company_update_application"),
    path("applications/<int:application_id>/offer-letter/", views.company_upload_offer_letter, name="company_upload_offer_letter"),
]
