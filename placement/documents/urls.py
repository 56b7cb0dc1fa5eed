from django.urls import path
from . import views

urlpatterns = [
    path("resume/upload/", views.upload_resume, name="upload_resume"),
    path("resume/", views.resume_list, name="resume_list"),
    path("marksheet/<str:stage>/upload/", views.upload_marksheet, name="upload_marksheet"),
]
