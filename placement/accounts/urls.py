from django.urls import path
from . import views

urlpatterns = [
    path("notifications/", views.notifications_list, name="notifications_list"),
    path("notifications/mark-all-read/", views.notifications_mark_all_read, name="notifications_mark_all_read"),
    path("notifications/<int:notification_id>/read/", views.notification_mark_read, name="notification_mark_read"),
    path("register/", views.register, name="register"),
    path("login/", views.user_login, name="login"),
    path("company/login/", views.company_login, name="company_login"),
    path("logout/", views.user_logout, name="logout"),
]
