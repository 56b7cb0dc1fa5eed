from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.contrib.auth.forms import UserCreationForm

from .models import User, StudentProfile, EducationRecord, CompanyProfile, Notification


class PortalUserCreationForm(UserCreationForm):
    class Meta(UserCreationForm.Meta):
        model = User
        fields = ("username", "email", "role")


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    add_form = PortalUserCreationForm
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("username", "email", "role", "password1", "password2")}),
    )
    fieldsets = DjangoUserAdmin.fieldsets + (
        ("Placement", {"fields": ("role", "company_code")}),
    )
    list_display = ("username", "email", "role", "is_active", "is_staff")
    list_filter = DjangoUserAdmin.list_filter + ("role",)


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    list_display = ("full_name", "department", "verification_status", "is_verified", "is_blocked")
    list_filter = ("verification_status", "is_blocked", "department")
    search_fields = ("first_name", "last_name", "user__email")


@admin.register(CompanyProfile)
class CompanyProfileAdmin(admin.ModelAdmin):
    list_display = ("company_name", "company_code", "user")
    search_fields = ("company_name", "company_code")


admin.site.register(EducationRecord)
admin.site.register(Notification)
