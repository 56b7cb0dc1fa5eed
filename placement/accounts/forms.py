from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.forms import AuthenticationForm

from .models import EducationRecord, EducationStage, StudentProfile, VerificationStatus

User = get_user_model()


class StudentRegistrationForm(forms.ModelForm):
    username = forms.CharField(max_length=150)
    email = forms.EmailField()
    password = forms.CharField(widget=forms.PasswordInput, min_length=8)

    class Meta:
        model = StudentProfile
        fields = ["first_name", "last_name", "phone", "department"]

    def clean_username(self):
        username = self.cleaned_data["username"].strip()
        if User.objects.filter(username=username).exists():
            raise forms.ValidationError("This username is taken.")
        return username

    def clean_email(self):
        email = self.cleaned_data["email"].strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("An account with this email already exists.")
        return email


class LoginForm(AuthenticationForm):
    username = forms.CharField()
    password = forms.CharField(widget=forms.PasswordInput)


class CompanyLoginForm(forms.Form):
    username = forms.CharField()
    password = forms.CharField(widget=forms.PasswordInput)
    company_code = forms.CharField(max_length=32)


class StudentProfileForm(forms.ModelForm):
    class Meta:
        model = StudentProfile
        fields = [
            "first_name",
            "last_name",
            "dob",
            "gender",
            "phone",
            "address",
            "department",
            "placement_interest",
        ]
        widgets = {"dob": forms.DateInput(attrs={"type": "date"})}


class EducationRecordForm(forms.ModelForm):
    class Meta:
        model = EducationRecord
        fields = [
            "institution",
            "board",
            "course",
            "marks",
            "is_cgpa",
            "cgpa_scale",
            "passing_year",
            "has_backlog",
        ]

    def __init__(self, *args, stage=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.stage = stage
        self.stage_label = EducationStage(stage).label if stage else ""
        if stage == EducationStage.GRADUATION:
            self.fields["course"].required = True
            del self.fields["board"]
        else:
            del self.fields["course"]
            del self.fields["has_backlog"]

    def clean(self):
        cleaned = super().clean()
        marks = cleaned.get("marks")
        if marks is None:
            return cleaned
        if cleaned.get("is_cgpa"):
            scale = cleaned.get("cgpa_scale") or 10
            if marks > scale:
                self.add_error("marks", f"CGPA cannot exceed the scale ({scale}).")
        elif not 0 <= marks <= 100:
            self.add_error("marks", "Percentage must be between 0 and 100.")
        return cleaned


class VerificationForm(forms.Form):
    decision = forms.ChoiceField(
        choices=[(VerificationStatus.APPROVED, "Approve"), (VerificationStatus.REJECTED, "Reject")]
    )
    notes = forms.CharField(widget=forms.Textarea, required=False)
    flagged_sections = forms.CharField(
        required=False, help_text="Comma separated sections the student must correct."
    )
