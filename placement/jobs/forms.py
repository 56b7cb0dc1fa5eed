from django import forms

from .models import JobPosting, parse_years, tokenize_csv
from .status import coerce_status, status_choices, UnknownStatus


class JobPostingForm(forms.ModelForm):
    class Meta:
        model = JobPosting
        fields = [
            "title",
            "company",
            "company_name",
            "description",
            "location",
            "package",
            "application_deadline",
            "min_class_x_marks",
            "min_class_xii_marks",
            "min_graduation_marks",
            "min_class_x_cgpa",
            "min_class_xii_cgpa",
            "min_graduation_cgpa",
            "allow_backlog",
            "eligible_courses",
            "eligible_passing_years",
            "status",
        ]
        widgets = {
            "application_deadline": forms.DateInput(attrs={"type": "date"}),
            "description": forms.Textarea(attrs={"rows": 6}),
            "eligible_courses": forms.TextInput(attrs={"placeholder": "B.Tech CSE, B.Tech ECE, MCA"}),
            "eligible_passing_years": forms.TextInput(attrs={"placeholder": "2025, 2026"}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["company"].required = False
        self.fields["company_name"].required = False

    def clean_eligible_passing_years(self):
        raw = self.cleaned_data.get("eligible_passing_years") or ""
        if len(parse_years(raw)) != len(tokenize_csv(raw)):
            raise forms.ValidationError("Passing years must be comma separated numbers.")
        return raw

    def clean(self):
        cleaned = super().clean()
        company = cleaned.get("company")
        if company and not (cleaned.get("company_name") or "").strip():
            cleaned["company_name"] = company.company_name
        elif not company and not (cleaned.get("company_name") or "").strip():
            self.add_error("company_name", "Choose a company or enter its name.")
        for name in ("min_class_x_marks", "min_class_xii_marks", "min_graduation_marks"):
            value = cleaned.get(name)
            if value is not None and not 0 <= value <= 100:
                self.add_error(name, "Percentage must be between 0 and 100.")
        return cleaned


class ApplicationStatusForm(forms.Form):
    status = forms.ChoiceField(choices=status_choices)
    admin_notes = forms.CharField(widget=forms.Textarea(attrs={"rows": 2}), required=False)

    def clean_status(self):
        try:
            return coerce_status(self.cleaned_data["status"])
        except UnknownStatus as exc:
            raise forms.ValidationError(str(exc))

