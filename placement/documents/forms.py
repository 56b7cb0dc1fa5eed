from django import forms
from django.core.validators import FileExtensionValidator

MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def _check_size(upload):
    if upload and upload.size > MAX_UPLOAD_BYTES:
        raise forms.ValidationError("File is too large (max 5 MB).")
    return upload


class ResumeUploadForm(forms.Form):
    file = forms.FileField(validators=[FileExtensionValidator(["pdf", "doc", "docx"])])

    def clean_file(self):
        return _check_size(self.cleaned_data.get("file"))


class OfferLetterForm(forms.Form):
    file = forms.FileField(validators=[FileExtensionValidator(["pdf"])])

    def clean_file(self):
        return _check_size(self.cleaned_data.get("file"))


class MarksheetForm(forms.Form):
    file = forms.FileField(validators=[FileExtensionValidator(["pdf", "png", "jpg", "jpeg"])])

    def clean_file(self):
        return _check_size(self.cleaned_data.get("file"))
