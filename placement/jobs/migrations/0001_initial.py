from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="JobPosting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("company_name", models.CharField(max_length=150)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField()),
                ("location", models.CharField(max_length=255)),
                ("package", models.CharField(help_text="Offered CTC, e.g. 6-8 LPA.", max_length=100)),
                ("application_deadline", models.DateField()),
                ("min_class_x_marks", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("min_class_xii_marks", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("min_graduation_marks", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("min_class_x_cgpa", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True)),
                ("min_class_xii_cgpa", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True)),
                ("min_graduation_cgpa", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True)),
                ("allow_backlog", models.BooleanField(default=False)),
                ("eligible_courses", models.TextField(blank=True, help_text="Comma separated courses (e.g. B.Tech CSE, MCA). Empty allows all.", null=True)),
                ("eligible_passing_years", models.CharField(blank=True, help_text="Comma separated years (e.g. 2025, 2026). Empty allows all.", max_length=200, null=True)),
                ("status", models.CharField(choices=[("active", "Active"), ("closed", "Closed"), ("draft", "Draft")], default="active", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="job_postings", to="accounts.companyprofile")),
            ],
        ),
        migrations.CreateModel(
            name="JobApplication",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("applied", "Applied"), ("under_review", "Under review"), ("shortlisted", "Shortlisted"), ("rejected", "Rejected"), ("selected", "Selected"), ("internship", "Internship"), ("ppo", "PPO"), ("placement", "Placement")], default="applied", max_length=20)),
                ("admin_notes", models.TextField(blank=True, null=True)),
                ("resume_url", models.CharField(blank=True, max_length=500, null=True)),
                ("offer_letter_url", models.CharField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("job", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="applications", to="jobs.jobposting")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="applications", to="accounts.studentprofile")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="jobapplication",
            constraint=models.UniqueConstraint(fields=("job", "student"), name="uniq_application_per_job_student"),
        ),
    ]
