import secrets

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounts.models import CompanyProfile, Role

User = get_user_model()


class Command(BaseCommand):
    help = "Create a company login (user + profile + company code) for the company portal."

    def add_arguments(self, parser):
        parser.add_argument("username", type=str)
        parser.add_argument("--company-name", type=str, required=True)
        parser.add_argument("--email", type=str, required=True)
        parser.add_argument("--password", type=str, default=None)
        parser.add_argument("--code", type=str, default=None, help="Company code; generated when omitted.")

    @transaction.atomic
    def handle(self, *args, **opts):
        username = opts["username"].strip()
        if User.objects.filter(username=username).exists():
            raise CommandError(f"User '{username}' already exists.")

        code = (opts["code"] or secrets.token_hex(4)).strip().upper()
        if CompanyProfile.objects.filter(company_code=code).exists():
            raise CommandError(f"Company code '{code}' is already in use.")

        password = opts["password"] or secrets.token_urlsafe(12)
        user = User.objects.create_user(
            username=username,
            email=opts["email"].strip().lower(),
            password=password,
            role=Role.COMPANY,
            company_code=code,
        )
        CompanyProfile.objects.create(user=user, company_name=opts["company_name"].strip(), company_code=code)

        self.stdout.write(self.style.SUCCESS(f"Company account created: username={username} code={code}"))
        if not opts["password"]:
            self.stdout.write(f"Generated password: {password}")
