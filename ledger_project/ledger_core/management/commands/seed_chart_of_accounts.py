from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from ledger_core.models import Company
from ledger_core.services import seed_default_chart_of_accounts


class Command(BaseCommand):
    help = "Create the default chart of accounts for one company (or all). Safe to re-run."

    def add_arguments(self, parser):
        parser.add_argument(
            "--company",  # slug
            help="Slug of the company to seed. Omit to seed every company.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        slug = options.get("company")
        companies = Company.objects.all().order_by("pk")
        if slug:
            companies = companies.filter(slug=slug)
            if not companies.exists():
                raise CommandError(f"Company '{slug}' does not exist.")

        for company in companies:
            created = seed_default_chart_of_accounts(company)
            self.stdout.write(
                self.style.SUCCESS(f"{company.slug}: {created} account(s) created")
            )
