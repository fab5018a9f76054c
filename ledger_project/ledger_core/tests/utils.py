import datetime
from decimal import Decimal

from ledger_core.models import (Account, Advance, BankAccount, Company, Employee,
                                EntityMembership, User)
from ledger_core.services import seed_default_chart_of_accounts

DAY = datetime.date(2025, 3, 15)


def make_tenant(slug="acme", role="accountant"):
    """Company with the default chart and one member holding `role`."""
    company = Company.objects.create(name=slug.title(), slug=slug)
    user = User.objects.create_user(username=f"{slug}-{role}", password="pw")
    EntityMembership.objects.create(user=user, company=company, role=role)
    seed_default_chart_of_accounts(company)
    return company, user


def account(company, code):
    return Account.objects.get(company=company, code=code)


def link_bank(company, code=1010, balance="1000.00"):
    return BankAccount.objects.create(
        company=company,
        name="Operating account",
        ledger_account=account(company, code),
        current_balance=Decimal(balance),
    )


def make_advance(company, employee, amount, date_to_deduct, **extra):
    return Advance.objects.create(
        company=company,
        employee=employee,
        original_amount=Decimal(amount),
        remaining_balance=Decimal(amount),
        date_to_deduct=date_to_deduct,
        **extra,
    )


def make_employee(company, name="Jane Doe"):
    return Employee.objects.create(company=company, full_name=name)


def lines(*pairs):
    """lines((account, debit, credit), ...) → raw posting lines."""
    return [
        {"account_id": acct.pk, "debit": debit, "credit": credit}
        for acct, debit, credit in pairs
    ]
