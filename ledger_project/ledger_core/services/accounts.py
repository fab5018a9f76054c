import logging

from ..exceptions import FailedPrecondition, NotFound, PermissionDenied
from ..models import Account, AccountType, ExpenseCategory, JournalLine
from .unit_of_work import ACCOUNT_ADMIN_ROLES, run_in_ledger_transaction
from .validation import as_pk

logger = logging.getLogger(__name__)

# (names tried in order, fallback code, required type)
ACCOUNTS_PAYABLE = (("Accounts Payable",), 2000, AccountType.LIABILITY)
ACCOUNTS_RECEIVABLE = (("Accounts Receivable",), 1030, AccountType.ASSET)
SALES_REVENUE = (("Sales Revenue", "Service Revenue"), 4000, AccountType.INCOME)
SALARIES_EXPENSE = (("Salaries Expense",), 5040, AccountType.EXPENSE)
SALARIES_PAYABLE = (("Salaries Payable",), 2010, AccountType.LIABILITY)
PAYE_PAYABLE = (("PAYE Payable",), 2031, AccountType.LIABILITY)
STAFF_ADVANCES = (("Staff Advances", "Employee Advances"), 1050, AccountType.ASSET)
RETAINED_EARNINGS = (("Retained Earnings",), 3010, AccountType.EQUITY)

# Default chart: (code, name, type, parent code)
DEFAULT_CHART = [
    (1000, "Cash", AccountType.ASSET, None),
    (1010, "Bank", AccountType.ASSET, 1000),
    (1030, "Accounts Receivable", AccountType.ASSET, None),
    (1040, "Inventory", AccountType.ASSET, None),
    (1050, "Staff Advances", AccountType.ASSET, None),
    (2000, "Accounts Payable", AccountType.LIABILITY, None),
    (2010, "Salaries Payable", AccountType.LIABILITY, None),
    (2031, "PAYE Payable", AccountType.LIABILITY, None),
    (3000, "Owner's Equity", AccountType.EQUITY, None),
    (3010, "Retained Earnings", AccountType.EQUITY, None),
    (4000, "Sales Revenue", AccountType.INCOME, None),
    (4010, "Service Revenue", AccountType.INCOME, None),
    (5000, "Cost of Goods Sold", AccountType.EXPENSE, None),
    (5010, "Office Supplies", AccountType.EXPENSE, None),
    (5020, "Rent Expense", AccountType.EXPENSE, None),
    (5040, "Salaries Expense", AccountType.EXPENSE, None),
]


# ----------------------------
# Account Directory
# ----------------------------
def resolve_account(tx, account_id):
    """
    Existence, tenant ownership and active status, checked fresh on
    every call.
    """
    account = tx.query(Account).filter(pk=as_pk(account_id)).first()
    if account is None:
        raise NotFound(f"Account {account_id} not found.")
    if not tx.owns(account):
        raise PermissionDenied(f"Account {account_id} is not in this organization.")
    if not account.is_active:
        raise FailedPrecondition(f"Account {account_id} is inactive.")
    return account


def find_account_by_name(tx, names):
    """First active tenant account whose name matches, in `names` order."""
    for name in names:
        account = (
            tx.scoped(Account)
            .filter(name__iexact=name, is_active=True)
            .order_by("code")
            .first()
        )
        if account:
            return account
    return None


def find_account_by_code(tx, code):
    return tx.scoped(Account).filter(code=code, is_active=True).first()


def resolve_system_account(tx, names, fallback_code=None, required_type=None):
    """Name lookup, then numeric-code fallback, then type check."""
    account = find_account_by_name(tx, names)
    if account is None and fallback_code is not None:
        account = find_account_by_code(tx, fallback_code)
    if account is None:
        raise FailedPrecondition(f"Required account not configured: {names[0]}.")
    if required_type and account.account_type != required_type:
        raise FailedPrecondition(f"Account {account.name} must be of type {required_type}.")
    return account


def system_account(tx, wanted):
    names, code, required_type = wanted
    return resolve_system_account(tx, names, code, required_type)


def resolve_payment_account(tx, account_id):
    account = resolve_account(tx, account_id)
    if account.account_type != AccountType.ASSET:
        raise FailedPrecondition("Payment account must be an active Asset account.")
    return account


def resolve_typed_account(tx, account_id, account_type, label):
    account = resolve_account(tx, account_id)
    if account.account_type != account_type:
        raise FailedPrecondition(f"{label} must be an {account_type} account.")
    return account


# ----------------------------
# Chart-of-accounts maintenance
# ----------------------------
def seed_default_chart_of_accounts(company):
    """
    Idempotent upsert of the default chart; existing codes keep their
    names. Returns the number of accounts created.
    """
    created = 0
    by_code = {a.code: a for a in Account.objects.for_company(company)}
    for code, name, account_type, parent_code in DEFAULT_CHART:
        if code in by_code:
            continue
        account = Account(
            company=company,
            code=code,
            name=name,
            account_type=account_type,
            parent=by_code.get(parent_code),
            is_system=True,
        )
        account.save()
        by_code[code] = account
        created += 1
    logger.info("seeded chart of accounts", extra={"company_id": company.pk, "accounts_created": created})
    return created


def _delete_account(tx, account_id):
    account = tx.locked(Account).filter(pk=as_pk(account_id)).first()
    if account is None:
        raise NotFound(f"Account {account_id} not found.")
    if not tx.owns(account):
        raise PermissionDenied(f"Account {account_id} is not in this organization.")
    if account.is_system:
        raise FailedPrecondition("System accounts cannot be deleted.")
    if tx.query(Account).filter(parent=account).exists():
        raise FailedPrecondition("Account has child accounts. Reassign or delete them first.")
    if tx.query(JournalLine).filter(account=account).exists():
        raise FailedPrecondition("Account has journal history and cannot be deleted. Deactivate it instead.")
    if tx.query(ExpenseCategory).filter(account=account).exists():
        raise FailedPrecondition("Account is linked to an expense category.")
    account.delete()
    return account_id


def delete_account(company, account_id, actor=None, role=None):
    return run_in_ledger_transaction(
        lambda tx: _delete_account(tx, account_id),
        company=company, actor=actor, role=role, roles=ACCOUNT_ADMIN_ROLES,
    )
