"""Read-only views of posted ledger data for reporting."""
from django.db.models import Sum

from ..exceptions import NotFound
from ..models import Account, JournalLine
from ..models.account import DEBIT_NORMAL_TYPES
from .validation import ZERO, as_pk, to_date_only


def journal_lines_for_range(company, start, end, account=None):
    qs = (
        JournalLine.objects.for_company(company)
        .filter(is_posted=True, entry_date__gte=to_date_only(start),
                entry_date__lte=to_date_only(end))
        .select_related("account", "entry")
        .order_by("entry_date", "entry_id", "line_number")
    )
    if account is not None:
        qs = qs.filter(account=account)
    return qs


def account_balance(company, account_id, as_of=None):
    """Posted balance on the account's normal side as of `as_of` (inclusive)."""
    account = Account.objects.for_company(company).filter(pk=as_pk(account_id)).first()
    if account is None:
        raise NotFound(f"Account {account_id} not found.")

    qs = JournalLine.objects.for_company(company).filter(account=account, is_posted=True)
    if as_of is not None:
        qs = qs.filter(entry_date__lte=to_date_only(as_of))
    totals = qs.aggregate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
    debit = totals["debit"] or ZERO
    credit = totals["credit"] or ZERO
    if account.account_type in DEBIT_NORMAL_TYPES:
        return debit - credit
    return credit - debit
