from ..exceptions import InvalidArgument
from ..models import ReferenceType
from ..models.account import DEBIT_NORMAL_TYPES
from .accounts import RETAINED_EARNINGS, resolve_account, system_account
from .posting import post_in_transaction
from .unit_of_work import POSTING_ROLES, run_in_ledger_transaction
from .validation import ZERO, normalize_money, to_date_only


def opening_balance_lines(tx, balances):
    """
    One line per non-zero balance on the account's normal side; a
    negative amount goes to the opposite side. The difference is
    booked to Retained Earnings.
    """
    lines = []
    debits = credits = ZERO
    for idx, raw in enumerate(balances, start=1):
        amount = normalize_money(raw.get("amount"), f"balances[{idx}].amount")
        if amount == ZERO:
            continue
        account = resolve_account(tx, raw.get("account_id"))
        on_debit = account.account_type in DEBIT_NORMAL_TYPES
        if amount < ZERO:
            on_debit = not on_debit
            amount = -amount
        if on_debit:
            lines.append({"account_id": account.pk, "debit": amount, "description": "Opening balance"})
            debits += amount
        else:
            lines.append({"account_id": account.pk, "credit": amount, "description": "Opening balance"})
            credits += amount

    if not lines:
        raise InvalidArgument("Opening balances require at least one non-zero amount.")

    difference = debits - credits
    if difference != ZERO:
        retained = system_account(tx, RETAINED_EARNINGS)
        side = "credit" if difference > ZERO else "debit"
        lines.append({
            "account_id": retained.pk,
            side: abs(difference),
            "description": "Opening balance difference",
        })
    return lines


def post_opening_balances(company, balances, entry_date=None, actor=None, role=None):
    """Post the tenant's one-time opening balance entry; returns its id."""

    def _post(tx):
        day = to_date_only(entry_date)
        lines = opening_balance_lines(tx, balances)
        return post_in_transaction(
            tx, ReferenceType.OPENING_BALANCE, tx.company.pk, day, lines,
            description="Opening balances",
        )

    entry = run_in_ledger_transaction(
        _post, company=company, actor=actor, role=role, roles=POSTING_ROLES
    )
    return entry.pk
