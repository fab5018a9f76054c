from ..models import AccountType, Direction, Expense, ExpenseCategory, ReferenceType
from ..exceptions import NotFound, PermissionDenied
from .accounts import resolve_payment_account, resolve_typed_account
from .audit_helper import log_action
from .posting import post_in_transaction
from .side_effects import move_cash
from .unit_of_work import POSTING_ROLES, run_in_ledger_transaction
from .validation import as_pk, assert_positive_amount, to_date_only


def _category(tx, category_id):
    if not category_id:
        return None
    category = tx.query(ExpenseCategory).filter(pk=as_pk(category_id)).first()
    if category is None:
        raise NotFound(f"Expense category {category_id} not found.")
    if not tx.owns(category):
        raise PermissionDenied(f"Expense category {category_id} is not in this organization.")
    return category


def record_expense_in_transaction(tx, *, amount, payment_account_id, expense_account_id=None,
                                  category_id=None, expense_date=None, description="", vendor=None):
    amount = assert_positive_amount(amount)
    day = to_date_only(expense_date)
    category = _category(tx, category_id)
    if expense_account_id is None and category is not None:
        expense_account_id = category.account_id

    expense_account = resolve_typed_account(
        tx, expense_account_id, AccountType.EXPENSE, "Expense account"
    )
    payment_account = resolve_payment_account(tx, payment_account_id)

    expense = Expense(
        company=tx.company,
        category=category,
        vendor=vendor,
        expense_account=expense_account,
        payment_account=payment_account,
        expense_date=day,
        amount=amount,
        description=description,
        created_by=tx.actor,
    )
    expense.save(using=tx.using)

    def _cash_out(tx, entry):
        move_cash(
            tx,
            payment_account=payment_account,
            amount=amount,
            direction=Direction.OUTFLOW,
            transaction_date=day,
            reference_type=ReferenceType.EXPENSE,
            reference_id=expense.pk,
            description=description or f"Expense {expense.pk}",
            journal_entry=entry,
        )

    entry = post_in_transaction(
        tx,
        ReferenceType.EXPENSE,
        expense.pk,
        day,
        [
            {"account_id": expense_account.pk, "debit": amount,
             "description": description or expense_account.name},
            {"account_id": payment_account.pk, "credit": amount,
             "description": "Paid from cash/bank"},
        ],
        description=f"Expense: {description}" if description else "Expense",
        side_effects=[_cash_out],
    )
    expense.journal_entry = entry
    expense.save(using=tx.using, update_fields=["journal_entry"])
    log_action(tx, action="expense_recorded", instance=expense, changes={"amount": amount})
    return expense


def record_expense(company, *, amount, payment_account_id, expense_account_id=None,
                   category_id=None, expense_date=None, description="", actor=None, role=None):
    """Dr expense / Cr payment account, bank outflow. Returns the Expense."""
    return run_in_ledger_transaction(
        lambda tx: record_expense_in_transaction(
            tx, amount=amount, payment_account_id=payment_account_id,
            expense_account_id=expense_account_id, category_id=category_id,
            expense_date=expense_date, description=description,
        ),
        company=company, actor=actor, role=role, roles=POSTING_ROLES,
    )
