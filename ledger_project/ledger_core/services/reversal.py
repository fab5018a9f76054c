"""
Reversal engine.

A posted entry is reversed by posting its lines with debit and credit
swapped, then undoing what the originating business operation did
outside the ledger (payments, bank balance, counters, inventory,
advance deductions). posted → reversed is terminal and a reversal
entry can never be reversed itself.
"""
import logging

from django.utils import timezone

from ..exceptions import FailedPrecondition, InvalidArgument, NotFound, PermissionDenied
from ..models import (Bill, BillPayment, Customer, Direction, DocumentStatus,
                      Expense, Invoice, InvoicePayment, JournalEntry,
                      PayrollRun, PayrollStatus, ReferenceType, Vendor)
from ..models.bill import settlement_status
from .advances import reverse_advance_deductions
from .audit_helper import log_action
from .periods import assert_period_unlocked
from .posting import post_in_transaction
from .side_effects import move_cash, restock_inventory_for_invoice, update_counters
from .unit_of_work import POSTING_ROLES, run_in_ledger_transaction
from .validation import JournalLineInput, as_pk, to_date_only

logger = logging.getLogger(__name__)

# reference type → fn(tx, original, reversal, reversal_date)
UNDO_HANDLERS = {}


def undo_handler(*reference_types):
    def register(fn):
        for reference_type in reference_types:
            UNDO_HANDLERS[reference_type] = fn
        return fn
    return register


def _load_owned(tx, model, reference_id):
    """Locked row for the entry's reference, or None when missing/foreign."""
    row = tx.locked(model).filter(pk=as_pk(reference_id)).first()
    if row is None or not tx.owns(row):
        logger.warning(
            "%s %s referenced by a reversed entry is unavailable; skipping undo",
            model.__name__, reference_id, extra={"company_id": tx.company.pk},
        )
        return None
    return row


# ----------------------------
# Payments
# ----------------------------
# payment model, document model, document fk, counter model, counter fk,
# counter deltas per unit reversed, cash direction of the undo, label
PAYMENT_UNDO = {
    ReferenceType.BILL_PAYMENT: (
        BillPayment, Bill, "bill", Vendor, "vendor_id",
        {"total_paid": -1, "outstanding_payables": 1},
        Direction.INFLOW, "Bill payment",
    ),
    ReferenceType.INVOICE_PAYMENT: (
        InvoicePayment, Invoice, "invoice", Customer, "customer_id",
        {"total_received": -1, "outstanding_balance": 1},
        Direction.OUTFLOW, "Invoice payment",
    ),
}


@undo_handler(ReferenceType.BILL_PAYMENT, ReferenceType.INVOICE_PAYMENT)
def undo_payment(tx, original, reversal, reversal_date):
    (payment_model, document_model, document_fk, counter_model, counter_fk,
     deltas, direction, label) = PAYMENT_UNDO[original.reference_type]

    payment = _load_owned(tx, payment_model, original.reference_id)
    if payment is None:
        return
    # guarded on the payment itself, independent of the entry flag
    if payment.is_reversed:
        raise FailedPrecondition(f"{label} has already been reversed.")

    payment.is_reversed = True
    payment.reversed_at = timezone.now()
    payment.reversal_entry = reversal
    payment.save(using=tx.using, update_fields=["is_reversed", "reversed_at", "reversal_entry"])

    amount = payment.amount
    document = _load_owned(tx, document_model, getattr(payment, f"{document_fk}_id"))
    if document is not None:
        new_paid = max(document.amount_paid - amount, 0)
        document.amount_paid = new_paid
        document.status = settlement_status(document.total, new_paid)
        document.save(using=tx.using, update_fields=["amount_paid", "status"])
        update_counters(
            tx, counter_model, getattr(document, counter_fk),
            {field: amount * sign for field, sign in deltas.items()},
        )

    move_cash(
        tx,
        payment_account=payment.payment_account,
        amount=amount,
        direction=direction,
        transaction_date=reversal_date,
        reference_type=f"{original.reference_type}Reversal",
        reference_id=payment.pk,
        description=f"Reversal of {label.lower()} {payment.pk}",
        journal_entry=reversal,
    )


# ----------------------------
# Documents
# ----------------------------
@undo_handler(ReferenceType.EXPENSE)
def undo_expense(tx, original, reversal, reversal_date):
    expense = _load_owned(tx, Expense, original.reference_id)
    if expense is None:
        return
    expense.is_reversed = True
    expense.save(using=tx.using, update_fields=["is_reversed"])
    move_cash(
        tx,
        payment_account=expense.payment_account,
        amount=expense.amount,
        direction=Direction.INFLOW,
        transaction_date=reversal_date,
        reference_type="ExpenseReversal",
        reference_id=expense.pk,
        description=f"Reversal of expense {expense.pk}",
        journal_entry=reversal,
    )


def _void_document(tx, document, label):
    if document.payments.filter(is_reversed=False).exists():
        raise FailedPrecondition(
            f"{label} has payments applied. Reverse the payments first."
        )
    document.status = DocumentStatus.VOID
    document.save(using=tx.using, update_fields=["status"])


@undo_handler(ReferenceType.BILL)
def undo_bill(tx, original, reversal, reversal_date):
    bill = _load_owned(tx, Bill, original.reference_id)
    if bill is None:
        return
    _void_document(tx, bill, "Bill")
    update_counters(tx, Vendor, bill.vendor_id, {
        "total_billed": -bill.total,
        "outstanding_payables": -bill.total,
    })


@undo_handler(ReferenceType.INVOICE)
def undo_invoice(tx, original, reversal, reversal_date):
    invoice = _load_owned(tx, Invoice, original.reference_id)
    if invoice is None:
        return
    _void_document(tx, invoice, "Invoice")
    update_counters(tx, Customer, invoice.customer_id, {
        "total_invoiced": -invoice.total,
        "outstanding_balance": -invoice.total,
    })
    restock_inventory_for_invoice(tx, invoice, reversal_date)


# ----------------------------
# Payroll
# ----------------------------
@undo_handler(ReferenceType.PAYROLL)
def undo_payroll(tx, original, reversal, reversal_date):
    run = _load_owned(tx, PayrollRun, original.reference_id)
    if run is None:
        return
    if run.status == PayrollStatus.PAID:
        raise FailedPrecondition(
            "Salaries for this payroll run were paid. Reverse the salary payment first."
        )
    reverse_advance_deductions(tx, run)
    run.status = PayrollStatus.REVERSED
    run.save(using=tx.using, update_fields=["status"])


@undo_handler(ReferenceType.PAYROLL_PAYMENT)
def undo_payroll_payment(tx, original, reversal, reversal_date):
    run = _load_owned(tx, PayrollRun, original.reference_id)
    if run is None:
        return
    payment_account = run.payment_account
    run.status = PayrollStatus.PROCESSED
    run.payment_journal_entry = None
    run.payment_date = None
    run.payment_account = None
    run.save(using=tx.using, update_fields=[
        "status", "payment_journal_entry", "payment_date", "payment_account",
    ])
    if payment_account is not None:
        move_cash(
            tx,
            payment_account=payment_account,
            amount=original.debit_total,
            direction=Direction.INFLOW,
            transaction_date=reversal_date,
            reference_type="PayrollPaymentReversal",
            reference_id=run.pk,
            description=f"Reversal of salary payment {run.period_label}".strip(),
            journal_entry=reversal,
        )


# ----------------------------
# Engine
# ----------------------------
def _load_reversible_entry(tx, journal_entry_id):
    original = tx.locked(JournalEntry).filter(pk=as_pk(journal_entry_id)).first()
    if original is None:
        raise NotFound("Journal entry not found.")
    if not tx.owns(original):
        raise PermissionDenied("Journal entry does not belong to this organization.")
    if not original.is_posted:
        raise FailedPrecondition("Only posted journal entries can be reversed.")
    if original.is_reversal or original.reversal_of_id:
        raise FailedPrecondition("Reversal entries cannot be reversed again.")
    # the link field, not a search for reversal entries
    if original.is_reversed or original.reversal_entry_id:
        raise FailedPrecondition("Journal entry has already been reversed.")
    return original


def reverse_in_transaction(tx, journal_entry_id, reason="", reversal_date=None):
    """Reverse one entry inside the caller's ledger transaction."""
    if reason is not None and not isinstance(reason, str):
        raise InvalidArgument("Reversal reason must be a string.")
    reason = (reason or "").strip()
    day = to_date_only(reversal_date)
    assert_period_unlocked(tx, day)

    original = _load_reversible_entry(tx, journal_entry_id)
    lines = list(original.lines.order_by("line_number"))
    if len(lines) < 2:
        raise FailedPrecondition("Journal entry must contain at least two lines to reverse.")

    # exact inverse: amounts swapped verbatim, never recomputed
    mirrored = [
        JournalLineInput(
            account_id=line.account_id,
            debit=line.credit_amount,
            credit=line.debit_amount,
            description=line.description,
        )
        for line in lines
    ]
    description = f"Reversal of {original.pk}" + (f": {reason}" if reason else "")
    reversal = post_in_transaction(
        tx,
        ReferenceType.MANUAL_ENTRY,
        original.pk,
        day,
        mirrored,
        description=description,
        metadata={
            "is_reversal": True,
            "reversal_of": original.pk,
            "reason": reason,
            "original_reference_type": original.reference_type,
        },
        reversal_of=original,
        reversal_reason=reason,
    )

    handler = UNDO_HANDLERS.get(original.reference_type)
    if handler is not None:
        handler(tx, original, reversal, day)

    original.mark_reversed(reversal, tx.actor, using=tx.using)

    log_action(tx, action="journal_entry_reversed", instance=original, changes={
        "reversal_entry_id": reversal.pk,
        "reason": reason,
        "reference_type": original.reference_type,
    })
    logger.info(
        "reversed journal entry %s with %s", original.pk, reversal.pk,
        extra={"company_id": tx.company.pk, "reference_type": original.reference_type},
    )
    return reversal


def reverse(company, journal_entry_id, reason="", reversal_date=None, actor=None, role=None):
    """Reverse a posted entry in its own ledger transaction; returns the new entry id."""
    reversal = run_in_ledger_transaction(
        lambda tx: reverse_in_transaction(tx, journal_entry_id, reason, reversal_date),
        company=company, actor=actor, role=role, roles=POSTING_ROLES,
    )
    return reversal.pk
