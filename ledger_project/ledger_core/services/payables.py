from ..exceptions import FailedPrecondition, InvalidArgument, NotFound, PermissionDenied
from ..models import (AccountType, Bill, BillPayment, Direction, DocumentStatus,
                      ReferenceType, Vendor)
from ..models.bill import settlement_status
from .accounts import (ACCOUNTS_PAYABLE, resolve_payment_account,
                       resolve_typed_account, system_account)
from .audit_helper import log_action
from .posting import post_in_transaction
from .side_effects import move_cash, update_counters
from .unit_of_work import POSTING_ROLES, run_in_ledger_transaction
from .validation import as_pk, assert_positive_amount, to_date_only


# ----------------------------
# Bills
# ----------------------------
def create_bill(company, *, vendor_id, amount, expense_account_id, bill_date=None,
                due_date=None, bill_number="", description="", actor=None, role=None):
    """Dr expense / Cr Accounts Payable; vendor billed and outstanding go up."""

    def _create(tx):
        total = assert_positive_amount(amount)
        day = to_date_only(bill_date)
        vendor = tx.query(Vendor).filter(pk=as_pk(vendor_id)).first()
        if vendor is None:
            raise NotFound(f"Vendor {vendor_id} not found.")
        if not tx.owns(vendor):
            raise PermissionDenied(f"Vendor {vendor_id} is not in this organization.")

        expense_account = resolve_typed_account(
            tx, expense_account_id, AccountType.EXPENSE, "Expense account"
        )
        ap = system_account(tx, ACCOUNTS_PAYABLE)

        bill = Bill(
            company=tx.company,
            vendor=vendor,
            bill_number=bill_number,
            bill_date=day,
            due_date=to_date_only(due_date) if due_date else None,
            description=description,
            expense_account=expense_account,
            total=total,
            status=DocumentStatus.UNPAID,
            created_by=tx.actor,
        )
        bill.full_clean()
        bill.save(using=tx.using)

        entry = post_in_transaction(
            tx,
            ReferenceType.BILL,
            bill.pk,
            day,
            [
                {"account_id": expense_account.pk, "debit": total, "description": description},
                {"account_id": ap.pk, "credit": total, "description": "Accounts payable"},
            ],
            description=f"Bill: {bill_number or bill.pk}",
            side_effects=[lambda tx, entry: update_counters(tx, Vendor, vendor.pk, {
                "total_billed": total, "outstanding_payables": total,
            })],
        )
        bill.journal_entry = entry
        bill.save(using=tx.using, update_fields=["journal_entry"])
        log_action(tx, action="bill_created", instance=bill, changes={"total": total})
        return bill

    return run_in_ledger_transaction(
        _create, company=company, actor=actor, role=role, roles=POSTING_ROLES
    )


def pay_bill(company, *, bill_id, amount, payment_account_id, payment_date=None,
             notes="", actor=None, role=None):
    """Dr Accounts Payable / Cr payment account; bank outflow, bill status."""

    def _pay(tx):
        paid_now = assert_positive_amount(amount)
        day = to_date_only(payment_date)
        bill = tx.locked(Bill).filter(pk=as_pk(bill_id)).first()
        if bill is None:
            raise NotFound("Bill not found.")
        if not tx.owns(bill):
            raise PermissionDenied("Bill does not belong to this organization.")
        if bill.status in (DocumentStatus.PAID, DocumentStatus.VOID):
            raise FailedPrecondition(f"Bill is already {bill.status}.")

        outstanding = bill.outstanding
        if paid_now > outstanding:
            raise InvalidArgument(
                f"Payment amount exceeds outstanding balance of {outstanding}."
            )

        payment_account = resolve_payment_account(tx, payment_account_id)
        ap = system_account(tx, ACCOUNTS_PAYABLE)

        payment = BillPayment(
            company=tx.company,
            bill=bill,
            payment_account=payment_account,
            payment_date=day,
            amount=paid_now,
            notes=notes,
            created_by=tx.actor,
        )
        payment.save(using=tx.using)

        def _settle(tx, entry):
            bill.amount_paid = bill.amount_paid + paid_now
            bill.status = settlement_status(bill.total, bill.amount_paid, bill.due_date, day)
            bill.save(using=tx.using, update_fields=["amount_paid", "status"])
            update_counters(tx, Vendor, bill.vendor_id, {
                "total_paid": paid_now, "outstanding_payables": -paid_now,
            })
            move_cash(
                tx,
                payment_account=payment_account,
                amount=paid_now,
                direction=Direction.OUTFLOW,
                transaction_date=day,
                reference_type=ReferenceType.BILL_PAYMENT,
                reference_id=payment.pk,
                description=notes or f"Bill payment {bill.bill_number or bill.pk}",
                journal_entry=entry,
            )

        entry = post_in_transaction(
            tx,
            ReferenceType.BILL_PAYMENT,
            payment.pk,
            day,
            [
                {"account_id": ap.pk, "debit": paid_now, "description": "Accounts payable settled"},
                {"account_id": payment_account.pk, "credit": paid_now,
                 "description": "Paid from cash/bank"},
            ],
            description=f"Bill Payment: {bill.bill_number or bill.pk}",
            side_effects=[_settle],
        )
        payment.journal_entry = entry
        payment.save(using=tx.using, update_fields=["journal_entry"])
        log_action(tx, action="bill_paid", instance=payment, changes={
            "bill_id": bill.pk, "amount": paid_now, "status": bill.status,
        })
        return payment

    return run_in_ledger_transaction(
        _pay, company=company, actor=actor, role=role, roles=POSTING_ROLES
    )
