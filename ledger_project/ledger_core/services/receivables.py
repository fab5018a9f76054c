from ..exceptions import (AlreadyExists, FailedPrecondition, InvalidArgument,
                          NotFound, PermissionDenied)
from ..models import (AccountType, Customer, Direction, DocumentStatus, Invoice,
                      InvoiceLine, InvoicePayment, ReferenceType)
from ..models.bill import settlement_status
from .accounts import (ACCOUNTS_RECEIVABLE, SALES_REVENUE, resolve_payment_account,
                       resolve_typed_account, system_account)
from .audit_helper import log_action
from .posting import post_in_transaction
from .side_effects import issue_inventory_for_invoice, move_cash, update_counters
from .unit_of_work import POSTING_ROLES, run_in_ledger_transaction
from .validation import ZERO, as_pk, assert_positive_amount, normalize_money, to_date_only


def _customer(tx, customer_id):
    customer = tx.query(Customer).filter(pk=as_pk(customer_id)).first()
    if customer is None:
        raise NotFound(f"Customer {customer_id} not found.")
    if not tx.owns(customer):
        raise PermissionDenied(f"Customer {customer_id} is not in this organization.")
    return customer


def _invoice_lines(lines):
    """[{description, quantity, unit_price, product_id}] → unsaved InvoiceLines."""
    if not lines:
        raise InvalidArgument("Invoice requires at least one line.")
    built = []
    for idx, raw in enumerate(lines, start=1):
        quantity = normalize_money(raw.get("quantity", 1), f"lines[{idx}].quantity")
        unit_price = normalize_money(raw.get("unit_price"), f"lines[{idx}].unit_price")
        if quantity <= ZERO:
            raise InvalidArgument(f"lines[{idx}].quantity must be greater than zero.")
        if unit_price < ZERO:
            raise InvalidArgument(f"lines[{idx}].unit_price cannot be negative.")
        built.append(InvoiceLine(
            product_id=raw.get("product_id") or None,
            description=(raw.get("description") or "").strip(),
            quantity=quantity,
            unit_price=unit_price,
        ))
    return built


# ----------------------------
# Invoices
# ----------------------------
def create_invoice(company, *, customer_id, invoice_number, lines, invoice_date=None,
                   due_date=None, revenue_account_id=None, description="",
                   actor=None, role=None):
    """
    Dr Accounts Receivable / Cr revenue for the sum of the lines.
    Product lines are issued from stock in the same transaction.
    """

    def _create(tx):
        day = to_date_only(invoice_date)
        number = (invoice_number or "").strip()
        if not number:
            raise InvalidArgument("invoice_number is required.")
        customer = _customer(tx, customer_id)
        if tx.scoped(Invoice).filter(invoice_number=number).exists():
            raise AlreadyExists(f"Invoice number {number} already exists.")

        invoice_lines = _invoice_lines(lines)
        total = sum((line.line_total for line in invoice_lines), ZERO)
        if total <= ZERO:
            raise InvalidArgument("Invoice total must be greater than zero.")

        if revenue_account_id:
            revenue = resolve_typed_account(
                tx, revenue_account_id, AccountType.INCOME, "Revenue account"
            )
        else:
            revenue = system_account(tx, SALES_REVENUE)
        ar = system_account(tx, ACCOUNTS_RECEIVABLE)

        invoice = Invoice(
            company=tx.company,
            customer=customer,
            invoice_number=number,
            invoice_date=day,
            due_date=to_date_only(due_date) if due_date else None,
            description=description,
            revenue_account=revenue,
            total=total,
            status=DocumentStatus.UNPAID,
            created_by=tx.actor,
        )
        invoice.save(using=tx.using)
        for line in invoice_lines:
            line.invoice = invoice
            line.save(using=tx.using)

        def _book(tx, entry):
            update_counters(tx, Customer, customer.pk, {
                "total_invoiced": total, "outstanding_balance": total,
            })
            issue_inventory_for_invoice(tx, invoice, day)

        entry = post_in_transaction(
            tx,
            ReferenceType.INVOICE,
            invoice.pk,
            day,
            [
                {"account_id": ar.pk, "debit": total, "description": f"Invoice {number}"},
                {"account_id": revenue.pk, "credit": total, "description": description or "Revenue"},
            ],
            description=f"Invoice: {number}",
            side_effects=[_book],
        )
        invoice.journal_entry = entry
        invoice.save(using=tx.using, update_fields=["journal_entry"])
        log_action(tx, action="invoice_created", instance=invoice, changes={
            "invoice_number": number, "total": total,
        })
        return invoice

    return run_in_ledger_transaction(
        _create, company=company, actor=actor, role=role, roles=POSTING_ROLES
    )


def record_invoice_payment(company, *, invoice_id, amount, payment_account_id,
                           payment_date=None, notes="", actor=None, role=None):
    """Dr payment account / Cr Accounts Receivable; bank inflow."""

    def _receive(tx):
        received = assert_positive_amount(amount)
        day = to_date_only(payment_date)
        invoice = tx.locked(Invoice).filter(pk=as_pk(invoice_id)).first()
        if invoice is None:
            raise NotFound("Invoice not found.")
        if not tx.owns(invoice):
            raise PermissionDenied("Invoice does not belong to this organization.")
        if invoice.status in (DocumentStatus.PAID, DocumentStatus.VOID):
            raise FailedPrecondition(f"Invoice is already {invoice.status}.")

        outstanding = invoice.outstanding
        if received > outstanding:
            raise InvalidArgument(
                f"Payment amount exceeds outstanding balance of {outstanding}."
            )

        payment_account = resolve_payment_account(tx, payment_account_id)
        ar = system_account(tx, ACCOUNTS_RECEIVABLE)

        payment = InvoicePayment(
            company=tx.company,
            invoice=invoice,
            payment_account=payment_account,
            payment_date=day,
            amount=received,
            notes=notes,
            created_by=tx.actor,
        )
        payment.save(using=tx.using)

        def _settle(tx, entry):
            invoice.amount_paid = invoice.amount_paid + received
            invoice.status = settlement_status(invoice.total, invoice.amount_paid)
            invoice.save(using=tx.using, update_fields=["amount_paid", "status"])
            update_counters(tx, Customer, invoice.customer_id, {
                "total_received": received, "outstanding_balance": -received,
            })
            move_cash(
                tx,
                payment_account=payment_account,
                amount=received,
                direction=Direction.INFLOW,
                transaction_date=day,
                reference_type=ReferenceType.INVOICE_PAYMENT,
                reference_id=payment.pk,
                description=notes or f"Invoice payment {invoice.invoice_number}",
                journal_entry=entry,
            )

        entry = post_in_transaction(
            tx,
            ReferenceType.INVOICE_PAYMENT,
            payment.pk,
            day,
            [
                {"account_id": payment_account.pk, "debit": received,
                 "description": "Received to cash/bank"},
                {"account_id": ar.pk, "credit": received, "description": "Accounts receivable settled"},
            ],
            description=f"Invoice Payment: {invoice.invoice_number}",
            side_effects=[_settle],
        )
        payment.journal_entry = entry
        payment.save(using=tx.using, update_fields=["journal_entry"])
        log_action(tx, action="invoice_payment_recorded", instance=payment, changes={
            "invoice_id": invoice.pk, "amount": received, "status": invoice.status,
        })
        return payment

    return run_in_ledger_transaction(
        _receive, company=company, actor=actor, role=role, roles=POSTING_ROLES
    )
