import logging

from django.utils import timezone

from ..exceptions import FailedPrecondition, InvalidArgument, NotFound, PermissionDenied
from ..models import (Direction, Employee, PayrollItem, PayrollRun, PayrollStatus,
                      ReferenceType)
from .accounts import (PAYE_PAYABLE, SALARIES_EXPENSE, SALARIES_PAYABLE, STAFF_ADVANCES,
                       resolve_payment_account, system_account)
from .advances import apply_advance_deductions, load_payroll_run
from .audit_helper import log_action
from .posting import post_in_transaction
from .side_effects import move_cash
from .unit_of_work import PAYROLL_ROLES, run_in_ledger_transaction
from .validation import ZERO, as_pk, normalize_money, to_date_only

logger = logging.getLogger(__name__)


def _payroll_item(tx, idx, raw):
    employee = tx.query(Employee).filter(pk=as_pk(raw.get("employee_id"))).first()
    if employee is None:
        raise NotFound(f"items[{idx}]: employee {raw.get('employee_id')} not found.")
    if not tx.owns(employee):
        raise PermissionDenied(f"items[{idx}]: employee is not in this organization.")

    gross = normalize_money(raw.get("gross_salary"), f"items[{idx}].gross_salary")
    paye = normalize_money(raw.get("paye"), f"items[{idx}].paye")
    other = normalize_money(raw.get("other_deductions"), f"items[{idx}].other_deductions")
    advances = normalize_money(raw.get("advances_deducted"), f"items[{idx}].advances_deducted")
    if min(gross, paye, other, advances) < ZERO:
        raise InvalidArgument(f"items[{idx}]: amounts cannot be negative.")

    net = gross - paye - other - advances
    if net < ZERO:
        raise InvalidArgument(f"items[{idx}]: deductions exceed gross salary.")
    return PayrollItem(
        employee=employee,
        gross_salary=gross,
        paye=paye,
        other_deductions=other,
        advances_deducted=advances,
        net_salary=net,
    )


# ----------------------------
# Draft
# ----------------------------
def create_payroll_run(company, *, period_start, period_end, items, run_date=None,
                       period_label="", actor=None, role=None):
    """Draft run with one item per employee; nothing is posted yet."""

    def _create(tx):
        if not items:
            raise InvalidArgument("Payroll run requires at least one item.")
        built = [_payroll_item(tx, idx, raw) for idx, raw in enumerate(items, start=1)]

        run = PayrollRun(
            company=tx.company,
            period_label=period_label,
            period_start=to_date_only(period_start),
            period_end=to_date_only(period_end),
            run_date=to_date_only(run_date),
            status=PayrollStatus.DRAFT,
            total_gross=sum((i.gross_salary for i in built), ZERO),
            total_deductions=sum((i.statutory_deductions for i in built), ZERO),
            total_advances=sum((i.advances_deducted for i in built), ZERO),
            total_net=sum((i.net_salary for i in built), ZERO),
            created_by=tx.actor,
        )
        run.full_clean()
        run.save(using=tx.using)
        for item in built:
            item.payroll_run = run
            item.save(using=tx.using)
        log_action(tx, action="payroll_run_created", instance=run, changes={
            "total_gross": run.total_gross, "items": len(built),
        })
        return run

    return run_in_ledger_transaction(
        _create, company=company, actor=actor, role=role, roles=PAYROLL_ROLES
    )


# ----------------------------
# Process
# ----------------------------
def process_payroll(company, payroll_run_id, entry_date=None, actor=None, role=None):
    """
    Post the payroll accrual and recover salary advances.

    Dr Salaries Expense (gross) / Cr Salaries Payable (net),
    Cr PAYE Payable (statutory), Cr Staff Advances (advance recoveries).
    """

    def _process(tx):
        run = load_payroll_run(tx, payroll_run_id)
        if run.status != PayrollStatus.DRAFT:
            raise FailedPrecondition(f"Payroll run is {run.status}; only draft runs can be processed.")
        if run.total_gross <= ZERO:
            raise FailedPrecondition("Payroll run has no gross salary to post.")
        day = to_date_only(entry_date or run.run_date)

        lines = [{
            "account_id": system_account(tx, SALARIES_EXPENSE).pk,
            "debit": run.total_gross,
            "description": "Gross salaries",
        }]
        credits = [
            (SALARIES_PAYABLE, run.total_net, "Net salaries payable"),
            (PAYE_PAYABLE, run.total_deductions, "Statutory deductions"),
            (STAFF_ADVANCES, run.total_advances, "Salary advances recovered"),
        ]
        for wanted, amount, label in credits:
            if amount > ZERO:
                lines.append({
                    "account_id": system_account(tx, wanted).pk,
                    "credit": amount,
                    "description": label,
                })

        entry = post_in_transaction(
            tx,
            ReferenceType.PAYROLL,
            run.pk,
            day,
            lines,
            description=f"Payroll: {run.period_label or run.period_end}",
            side_effects=[lambda tx, entry: apply_advance_deductions(tx, run)],
        )
        run.journal_entry = entry
        run.status = PayrollStatus.PROCESSED
        run.processed_at = timezone.now()
        run.save(using=tx.using, update_fields=["journal_entry", "status", "processed_at"])
        log_action(tx, action="payroll_processed", instance=run, changes={
            "journal_entry_id": entry.pk, "total_net": run.total_net,
        })
        return run

    return run_in_ledger_transaction(
        _process, company=company, actor=actor, role=role, roles=PAYROLL_ROLES
    )


# ----------------------------
# Pay
# ----------------------------
def pay_salaries(company, payroll_run_id, payment_account_id, payment_date=None,
                 actor=None, role=None):
    """Dr Salaries Payable / Cr payment account for the run's net pay."""

    def _pay(tx):
        run = load_payroll_run(tx, payroll_run_id)
        if run.status != PayrollStatus.PROCESSED:
            raise FailedPrecondition(
                f"Payroll run is {run.status}; only processed runs can be paid."
            )
        if run.total_net <= ZERO:
            raise FailedPrecondition("Payroll run has no net salary to pay.")
        day = to_date_only(payment_date)
        payment_account = resolve_payment_account(tx, payment_account_id)
        payable = system_account(tx, SALARIES_PAYABLE)

        def _cash_out(tx, entry):
            move_cash(
                tx,
                payment_account=payment_account,
                amount=run.total_net,
                direction=Direction.OUTFLOW,
                transaction_date=day,
                reference_type=ReferenceType.PAYROLL_PAYMENT,
                reference_id=run.pk,
                description=f"Salaries {run.period_label}".strip(),
                journal_entry=entry,
            )

        entry = post_in_transaction(
            tx,
            ReferenceType.PAYROLL_PAYMENT,
            run.pk,
            day,
            [
                {"account_id": payable.pk, "debit": run.total_net, "description": "Salaries paid"},
                {"account_id": payment_account.pk, "credit": run.total_net,
                 "description": "Paid from cash/bank"},
            ],
            description=f"Salary payment: {run.period_label or run.period_end}",
            side_effects=[_cash_out],
        )
        run.status = PayrollStatus.PAID
        run.payment_journal_entry = entry
        run.payment_account = payment_account
        run.payment_date = day
        run.save(using=tx.using, update_fields=[
            "status", "payment_journal_entry", "payment_account", "payment_date",
        ])
        log_action(tx, action="salaries_paid", instance=run, changes={
            "journal_entry_id": entry.pk, "amount": run.total_net,
        })
        logger.info("paid salaries for payroll run %s", run.pk,
                    extra={"company_id": tx.company.pk, "amount": str(run.total_net)})
        return run

    return run_in_ledger_transaction(
        _pay, company=company, actor=actor, role=role, roles=PAYROLL_ROLES
    )
