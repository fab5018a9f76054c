"""
Advance allocation ledger.

A payroll run's per-employee "advances deducted" budget is consumed
against that employee's open advances, oldest `date_to_deduct` first.
Each allocation leaves one PayrollAdvanceDeduction row with the
before/after numbers; reversal replays those rows, nothing else.
"""
import logging
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

from ..exceptions import FailedPrecondition, NotFound, PermissionDenied
from ..models import (Advance, AdvanceStatus, PayrollAdvanceDeduction,
                      PayrollRun)
from ..models.payroll import OPEN_ADVANCE_STATUSES
from .audit_helper import log_action
from .unit_of_work import PAYROLL_ROLES, run_in_ledger_transaction
from .validation import ZERO, as_pk, normalize_money

logger = logging.getLogger(__name__)

# Remaining balance at or below this counts as repaid
REPAID_EPSILON = Decimal("0.009")


def month_increment(amount, monthly_deduction):
    """Instalments covered by `amount`; at least one."""
    if monthly_deduction and monthly_deduction > 0:
        months = (amount / monthly_deduction).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return max(1, int(months))
    return 1


def _is_repaid(remaining, months_deducted, months_to_repay):
    return remaining <= REPAID_EPSILON or (
        months_to_repay > 0 and months_deducted >= months_to_repay
    )


def status_after_restore(advance, remaining, months_deducted):
    if _is_repaid(remaining, months_deducted, advance.months_to_repay):
        return AdvanceStatus.DEDUCTED
    if remaining >= advance.original_amount and months_deducted == 0:
        return AdvanceStatus.PENDING
    return AdvanceStatus.PARTIAL


def load_payroll_run(tx, payroll_run_id, lock=True):
    qs = tx.locked(PayrollRun) if lock else tx.query(PayrollRun)
    run = qs.filter(pk=as_pk(payroll_run_id)).first()
    if run is None:
        raise NotFound("Payroll run not found.")
    if not tx.owns(run):
        raise PermissionDenied("Payroll run does not belong to this organization.")
    return run


def _budgets_by_employee(run):
    budgets = OrderedDict()
    for item in run.items.order_by("pk"):
        budget = normalize_money(item.advances_deducted)
        if budget > ZERO:
            budgets[item.employee_id] = budgets.get(item.employee_id, ZERO) + budget
    return budgets


# ----------------------------
# Apply
# ----------------------------
def apply_advance_deductions(tx, payroll_run):
    """Allocate the run's advance budgets FIFO; returns the deduction rows."""
    if tx.scoped(PayrollAdvanceDeduction).filter(payroll_run=payroll_run).exists():
        raise FailedPrecondition(
            f"Advance deductions were already applied for payroll run {payroll_run.pk}."
        )

    now = timezone.now()
    rows = []
    for employee_id, budget in _budgets_by_employee(payroll_run).items():
        advances = (
            tx.locked(Advance)
            .filter(company=tx.company, employee_id=employee_id,
                    status__in=OPEN_ADVANCE_STATUSES)
            .order_by("date_to_deduct", "created_at", "pk")
        )
        for advance in advances:
            if budget <= ZERO:
                break
            remaining = advance.remaining_balance
            if remaining <= ZERO:
                continue

            amount = min(remaining, budget)
            increment = month_increment(amount, advance.monthly_deduction)
            months_after = advance.months_deducted + increment
            balance_after = max(ZERO, remaining - amount)
            status_after = (
                AdvanceStatus.DEDUCTED
                if _is_repaid(balance_after, months_after, advance.months_to_repay)
                else AdvanceStatus.PARTIAL
            )

            row = PayrollAdvanceDeduction(
                company=tx.company,
                payroll_run=payroll_run,
                advance=advance,
                employee_id=employee_id,
                deduction_key=PayrollAdvanceDeduction.build_key(
                    tx.company.pk, payroll_run.pk, advance.pk
                ),
                amount=amount,
                balance_before=remaining,
                balance_after=balance_after,
                months_before=advance.months_deducted,
                months_after=months_after,
                month_increment=increment,
                status_before=advance.status,
                status_after=status_after,
            )
            row.save(using=tx.using)
            rows.append(row)

            advance.remaining_balance = balance_after
            advance.months_deducted = months_after
            advance.status = status_after
            advance.last_deducted_run = payroll_run
            advance.last_deducted_at = now
            advance.save(using=tx.using, update_fields=[
                "remaining_balance", "months_deducted", "status",
                "last_deducted_run", "last_deducted_at",
            ])
            budget -= amount

        if budget > ZERO:
            raise FailedPrecondition(
                f"Insufficient advance balance for employee {employee_id}: "
                f"{budget} of the advance deduction has no outstanding advance."
            )

    if rows:
        log_action(tx, action="advance_deductions_applied", instance=payroll_run, changes={
            "deductions": [{"advance_id": r.advance_id, "amount": r.amount} for r in rows],
        })
    logger.info("applied %d advance deductions", len(rows),
                extra={"company_id": tx.company.pk, "payroll_run_id": payroll_run.pk})
    return rows


# ----------------------------
# Reverse
# ----------------------------
def reverse_advance_deductions(tx, payroll_run):
    """
    Restore every unreversed deduction of the run. Rows whose advance
    is gone or belongs to another tenant are flagged with a skip reason
    and do not stop the others. Returns {"restored": [...], "skipped": [...]}.
    """
    now = timezone.now()
    restored, skipped = [], []
    rows = tx.locked(PayrollAdvanceDeduction).filter(
        company=tx.company, payroll_run=payroll_run, is_reversed=False
    ).order_by("pk")

    for row in rows:
        advance = None
        if row.advance_id is not None:
            advance = tx.locked(Advance).filter(pk=row.advance_id).first()

        if advance is None:
            row.skip_reason = "advance_missing"
        elif not tx.owns(advance):
            row.skip_reason = "cross_tenant"
        else:
            # never restore above what was originally owed
            balance = min(advance.original_amount, advance.remaining_balance + row.amount)
            months = max(0, advance.months_deducted - row.month_increment)
            advance.remaining_balance = balance
            advance.months_deducted = months
            advance.status = status_after_restore(advance, balance, months)
            advance.save(using=tx.using, update_fields=[
                "remaining_balance", "months_deducted", "status",
            ])

        row.is_reversed = True
        row.reversed_at = now
        row.reversed_by = tx.actor
        row.save(using=tx.using, update_fields=[
            "is_reversed", "reversed_at", "reversed_by", "skip_reason",
        ])
        if row.skip_reason:
            logger.warning(
                "advance deduction %s skipped: %s", row.deduction_key, row.skip_reason,
                extra={"company_id": tx.company.pk},
            )
            skipped.append(row)
        else:
            restored.append(row)

    if restored or skipped:
        log_action(tx, action="advance_deductions_reversed", instance=payroll_run, changes={
            "restored": [r.deduction_key for r in restored],
            "skipped": {r.deduction_key: r.skip_reason for r in skipped},
        })
    return {"restored": restored, "skipped": skipped}


def apply_deductions(company, payroll_run_id, actor=None, role=None):
    def _apply(tx):
        run = load_payroll_run(tx, payroll_run_id)
        return apply_advance_deductions(tx, run)

    return run_in_ledger_transaction(
        _apply, company=company, actor=actor, role=role, roles=PAYROLL_ROLES
    )


def reverse_deductions(company, payroll_run_id, actor=None, role=None):
    def _reverse(tx):
        run = load_payroll_run(tx, payroll_run_id)
        return reverse_advance_deductions(tx, run)

    return run_in_ledger_transaction(
        _reverse, company=company, actor=actor, role=role, roles=PAYROLL_ROLES
    )
