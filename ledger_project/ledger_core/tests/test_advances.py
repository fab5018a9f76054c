import datetime
from decimal import Decimal

from django.test import TestCase

from ledger_core.exceptions import FailedPrecondition, PermissionDenied
from ledger_core.models import (Advance, AdvanceStatus, BankAccount, Company,
                                EntityMembership, JournalEntry, PayrollAdvanceDeduction,
                                PayrollStatus, User)
from ledger_core.services import (apply_deductions, create_payroll_run, pay_salaries,
                                  process_payroll, reverse, reverse_deductions)
from ledger_core.services.advances import month_increment

from .utils import DAY, account, link_bank, make_advance, make_employee, make_tenant

JAN = datetime.date(2025, 1, 1)
FEB = datetime.date(2025, 2, 1)


def test_month_increment_rounds_and_floors_at_one():
    assert month_increment(Decimal("100"), Decimal("50")) == 2
    assert month_increment(Decimal("75"), Decimal("50")) == 2
    assert month_increment(Decimal("10"), Decimal("50")) == 1
    assert month_increment(Decimal("10"), Decimal("0")) == 1


class AdvanceAllocationTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.employee = make_employee(self.company)
        # created newest first so FIFO has to come from date_to_deduct
        self.a2 = make_advance(self.company, self.employee, "200.00", FEB)
        self.a1 = make_advance(self.company, self.employee, "100.00", JAN)
        self.run = self._run("150.00")

    def _run(self, advances):
        return create_payroll_run(
            self.company, period_start=DAY.replace(day=1), period_end=DAY,
            run_date=DAY, period_label="March 2025", actor=self.user,
            items=[{"employee_id": self.employee.pk, "gross_salary": "1000.00",
                    "advances_deducted": advances}],
        )

    def test_oldest_advance_is_consumed_first(self):
        rows = apply_deductions(self.company, self.run.pk, actor=self.user)

        self.assertEqual([(r.advance_id, r.amount) for r in rows],
                         [(self.a1.pk, Decimal("100.00")), (self.a2.pk, Decimal("50.00"))])
        self.a1.refresh_from_db()
        self.a2.refresh_from_db()
        self.assertEqual((self.a1.remaining_balance, self.a1.status),
                         (Decimal("0.00"), AdvanceStatus.DEDUCTED))
        self.assertEqual((self.a2.remaining_balance, self.a2.status),
                         (Decimal("150.00"), AdvanceStatus.PARTIAL))
        self.assertEqual(self.a2.last_deducted_run_id, self.run.pk)

        first = PayrollAdvanceDeduction.objects.get(advance=self.a1)
        self.assertEqual(first.deduction_key, f"{self.company.pk}_{self.run.pk}_{self.a1.pk}")
        self.assertEqual((first.balance_before, first.balance_after),
                         (Decimal("100.00"), Decimal("0.00")))
        self.assertEqual((first.months_before, first.months_after), (0, 1))

    def test_applying_twice_is_rejected(self):
        apply_deductions(self.company, self.run.pk, actor=self.user)
        with self.assertRaises(FailedPrecondition):
            apply_deductions(self.company, self.run.pk, actor=self.user)
        self.assertEqual(PayrollAdvanceDeduction.objects.count(), 2)

    def test_budget_beyond_outstanding_advances_changes_nothing(self):
        run = self._run("400.00")
        with self.assertRaises(FailedPrecondition) as exc:
            apply_deductions(self.company, run.pk, actor=self.user)
        self.assertIn("Insufficient advance balance", str(exc.exception))
        self.a1.refresh_from_db()
        self.assertEqual(self.a1.remaining_balance, Decimal("100.00"))
        self.assertFalse(PayrollAdvanceDeduction.objects.exists())

    def test_reversal_restores_each_advance(self):
        apply_deductions(self.company, self.run.pk, actor=self.user)
        result = reverse_deductions(self.company, self.run.pk, actor=self.user)

        self.assertEqual(len(result["restored"]), 2)
        self.assertEqual(result["skipped"], [])
        for advance, amount in ((self.a1, "100.00"), (self.a2, "200.00")):
            advance.refresh_from_db()
            self.assertEqual(advance.remaining_balance, Decimal(amount))
            self.assertEqual(advance.months_deducted, 0)
            self.assertEqual(advance.status, AdvanceStatus.PENDING)
        self.assertFalse(PayrollAdvanceDeduction.objects.filter(is_reversed=False).exists())

        # already reversed rows are not replayed
        again = reverse_deductions(self.company, self.run.pk, actor=self.user)
        self.assertEqual(again, {"restored": [], "skipped": []})
        self.a1.refresh_from_db()
        self.assertEqual(self.a1.remaining_balance, Decimal("100.00"))

    def test_missing_and_foreign_advances_are_skipped(self):
        apply_deductions(self.company, self.run.pk, actor=self.user)
        other = Company.objects.create(name="Globex", slug="globex")
        Advance.objects.filter(pk=self.a1.pk).update(company=other)
        self.a2.delete()

        result = reverse_deductions(self.company, self.run.pk, actor=self.user)
        self.assertEqual(result["restored"], [])
        reasons = sorted(row.skip_reason for row in result["skipped"])
        self.assertEqual(reasons, ["advance_missing", "cross_tenant"])
        self.assertTrue(all(row.is_reversed for row in result["skipped"]))
        # the foreign advance is left alone
        self.assertEqual(Advance.objects.get(pk=self.a1.pk).remaining_balance, Decimal("0.00"))

    def test_hr_manager_may_run_deductions_but_viewer_may_not(self):
        hr = User.objects.create_user(username="hr", password="pw")
        EntityMembership.objects.create(user=hr, company=self.company, role="hr_manager")
        self.assertEqual(len(apply_deductions(self.company, self.run.pk, actor=hr)), 2)

        viewer = User.objects.create_user(username="viewer", password="pw")
        EntityMembership.objects.create(user=viewer, company=self.company, role="viewer")
        with self.assertRaises(PermissionDenied):
            reverse_deductions(self.company, self.run.pk, actor=viewer)


class PayrollFlowTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.employee = make_employee(self.company)
        self.advance = make_advance(self.company, self.employee, "100.00", JAN)
        self.bank_ledger = account(self.company, 1010)
        self.bank = link_bank(self.company, 1010, "5000.00")
        self.run = create_payroll_run(
            self.company, period_start=DAY.replace(day=1), period_end=DAY, run_date=DAY,
            period_label="March 2025", actor=self.user,
            items=[{"employee_id": self.employee.pk, "gross_salary": "1000.00",
                    "paye": "100.00", "advances_deducted": "50.00"}],
        )

    def test_processing_posts_the_accrual_and_recovers_advances(self):
        run = process_payroll(self.company, self.run.pk, actor=self.user)
        self.assertEqual(run.status, PayrollStatus.PROCESSED)
        self.assertEqual(run.total_net, Decimal("850.00"))

        posted = {
            line.account.code: (line.debit_amount, line.credit_amount)
            for line in run.journal_entry.lines.select_related("account")
        }
        self.assertEqual(posted, {
            5040: (Decimal("1000.00"), Decimal("0.00")),
            2010: (Decimal("0.00"), Decimal("850.00")),
            2031: (Decimal("0.00"), Decimal("100.00")),
            1050: (Decimal("0.00"), Decimal("50.00")),
        })
        self.advance.refresh_from_db()
        self.assertEqual(self.advance.remaining_balance, Decimal("50.00"))

    def test_only_draft_runs_are_processed(self):
        process_payroll(self.company, self.run.pk, actor=self.user)
        with self.assertRaises(FailedPrecondition):
            process_payroll(self.company, self.run.pk, actor=self.user)

    def test_full_cycle_and_unwind(self):
        process_payroll(self.company, self.run.pk, actor=self.user)
        run = pay_salaries(self.company, self.run.pk, self.bank_ledger.pk,
                           payment_date=DAY, actor=self.user)
        self.assertEqual(run.status, PayrollStatus.PAID)
        self.assertEqual(BankAccount.objects.get(pk=self.bank.pk).current_balance, Decimal("4150.00"))

        # accrual can't be unwound while salaries stay paid
        with self.assertRaises(FailedPrecondition) as exc:
            reverse(self.company, run.journal_entry_id, reversal_date=DAY, actor=self.user)
        self.assertIn("Reverse the salary payment first", str(exc.exception))

        reverse(self.company, run.payment_journal_entry_id, reversal_date=DAY, actor=self.user)
        run.refresh_from_db()
        self.assertEqual(run.status, PayrollStatus.PROCESSED)
        self.assertIsNone(run.payment_journal_entry_id)
        self.assertEqual(BankAccount.objects.get(pk=self.bank.pk).current_balance, Decimal("5000.00"))

        reverse(self.company, run.journal_entry_id, reversal_date=DAY, actor=self.user)
        run.refresh_from_db()
        self.assertEqual(run.status, PayrollStatus.REVERSED)
        self.advance.refresh_from_db()
        self.assertEqual((self.advance.remaining_balance, self.advance.status),
                         (Decimal("100.00"), AdvanceStatus.PENDING))
        self.assertEqual(JournalEntry.objects.filter(is_reversal=True).count(), 2)
