from decimal import Decimal

from django.test import TestCase

from ledger_core.exceptions import FailedPrecondition, InvalidArgument
from ledger_core.models import Company, JournalEntry, ReferenceType
from ledger_core.services import post_manual_entry, post_opening_balances

from .utils import DAY, account, lines, make_tenant


class OpeningBalanceTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.cash = account(self.company, 1000)
        self.inventory = account(self.company, 1040)
        self.payable = account(self.company, 2000)
        self.retained = account(self.company, 3010)

    def _sides(self, entry_id):
        entry = JournalEntry.objects.get(pk=entry_id)
        return {
            l.account_id: (l.debit_amount, l.credit_amount)
            for l in entry.lines.all()
        }

    def test_difference_is_booked_to_retained_earnings(self):
        entry_id = post_opening_balances(self.company, [
            {"account_id": self.cash.pk, "amount": "5000.00"},
            {"account_id": self.payable.pk, "amount": "1200.00"},
            {"account_id": self.inventory.pk, "amount": 0},
        ], entry_date=DAY, actor=self.user)

        self.assertEqual(self._sides(entry_id), {
            self.cash.pk: (Decimal("5000.00"), Decimal("0.00")),
            self.payable.pk: (Decimal("0.00"), Decimal("1200.00")),
            self.retained.pk: (Decimal("0.00"), Decimal("3800.00")),
        })
        entry = JournalEntry.objects.get(pk=entry_id)
        self.assertEqual(entry.reference_type, ReferenceType.OPENING_BALANCE)
        self.assertEqual(entry.reference_id, str(self.company.pk))

        company = Company.objects.get(pk=self.company.pk)
        self.assertTrue(company.opening_balances_posted)
        self.assertIsNotNone(company.opening_balances_posted_at)

    def test_negative_amount_goes_to_the_other_side(self):
        entry_id = post_opening_balances(self.company, [
            {"account_id": self.cash.pk, "amount": "500.00"},
            {"account_id": self.inventory.pk, "amount": "-100.00"},
        ], entry_date=DAY, actor=self.user)

        sides = self._sides(entry_id)
        self.assertEqual(sides[self.inventory.pk], (Decimal("0.00"), Decimal("100.00")))
        self.assertEqual(sides[self.retained.pk], (Decimal("0.00"), Decimal("400.00")))

    def test_only_once_per_company(self):
        post_opening_balances(self.company, [{"account_id": self.cash.pk, "amount": 10}],
                              entry_date=DAY, actor=self.user)
        with self.assertRaises(FailedPrecondition) as exc:
            post_opening_balances(self.company, [{"account_id": self.cash.pk, "amount": 10}],
                                  entry_date=DAY, actor=self.user)
        self.assertIn("already been posted", str(exc.exception))

    def test_must_precede_other_postings(self):
        post_manual_entry(
            self.company, DAY,
            lines((self.cash, 10, 0), (self.payable, 0, 10)), actor=self.user,
        )
        with self.assertRaises(FailedPrecondition):
            post_opening_balances(self.company, [{"account_id": self.cash.pk, "amount": 10}],
                                  entry_date=DAY, actor=self.user)
        self.assertFalse(Company.objects.get(pk=self.company.pk).opening_balances_posted)

    def test_all_zero_amounts_are_rejected(self):
        with self.assertRaises(InvalidArgument):
            post_opening_balances(self.company, [{"account_id": self.cash.pk, "amount": 0}],
                                  entry_date=DAY, actor=self.user)

    def test_other_tenants_are_unaffected(self):
        other, _ = make_tenant("globex")
        post_opening_balances(self.company, [{"account_id": self.cash.pk, "amount": 10}],
                              entry_date=DAY, actor=self.user)
        self.assertFalse(Company.objects.get(pk=other.pk).opening_balances_posted)
