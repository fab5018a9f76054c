import datetime
from decimal import Decimal

from django.test import TestCase

from ledger_core.exceptions import FailedPrecondition, NotFound, PermissionDenied
from ledger_core.models import Account, JournalEntry, Period, PeriodLock, PeriodStatus, ReferenceType
from ledger_core.services import post_manual_entry, reverse

from .utils import DAY, account, lines, make_tenant


class ReversalTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.cash = account(self.company, 1000)
        self.rent = account(self.company, 5020)
        self.payable = account(self.company, 2000)
        self.entry_id = post_manual_entry(
            self.company, DAY,
            [
                {"account_id": self.rent.pk, "debit": "300.00", "description": "March rent"},
                {"account_id": self.cash.pk, "credit": "120.00"},
                {"account_id": self.payable.pk, "credit": "180.00"},
            ],
            actor=self.user,
        )

    def test_reversal_mirrors_every_line_exactly(self):
        reversal_id = reverse(self.company, self.entry_id, reason="duplicate", actor=self.user)
        original = JournalEntry.objects.get(pk=self.entry_id)
        reversal = JournalEntry.objects.get(pk=reversal_id)

        mirrored = [
            (l.account_id, l.credit_amount, l.debit_amount, l.description)
            for l in original.lines.order_by("line_number")
        ]
        produced = [
            (l.account_id, l.debit_amount, l.credit_amount, l.description)
            for l in reversal.lines.order_by("line_number")
        ]
        self.assertEqual(produced, mirrored)
        self.assertEqual(reversal.debit_total, original.credit_total)
        self.assertEqual(reversal.credit_total, original.debit_total)

    def test_reversal_links_both_entries(self):
        reversal_id = reverse(self.company, self.entry_id, reason=" typo ", actor=self.user)
        original = JournalEntry.objects.get(pk=self.entry_id)
        reversal = JournalEntry.objects.get(pk=reversal_id)

        self.assertTrue(original.is_reversed)
        self.assertEqual(original.reversal_entry_id, reversal_id)
        self.assertEqual(original.reversed_by, self.user)
        self.assertTrue(all(l.is_reversed for l in original.lines.all()))

        self.assertTrue(reversal.is_reversal)
        self.assertEqual(reversal.reversal_of_id, self.entry_id)
        self.assertEqual(reversal.reversal_reason, "typo")
        self.assertEqual(reversal.reference_type, ReferenceType.MANUAL_ENTRY)
        self.assertEqual(reversal.description, f"Reversal of {self.entry_id}: typo")
        self.assertEqual(reversal.metadata["reversal_of"], self.entry_id)
        self.assertEqual(reversal.metadata["original_reference_type"], "ManualEntry")

    def test_second_reversal_is_rejected(self):
        reverse(self.company, self.entry_id, actor=self.user)
        with self.assertRaises(FailedPrecondition) as exc:
            reverse(self.company, self.entry_id, actor=self.user)
        self.assertIn("already been reversed", str(exc.exception))
        self.assertEqual(JournalEntry.objects.filter(is_reversal=True).count(), 1)

    def test_reversal_entry_cannot_be_reversed(self):
        reversal_id = reverse(self.company, self.entry_id, actor=self.user)
        with self.assertRaises(FailedPrecondition):
            reverse(self.company, reversal_id, actor=self.user)

    def test_unposted_entry_cannot_be_reversed(self):
        draft = JournalEntry.objects.create(
            company=self.company, entry_date=DAY, reference_type=ReferenceType.MANUAL_ENTRY,
        )
        with self.assertRaises(FailedPrecondition) as exc:
            reverse(self.company, draft.pk, actor=self.user)
        self.assertIn("Only posted", str(exc.exception))

    def test_missing_and_foreign_entries(self):
        with self.assertRaises(NotFound):
            reverse(self.company, 999999, actor=self.user)
        other, other_user = make_tenant("globex")
        with self.assertRaises(PermissionDenied):
            reverse(other, self.entry_id, actor=other_user)
        self.assertFalse(JournalEntry.objects.get(pk=self.entry_id).is_reversed)

    def test_reversal_date_must_be_unlocked(self):
        PeriodLock.objects.create(company=self.company, start_date=datetime.date(2025, 4, 1))
        with self.assertRaises(FailedPrecondition):
            reverse(self.company, self.entry_id, reversal_date="2025-04-02", actor=self.user)
        # the original's own date being locked does not matter
        PeriodLock.objects.all().delete()
        PeriodLock.objects.create(company=self.company, end_date=DAY)
        reversal_id = reverse(
            self.company, self.entry_id, reversal_date="2025-04-02", actor=self.user
        )
        self.assertEqual(JournalEntry.objects.get(pk=reversal_id).entry_date, datetime.date(2025, 4, 2))

    def test_reversal_into_closed_financial_period_is_rejected(self):
        Period.objects.create(
            company=self.company, name="2025-04", status=PeriodStatus.CLOSED,
            start_date=datetime.date(2025, 4, 1), end_date=datetime.date(2025, 4, 30),
        )
        with self.assertRaises(FailedPrecondition) as exc:
            reverse(self.company, self.entry_id, reversal_date="2025-04-02", actor=self.user)
        self.assertIn("closed financial period", str(exc.exception))
        self.assertFalse(JournalEntry.objects.get(pk=self.entry_id).is_reversed)
        self.assertFalse(JournalEntry.objects.filter(is_reversal=True).exists())

    def test_reversal_needs_active_accounts(self):
        # an account with lines can't be deactivated through the model
        Account.objects.filter(pk=self.rent.pk).update(is_active=False)
        with self.assertRaises(FailedPrecondition):
            reverse(self.company, self.entry_id, actor=self.user)
        self.assertFalse(JournalEntry.objects.get(pk=self.entry_id).is_reversed)

    def test_net_effect_of_entry_and_reversal_is_zero(self):
        reverse(self.company, self.entry_id, actor=self.user)
        for acct in (self.cash, self.rent, self.payable):
            debit = sum(l.debit_amount for l in acct.journalline_set.all())
            credit = sum(l.credit_amount for l in acct.journalline_set.all())
            self.assertEqual(debit - credit, Decimal("0.00"))
