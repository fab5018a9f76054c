import datetime
from decimal import Decimal
from unittest import mock

from django.test import TestCase

from ledger_core.exceptions import (FailedPrecondition, InvalidArgument, NotFound,
                                    PermissionDenied, UnbalancedJournalError)
from ledger_core.models import (AuditLog, JournalEntry, JournalLine, Period,
                                PeriodLock, PeriodStatus, ReferenceType)
from ledger_core.services import post, post_manual_entry

from .utils import DAY, account, lines, make_tenant


class PostingSuccessTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.cash = account(self.company, 1000)
        self.revenue = account(self.company, 4000)

    def test_balanced_entry_is_written_posted(self):
        entry_id = post(
            self.company, "ManualEntry", "ref-1", DAY,
            lines((self.cash, "100.00", 0), (self.revenue, 0, "100.00")),
            actor=self.user, description="Cash sale",
        )
        entry = JournalEntry.objects.get(pk=entry_id)
        self.assertTrue(entry.is_posted)
        self.assertEqual(entry.reference_type, ReferenceType.MANUAL_ENTRY)
        self.assertEqual(entry.reference_id, "ref-1")
        self.assertEqual(entry.debit_total, Decimal("100.00"))
        self.assertEqual(entry.credit_total, Decimal("100.00"))
        self.assertEqual(entry.posted_by, self.user)
        self.assertEqual(entry.compute_totals(), (Decimal("100.00"), Decimal("100.00")))

        stored = list(entry.lines.order_by("line_number"))
        self.assertEqual([l.line_number for l in stored], [1, 2])
        self.assertTrue(all(l.is_posted and l.entry_date == DAY for l in stored))
        self.assertTrue(all(l.company_id == self.company.pk for l in stored))

    def test_amounts_are_rounded_to_cents_before_balancing(self):
        entry_id = post_manual_entry(
            self.company, DAY,
            lines((self.cash, "10.005", 0), (self.revenue, 0, "10.01")),
            actor=self.user,
        )
        entry = JournalEntry.objects.get(pk=entry_id)
        self.assertEqual(entry.debit_total, Decimal("10.01"))

    def test_explicit_role_overrides_membership(self):
        entry_id = post_manual_entry(
            self.company, DAY,
            lines((self.cash, 5, 0), (self.revenue, 0, 5)),
            role="owner",
        )
        self.assertTrue(JournalEntry.objects.filter(pk=entry_id).exists())

    def test_audit_event_is_delivered_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            entry_id = post_manual_entry(
                self.company, DAY,
                lines((self.cash, 5, 0), (self.revenue, 0, 5)),
                actor=self.user,
            )
        log = AuditLog.objects.get(action="journal_entry_posted")
        self.assertEqual(log.object_id, str(entry_id))
        self.assertEqual(log.company, self.company)
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.changes["debit_total"], "5.00")

    def test_entry_writes_go_through_the_transaction_alias(self):
        original_save = JournalEntry.save
        with mock.patch.object(JournalEntry, "save", autospec=True, side_effect=original_save) as save:
            entry_id = post_manual_entry(
                self.company, DAY,
                lines((self.cash, 5, 0), (self.revenue, 0, 5)), actor=self.user,
            )
        self.assertGreaterEqual(save.call_count, 2)
        self.assertTrue(all(call.kwargs.get("using") == "default" for call in save.call_args_list))
        self.assertEqual(JournalEntry.objects.get(pk=entry_id).lines.filter(is_posted=True).count(), 2)


class PostingFailureTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.cash = account(self.company, 1000)
        self.revenue = account(self.company, 4000)

    def assertNothingWritten(self):
        self.assertFalse(JournalEntry.objects.exists())
        self.assertFalse(JournalLine.objects.exists())

    def test_unbalanced_entry_writes_nothing(self):
        with self.assertRaises(UnbalancedJournalError):
            post_manual_entry(
                self.company, DAY,
                lines((self.cash, 100, 0), (self.revenue, 0, 90)),
                actor=self.user,
            )
        self.assertNothingWritten()

    def test_unsupported_reference_type(self):
        with self.assertRaises(InvalidArgument) as exc:
            post(self.company, "Donation", "", DAY,
                 lines((self.cash, 1, 0), (self.revenue, 0, 1)), actor=self.user)
        self.assertIn("Unsupported referenceType", str(exc.exception))

    def test_unknown_account(self):
        with self.assertRaises(NotFound):
            post_manual_entry(
                self.company, DAY,
                [{"account_id": 999999, "debit": 1}, {"account_id": self.revenue.pk, "credit": 1}],
                actor=self.user,
            )
        self.assertNothingWritten()

    def test_inactive_account(self):
        self.cash.is_active = False
        self.cash.save()
        with self.assertRaises(FailedPrecondition):
            post_manual_entry(
                self.company, DAY,
                lines((self.cash, 1, 0), (self.revenue, 0, 1)), actor=self.user,
            )
        self.assertNothingWritten()

    def test_account_of_another_company(self):
        other, _ = make_tenant("globex")
        with self.assertRaises(PermissionDenied):
            post_manual_entry(
                self.company, DAY,
                lines((account(other, 1000), 1, 0), (self.revenue, 0, 1)), actor=self.user,
            )
        self.assertNothingWritten()

    def test_viewer_cannot_post(self):
        _, viewer = make_tenant("initech", role="viewer")
        with self.assertRaises(PermissionDenied):
            post_manual_entry(
                self.company, DAY,
                lines((self.cash, 1, 0), (self.revenue, 0, 1)), actor=viewer,
            )

    def test_invalid_date(self):
        with self.assertRaises(InvalidArgument):
            post_manual_entry(
                self.company, "15/03/2025",
                lines((self.cash, 1, 0), (self.revenue, 0, 1)), actor=self.user,
            )

    def test_posted_entry_is_immutable(self):
        entry = JournalEntry.objects.get(pk=post_manual_entry(
            self.company, DAY,
            lines((self.cash, 1, 0), (self.revenue, 0, 1)), actor=self.user,
        ))
        entry.description = "edited"
        with self.assertRaises(FailedPrecondition):
            entry.save()
        with self.assertRaises(FailedPrecondition):
            entry.delete()
        line = entry.lines.first()
        line.debit_amount = Decimal("2.00")
        with self.assertRaises(FailedPrecondition):
            line.save()


class PeriodLockTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.cash = account(self.company, 1000)
        self.revenue = account(self.company, 4000)

    def _post(self, day):
        return post_manual_entry(
            self.company, day,
            lines((self.cash, 1, 0), (self.revenue, 0, 1)), actor=self.user,
        )

    def test_explicit_lock_blocks_dates_inside_its_range(self):
        PeriodLock.objects.create(
            company=self.company,
            start_date=datetime.date(2025, 3, 1),
            end_date=datetime.date(2025, 3, 31),
        )
        with self.assertRaises(FailedPrecondition) as exc:
            self._post(DAY)
        self.assertEqual(str(exc.exception), "Entry date 2025-03-15 is in a locked financial period.")
        # boundaries are inclusive, outside is fine
        with self.assertRaises(FailedPrecondition):
            self._post(datetime.date(2025, 3, 31))
        self.assertTrue(self._post(datetime.date(2025, 4, 1)))

    def test_open_ended_lock_covers_everything_before_its_end(self):
        PeriodLock.objects.create(company=self.company, end_date=datetime.date(2025, 3, 31))
        with self.assertRaises(FailedPrecondition):
            self._post(datetime.date(2020, 1, 1))

    def test_unlocked_lock_row_does_not_block(self):
        PeriodLock.objects.create(
            company=self.company, is_locked=False, status=PeriodStatus.OPEN,
        )
        self.assertTrue(self._post(DAY))

    def test_lock_status_alone_blocks(self):
        PeriodLock.objects.create(
            company=self.company, is_locked=False, status=PeriodStatus.CLOSED,
        )
        with self.assertRaises(FailedPrecondition):
            self._post(DAY)

    def test_closed_financial_period_blocks(self):
        Period.objects.create(
            company=self.company, name="2025-03",
            start_date=datetime.date(2025, 3, 1), end_date=datetime.date(2025, 3, 31),
            status=PeriodStatus.CLOSED,
        )
        with self.assertRaises(FailedPrecondition) as exc:
            self._post(DAY)
        self.assertIn("closed financial period", str(exc.exception))

    def test_open_financial_period_does_not_block(self):
        Period.objects.create(
            company=self.company, name="2025-03",
            start_date=datetime.date(2025, 3, 1), end_date=datetime.date(2025, 3, 31),
        )
        self.assertTrue(self._post(DAY))

    def test_locks_of_other_tenants_are_ignored(self):
        other, _ = make_tenant("globex")
        PeriodLock.objects.create(company=other)
        self.assertTrue(self._post(DAY))
