from unittest import mock

from django.db import OperationalError, transaction
from django.test import TestCase, TransactionTestCase

from ledger_core.exceptions import FailedPrecondition
from ledger_core.models import AuditLog, BankTransaction, JournalEntry, JournalLine
from ledger_core.services import post_manual_entry, run_in_ledger_transaction
from ledger_core.services.posting import post_in_transaction
from ledger_core.services.unit_of_work import _is_retryable
from ledger_core.tasks import record_audit_events

from .utils import DAY, account, lines, make_tenant


class CommitBoundaryTests(TransactionTestCase):
    """Runs against real commits; TestCase would hide on_commit."""

    def setUp(self):
        self.company, self.user = make_tenant()
        self.cash = account(self.company, 1000)
        self.revenue = account(self.company, 4000)

    def test_failing_side_effect_rolls_back_the_entry(self):
        def explode(tx, entry):
            raise FailedPrecondition("side effect failed")

        def work(tx):
            return post_in_transaction(
                tx, "ManualEntry", "", DAY,
                lines((self.cash, 5, 0), (self.revenue, 0, 5)),
                side_effects=[explode],
            )

        with self.assertRaises(FailedPrecondition):
            run_in_ledger_transaction(work, company=self.company, actor=self.user)
        self.assertFalse(JournalEntry.objects.exists())
        self.assertFalse(JournalLine.objects.exists())
        self.assertFalse(BankTransaction.objects.exists())
        # nothing committed, so no audit event either
        self.assertFalse(AuditLog.objects.exists())

    def test_audit_log_is_written_after_commit(self):
        entry_id = post_manual_entry(
            self.company, DAY,
            lines((self.cash, 5, 0), (self.revenue, 0, 5)), actor=self.user,
        )
        self.assertTrue(
            AuditLog.objects.filter(action="journal_entry_posted", object_id=str(entry_id)).exists()
        )

    def test_broker_outage_does_not_fail_a_committed_post(self):
        with mock.patch.object(record_audit_events, "delay", side_effect=ConnectionError("broker down")):
            with self.assertLogs("ledger_core.services.unit_of_work", level="WARNING") as logs:
                entry_id = post_manual_entry(
                    self.company, DAY,
                    lines((self.cash, 5, 0), (self.revenue, 0, 5)), actor=self.user,
                )
        self.assertTrue(JournalEntry.objects.filter(pk=entry_id, is_posted=True).exists())
        self.assertEqual(JournalEntry.objects.count(), 1)
        self.assertIn("audit broker unavailable", logs.output[0])
        self.assertFalse(AuditLog.objects.exists())

    def test_conflict_is_retried_in_the_outermost_block(self):
        calls = []

        def flaky(tx):
            calls.append(tx)
            if len(calls) < 3:
                raise OperationalError("database is locked")
            return "done"

        result = run_in_ledger_transaction(flaky, company=self.company, actor=self.user)
        self.assertEqual(result, "done")
        self.assertEqual(len(calls), 3)
        # a fresh handle per attempt
        self.assertEqual(len({id(tx) for tx in calls}), 3)

    def test_retries_are_bounded(self):
        calls = []

        def always_locked(tx):
            calls.append(tx)
            raise OperationalError("database is locked")

        with self.settings(LEDGER_TRANSACTION_RETRIES=2):
            with self.assertRaises(OperationalError):
                run_in_ledger_transaction(always_locked, company=self.company, actor=self.user)
        self.assertEqual(len(calls), 2)

    def test_nested_call_does_not_retry(self):
        calls = []

        def flaky(tx):
            calls.append(tx)
            raise OperationalError("database is locked")

        with self.assertRaises(OperationalError):
            with transaction.atomic():
                run_in_ledger_transaction(flaky, company=self.company, actor=self.user)
        self.assertEqual(len(calls), 1)


class AuditDeliveryTests(TestCase):

    def test_redelivered_events_are_recorded_once(self):
        company, user = make_tenant()
        event = {
            "event_id": "evt-1",
            "company_id": company.pk,
            "user_id": user.pk,
            "action": "journal_entry_posted",
            "object_type": "JournalEntry",
            "object_id": "1",
            "changes": {"debit_total": "5.00"},
        }
        self.assertEqual(record_audit_events.apply(args=([event],)).get(), 1)
        self.assertEqual(record_audit_events.apply(args=([event],)).get(), 0)
        self.assertEqual(AuditLog.objects.filter(event_id="evt-1").count(), 1)


def test_only_conflicts_are_retryable():
    assert _is_retryable(OperationalError("database is locked"))
    assert _is_retryable(OperationalError("deadlock detected"))
    assert _is_retryable(OperationalError("could not serialize access due to concurrent update"))
    assert not _is_retryable(OperationalError("no such table: ledger_core_account"))
