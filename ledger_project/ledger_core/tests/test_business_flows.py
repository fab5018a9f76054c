from decimal import Decimal

from django.test import TestCase

from ledger_core.exceptions import (AlreadyExists, FailedPrecondition, InvalidArgument,
                                    PermissionDenied)
from ledger_core.models import (BankAccount, BankTransaction, Customer, DocumentStatus,
                                Expense, ExpenseCategory, InventoryItem, Invoice,
                                JournalEntry, Product, ReferenceType, StockMovement, Vendor)
from ledger_core.services import (account_balance, create_bill, create_invoice,
                                  journal_lines_for_range, pay_bill, record_expense,
                                  record_invoice_payment, reverse)

from .utils import DAY, account, link_bank, make_tenant


class ExpenseFlowTests(TestCase):
    """Record a 250.00 expense paid from the bank, then reverse it."""

    def setUp(self):
        self.company, self.user = make_tenant()
        self.bank_ledger = account(self.company, 1010)
        self.supplies = account(self.company, 5010)
        self.bank = link_bank(self.company, 1010, "1000.00")

    def test_expense_posts_and_moves_cash(self):
        expense = record_expense(
            self.company, amount="250.00", payment_account_id=self.bank_ledger.pk,
            expense_account_id=self.supplies.pk, expense_date=DAY,
            description="Printer paper", actor=self.user,
        )
        entry = expense.journal_entry
        self.assertEqual(entry.reference_type, ReferenceType.EXPENSE)
        self.assertEqual(entry.reference_id, str(expense.pk))
        debit, credit = entry.lines.order_by("line_number")
        self.assertEqual((debit.account, debit.debit_amount), (self.supplies, Decimal("250.00")))
        self.assertEqual((credit.account, credit.credit_amount), (self.bank_ledger, Decimal("250.00")))

        self.bank.refresh_from_db()
        self.assertEqual(self.bank.current_balance, Decimal("750.00"))
        bt = BankTransaction.objects.get(journal_entry=entry)
        self.assertEqual((bt.direction, bt.amount), ("outflow", Decimal("250.00")))

    def test_reversing_the_expense_restores_everything(self):
        expense = record_expense(
            self.company, amount=250, payment_account_id=self.bank_ledger.pk,
            expense_account_id=self.supplies.pk, expense_date=DAY, actor=self.user,
        )
        reversal_id = reverse(self.company, expense.journal_entry_id, reason="wrong card",
                              reversal_date=DAY, actor=self.user)

        self.bank.refresh_from_db()
        self.assertEqual(self.bank.current_balance, Decimal("1000.00"))
        expense.refresh_from_db()
        self.assertTrue(expense.is_reversed)
        self.assertTrue(JournalEntry.objects.get(pk=expense.journal_entry_id).is_reversed)
        back = BankTransaction.objects.get(journal_entry_id=reversal_id)
        self.assertEqual((back.direction, back.reference_type), ("inflow", "ExpenseReversal"))
        self.assertEqual(account_balance(self.company, self.supplies.pk), Decimal("0.00"))
        self.assertEqual(account_balance(self.company, self.bank_ledger.pk), Decimal("0.00"))

        supplies_lines = journal_lines_for_range(self.company, DAY, DAY, account=self.supplies)
        self.assertEqual(
            [(l.debit_amount, l.credit_amount) for l in supplies_lines],
            [(Decimal("250.00"), Decimal("0.00")), (Decimal("0.00"), Decimal("250.00"))],
        )

    def test_category_supplies_the_expense_account(self):
        category = ExpenseCategory.objects.create(
            company=self.company, name="Stationery", account=self.supplies,
        )
        expense = record_expense(
            self.company, amount=10, payment_account_id=self.bank_ledger.pk,
            category_id=category.pk, expense_date=DAY, actor=self.user,
        )
        self.assertEqual(expense.expense_account, self.supplies)

    def test_payment_account_must_be_an_asset(self):
        with self.assertRaises(FailedPrecondition):
            record_expense(
                self.company, amount=10, payment_account_id=account(self.company, 2000).pk,
                expense_account_id=self.supplies.pk, expense_date=DAY, actor=self.user,
            )
        self.assertFalse(Expense.objects.exists())

    def test_amount_must_be_positive(self):
        with self.assertRaises(InvalidArgument):
            record_expense(
                self.company, amount="0", payment_account_id=self.bank_ledger.pk,
                expense_account_id=self.supplies.pk, actor=self.user,
            )


class BillFlowTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.vendor = Vendor.objects.create(company=self.company, name="Paper Co")
        self.bank_ledger = account(self.company, 1010)
        self.bank = link_bank(self.company, 1010, "1000.00")
        self.bill = create_bill(
            self.company, vendor_id=self.vendor.pk, amount="400.00",
            expense_account_id=account(self.company, 5010).pk, bill_date=DAY,
            bill_number="B-100", actor=self.user,
        )

    def test_bill_credits_accounts_payable(self):
        lines = list(self.bill.journal_entry.lines.order_by("line_number"))
        self.assertEqual(lines[1].account, account(self.company, 2000))
        self.assertEqual(lines[1].credit_amount, Decimal("400.00"))
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.total_billed, Decimal("400.00"))
        self.assertEqual(self.vendor.outstanding_payables, Decimal("400.00"))

    def test_partial_then_full_payment(self):
        pay_bill(self.company, bill_id=self.bill.pk, amount="150.00",
                 payment_account_id=self.bank_ledger.pk, payment_date=DAY, actor=self.user)
        self.bill.refresh_from_db()
        self.assertEqual(self.bill.status, DocumentStatus.PARTIALLY_PAID)

        pay_bill(self.company, bill_id=self.bill.pk, amount="250.00",
                 payment_account_id=self.bank_ledger.pk, payment_date=DAY, actor=self.user)
        self.bill.refresh_from_db()
        self.assertEqual(self.bill.status, DocumentStatus.PAID)
        self.bank.refresh_from_db()
        self.assertEqual(self.bank.current_balance, Decimal("600.00"))
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.outstanding_payables, Decimal("0.00"))

    def test_overpayment_is_rejected(self):
        with self.assertRaises(InvalidArgument) as exc:
            pay_bill(self.company, bill_id=self.bill.pk, amount="400.01",
                     payment_account_id=self.bank_ledger.pk, payment_date=DAY, actor=self.user)
        self.assertIn("exceeds outstanding balance of 400.00", str(exc.exception))

    def test_reversing_a_payment_reopens_the_bill(self):
        payment = pay_bill(self.company, bill_id=self.bill.pk, amount="400.00",
                           payment_account_id=self.bank_ledger.pk, payment_date=DAY,
                           actor=self.user)
        reverse(self.company, payment.journal_entry_id, reversal_date=DAY, actor=self.user)

        payment.refresh_from_db()
        self.assertTrue(payment.is_reversed)
        self.bill.refresh_from_db()
        self.assertEqual((self.bill.amount_paid, self.bill.status),
                         (Decimal("0.00"), DocumentStatus.UNPAID))
        self.bank.refresh_from_db()
        self.assertEqual(self.bank.current_balance, Decimal("1000.00"))
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.total_paid, Decimal("0.00"))
        self.assertEqual(self.vendor.outstanding_payables, Decimal("400.00"))
        self.assertTrue(BankTransaction.objects.filter(reference_type="BillPaymentReversal").exists())

    def test_bill_with_live_payments_cannot_be_reversed(self):
        pay_bill(self.company, bill_id=self.bill.pk, amount="100.00",
                 payment_account_id=self.bank_ledger.pk, payment_date=DAY, actor=self.user)
        with self.assertRaises(FailedPrecondition) as exc:
            reverse(self.company, self.bill.journal_entry_id, reversal_date=DAY, actor=self.user)
        self.assertIn("Reverse the payments first", str(exc.exception))
        self.assertFalse(JournalEntry.objects.get(pk=self.bill.journal_entry_id).is_reversed)

    def test_reversing_an_unpaid_bill_voids_it(self):
        reverse(self.company, self.bill.journal_entry_id, reversal_date=DAY, actor=self.user)
        self.bill.refresh_from_db()
        self.assertEqual(self.bill.status, DocumentStatus.VOID)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.total_billed, Decimal("0.00"))
        with self.assertRaises(FailedPrecondition):
            pay_bill(self.company, bill_id=self.bill.pk, amount="1.00",
                     payment_account_id=self.bank_ledger.pk, actor=self.user)


class InvoiceFlowTests(TestCase):

    def setUp(self):
        self.company, self.user = make_tenant()
        self.customer = Customer.objects.create(company=self.company, name="Acme Retail")
        self.widget = Product.objects.create(company=self.company, name="Widget")
        self.stock = InventoryItem.objects.create(
            company=self.company, product=self.widget, quantity_on_hand=Decimal("10"),
        )
        self.bank_ledger = account(self.company, 1010)
        self.bank = link_bank(self.company, 1010, "0.00")

    def _invoice(self, number="INV-1"):
        return create_invoice(
            self.company, customer_id=self.customer.pk, invoice_number=number,
            invoice_date=DAY, actor=self.user,
            lines=[
                {"product_id": self.widget.pk, "quantity": 3, "unit_price": "20.00"},
                {"description": "Installation", "quantity": 1, "unit_price": "40.00"},
            ],
        )

    def test_invoice_posts_receivable_and_issues_stock(self):
        invoice = self._invoice()
        self.assertEqual(invoice.total, Decimal("100.00"))
        self.assertEqual(invoice.revenue_account, account(self.company, 4000))
        ar_line = invoice.journal_entry.lines.get(line_number=1)
        self.assertEqual(ar_line.account, account(self.company, 1030))
        self.assertEqual(ar_line.debit_amount, Decimal("100.00"))

        self.stock.refresh_from_db()
        self.assertEqual(self.stock.quantity_on_hand, Decimal("7.00"))
        self.assertEqual(StockMovement.objects.filter(movement_type="issue").count(), 1)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.outstanding_balance, Decimal("100.00"))

    def test_duplicate_invoice_number(self):
        self._invoice()
        with self.assertRaises(AlreadyExists):
            self._invoice()
        self.assertEqual(Invoice.objects.count(), 1)

    def test_revenue_account_must_be_income(self):
        with self.assertRaises(FailedPrecondition):
            create_invoice(
                self.company, customer_id=self.customer.pk, invoice_number="INV-9",
                revenue_account_id=account(self.company, 1000).pk, invoice_date=DAY,
                lines=[{"description": "Consulting", "unit_price": 10}], actor=self.user,
            )

    def test_missing_inventory_item_rolls_back_the_invoice(self):
        gadget = Product.objects.create(company=self.company, name="Gadget")
        with self.assertRaises(FailedPrecondition):
            create_invoice(
                self.company, customer_id=self.customer.pk, invoice_number="INV-2",
                invoice_date=DAY, actor=self.user,
                lines=[{"product_id": gadget.pk, "quantity": 1, "unit_price": 5}],
            )
        self.assertFalse(Invoice.objects.exists())
        self.assertFalse(JournalEntry.objects.exists())
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_invoiced, Decimal("0.00"))

    def test_payment_and_its_reversal(self):
        invoice = self._invoice()
        payment = record_invoice_payment(
            self.company, invoice_id=invoice.pk, amount="100.00",
            payment_account_id=self.bank_ledger.pk, payment_date=DAY, actor=self.user,
        )
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, DocumentStatus.PAID)
        self.assertEqual(BankAccount.objects.get(pk=self.bank.pk).current_balance, Decimal("100.00"))

        reverse(self.company, payment.journal_entry_id, reversal_date=DAY, actor=self.user)
        invoice.refresh_from_db()
        self.assertEqual((invoice.amount_paid, invoice.status),
                         (Decimal("0.00"), DocumentStatus.UNPAID))
        self.assertEqual(BankAccount.objects.get(pk=self.bank.pk).current_balance, Decimal("0.00"))
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_received, Decimal("0.00"))
        self.assertEqual(self.customer.outstanding_balance, Decimal("100.00"))

    def test_payment_reversal_is_guarded_on_the_payment(self):
        invoice = self._invoice()
        payment = record_invoice_payment(
            self.company, invoice_id=invoice.pk, amount="40.00",
            payment_account_id=self.bank_ledger.pk, payment_date=DAY, actor=self.user,
        )
        # payment flagged by hand, entry still live
        type(payment).objects.filter(pk=payment.pk).update(is_reversed=True)
        with self.assertRaises(FailedPrecondition) as exc:
            reverse(self.company, payment.journal_entry_id, reversal_date=DAY, actor=self.user)
        self.assertIn("Invoice payment has already been reversed", str(exc.exception))

    def test_reversing_an_invoice_restocks(self):
        invoice = self._invoice()
        reverse(self.company, invoice.journal_entry_id, reversal_date=DAY, actor=self.user)
        self.stock.refresh_from_db()
        self.assertEqual(self.stock.quantity_on_hand, Decimal("10.00"))
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, DocumentStatus.VOID)
        self.assertEqual(StockMovement.objects.filter(movement_type="return").count(), 1)

    def test_customer_of_another_company(self):
        other, _ = make_tenant("globex")
        stranger = Customer.objects.create(company=other, name="Stranger")
        with self.assertRaises(PermissionDenied):
            create_invoice(
                self.company, customer_id=stranger.pk, invoice_number="INV-3",
                lines=[{"description": "x", "unit_price": 1}], actor=self.user,
            )
