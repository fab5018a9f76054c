from .accounts import delete_account, seed_default_chart_of_accounts
from .advances import apply_deductions, reverse_deductions
from .expenses import record_expense
from .ledger_queries import account_balance, journal_lines_for_range
from .opening import post_opening_balances
from .payables import create_bill, pay_bill
from .payroll import create_payroll_run, pay_salaries, process_payroll
from .posting import post, post_manual_entry
from .receivables import create_invoice, record_invoice_payment
from .reversal import reverse
from .unit_of_work import LedgerTransaction, run_in_ledger_transaction
