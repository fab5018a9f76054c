from .account import Account, AccountType
from .auditlog import AuditLog
from .banking import BankAccount, BankTransaction, Direction
from .bill import Bill, BillPayment, DocumentStatus
from .customer import Customer
from .entitymembership import Company, EntityMembership, User
from .expense import Expense, ExpenseCategory
from .inventory import InventoryItem, Product, StockMovement
from .invoice import Invoice, InvoiceLine, InvoicePayment
from .journal import JournalEntry, JournalLine, ReferenceType
from .payroll import (Advance, AdvanceStatus, Employee,
                      PayrollAdvanceDeduction, PayrollItem, PayrollRun,
                      PayrollStatus)
from .period import Period, PeriodLock, PeriodStatus
from .vendor import Vendor
