from .account import AccountAdmin, BankAccountAdmin, PeriodAdmin, PeriodLockAdmin
from .journal import AuditLogAdmin, JournalEntryAdmin, JournalLineAdmin
from .membership import CompanyAdmin, EntityMembershipAdmin, UserAdmin
from .mixins import ReadOnlyAdmin, TenantAdminMixin
from .payroll import AdvanceAdmin, PayrollAdvanceDeductionAdmin, PayrollRunAdmin
