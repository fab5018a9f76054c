from django.contrib import admin

from ledger_core.models import Advance, PayrollAdvanceDeduction, PayrollItem, PayrollRun

from .mixins import ReadOnlyAdmin, TenantAdminMixin


class PayrollItemInline(admin.TabularInline):
    model = PayrollItem
    extra = 0
    can_delete = False
    readonly_fields = ("employee", "gross_salary", "paye", "other_deductions",
                       "advances_deducted", "net_salary")


@admin.register(PayrollRun)
class PayrollRunAdmin(ReadOnlyAdmin):
    list_display = ("id", "company", "period_label", "run_date", "status",
                    "total_gross", "total_net")
    list_filter = ("status",)
    inlines = [PayrollItemInline]


@admin.register(Advance)
class AdvanceAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("employee", "original_amount", "remaining_balance",
                    "months_deducted", "status", "date_to_deduct")
    list_filter = ("status",)
    # moved by payroll deductions and their reversals
    readonly_fields = ("remaining_balance", "months_deducted", "status",
                       "last_deducted_run", "last_deducted_at")


@admin.register(PayrollAdvanceDeduction)
class PayrollAdvanceDeductionAdmin(ReadOnlyAdmin):
    list_display = ("deduction_key", "payroll_run", "employee", "amount",
                    "balance_before", "balance_after", "is_reversed", "skip_reason")
    list_filter = ("is_reversed",)
    search_fields = ("deduction_key",)
