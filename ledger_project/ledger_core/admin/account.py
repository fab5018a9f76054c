from django.contrib import admin

from ledger_core.models import Account, BankAccount, Period, PeriodLock

from .mixins import TenantAdminMixin


@admin.register(Account)
class AccountAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "company", "code", "name", "account_type", "normal_balance",
        "parent", "is_system", "is_active",
    )
    list_filter = ("account_type", "is_active", "is_system")
    search_fields = ("code", "name")
    # accounts grouped by company, then sorted by code
    ordering = ("company", "code")
    readonly_fields = ("is_system",)


@admin.register(BankAccount)
class BankAccountAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("name", "company", "ledger_account", "current_balance", "is_active")
    # balance is a mirror maintained by postings
    readonly_fields = ("current_balance",)


@admin.register(Period)
class PeriodAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("name", "company", "start_date", "end_date", "status")
    list_filter = ("status",)
    ordering = ("company", "start_date")


@admin.register(PeriodLock)
class PeriodLockAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("company", "start_date", "end_date", "is_locked", "status", "reason")
    list_filter = ("is_locked", "status")
