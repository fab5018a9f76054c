from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.translation import gettext_lazy as _

from ledger_core.models import Company, EntityMembership, User

from .mixins import TenantAdminMixin


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "currency_code", "opening_balances_posted", "created_at")
    search_fields = ("name", "slug")
    ordering = ("name",)
    # written by the opening-balance posting only
    readonly_fields = ("opening_balances_posted", "opening_balances_posted_at")


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    list_display = ("username", "email", "get_full_name", "is_staff", "default_company")
    fieldsets = DjangoUserAdmin.fieldsets + (
        (_("Company / Defaults"), {"fields": ("default_company", "phone")}),
    )

    # limit visible users to members of the request user's companies
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        allowed_company_ids = request.user.memberships.values_list("company_id", flat=True)
        return qs.filter(memberships__company_id__in=allowed_company_ids).distinct()


@admin.register(EntityMembership)
class EntityMembershipAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active", "created_at")
    list_filter = ("role", "is_active")
