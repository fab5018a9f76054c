from django.contrib import admin
from django.db.models import Prefetch
from django.utils.html import format_html

from ledger_core.models import AuditLog, JournalEntry, JournalLine

from .mixins import ReadOnlyAdmin


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    fields = ("line_number", "account", "description", "debit_amount", "credit_amount")
    readonly_fields = fields
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyAdmin):
    list_display = (
        "id", "company", "entry_date", "reference_type", "reference_id",
        "is_posted", "is_reversed", "is_reversal", "balanced",
    )
    list_filter = ("reference_type", "is_reversed", "is_reversal", "entry_date")
    search_fields = ("reference_id", "description", "id")
    inlines = [JournalLineInline]

    # Fetch lines and their accounts in one round trip
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        lines = JournalLine.objects.select_related("account")
        return qs.select_related("company", "created_by").prefetch_related(
            Prefetch("lines", queryset=lines)
        )

    @admin.display(description="Debits / Credits")
    def balanced(self, obj):
        return format_html("<b>{}</b> / <small>{}</small>", obj.debit_total, obj.credit_total)


@admin.register(JournalLine)
class JournalLineAdmin(ReadOnlyAdmin):
    list_display = (
        "entry", "line_number", "account", "debit_amount", "credit_amount",
        "entry_date", "is_reversed",
    )
    list_filter = ("is_reversed", "entry_date")
    search_fields = ("description", "account__name")
    list_select_related = ("entry", "account")


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("created_at", "company", "user", "action", "object_type", "object_id")
    list_filter = ("action", "object_type")
    search_fields = ("object_id", "event_id")
