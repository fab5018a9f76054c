from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..exceptions import FailedPrecondition
from ..managers import TenantManager
from .account import Account
from .entitymembership import Company


class ReferenceType(models.TextChoices):
    """Closed set of business events that may produce a journal entry."""
    EXPENSE = "Expense", "Expense"
    BILL = "Bill", "Bill"
    BILL_PAYMENT = "BillPayment", "Bill payment"
    INVOICE = "Invoice", "Invoice"
    INVOICE_PAYMENT = "InvoicePayment", "Invoice payment"
    PAYROLL = "Payroll", "Payroll"
    PAYROLL_PAYMENT = "PayrollPayment", "Payroll payment"
    MANUAL_ENTRY = "ManualEntry", "Manual entry"
    OPENING_BALANCE = "OpeningBalance", "Opening balance"


# The only header fields a posted entry may still change
ENTRY_REVERSAL_FIELDS = ("is_reversed", "reversal_entry", "reversed_at", "reversed_by")
# ...and the only line fields
LINE_REVERSAL_FIELDS = ("is_reversed", "reversal_entry")


def _changed_fields(orig, new, allowed):
    return [
        f.name
        for f in new._meta.concrete_fields
        if f.name not in allowed and getattr(orig, f.attname) != getattr(new, f.attname)
    ]


# ---------- Journal (Header) & JournalLine ----------
class JournalEntry(models.Model):
    """
    One balanced accounting event. Written once by the posting engine,
    after which only the reversal linkage may change.
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    entry_date = models.DateField()
    description = models.TextField(blank=True)

    # Business event that produced the entry
    reference_type = models.CharField(max_length=20, choices=ReferenceType.choices)
    reference_id = models.CharField(max_length=64, blank=True)

    debit_total = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit_total = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    metadata = models.JSONField(default=dict, blank=True)

    is_posted = models.BooleanField(default=False)
    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name="+",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # This entry mirrors another one
    is_reversal = models.BooleanField(default=False)
    reversal_of = models.ForeignKey(
        "self", null=True, blank=True,
        on_delete=models.PROTECT, related_name="reversals",
    )
    reversal_reason = models.TextField(blank=True)

    # This entry has been mirrored by another one
    is_reversed = models.BooleanField(default=False)
    reversal_entry = models.ForeignKey(
        "self", null=True, blank=True,
        on_delete=models.PROTECT, related_name="+",
    )
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name="+",
    )

    objects = TenantManager()

    class Meta:
        verbose_name_plural = "journal entries"
        indexes = [
            models.Index(fields=["company", "entry_date"], name="je_company_date_idx"),
            models.Index(fields=["company", "reference_type", "reference_id"], name="je_company_ref_idx"),
            models.Index(fields=["company", "is_posted"], name="je_company_posted_idx"),
        ]

    def __str__(self):
        state = "reversed" if self.is_reversed else ("posted" if self.is_posted else "draft")
        return f"JE {self.pk} {self.entry_date} {self.reference_type} [{state}]"

    def compute_totals(self):
        """Return (debits, credits) summed over the stored lines."""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    def mark_posted(self, user=None, using=None):
        """Flip the entry and its lines to posted. Caller holds the transaction."""
        using = using or self._state.db
        self.is_posted = True
        self.posted_at = timezone.now()
        self.posted_by = user
        self.save(using=using, update_fields=["is_posted", "posted_at", "posted_by"])
        self.lines.using(using).update(is_posted=True)

    def mark_reversed(self, reversal, user=None, using=None):
        using = using or self._state.db
        self.is_reversed = True
        self.reversal_entry = reversal
        self.reversed_at = timezone.now()
        self.reversed_by = user
        self.save(using=using, update_fields=list(ENTRY_REVERSAL_FIELDS))
        self.lines.using(using).update(is_reversed=True, reversal_entry=reversal)

    def save(self, *args, **kwargs):
        """ Posted entries are immutable apart from the reversal linkage """
        if self.pk:
            db = kwargs.get("using") or self._state.db
            orig = JournalEntry.objects.using(db).filter(pk=self.pk).first()
            if orig and orig.is_posted:
                changed = _changed_fields(orig, self, ENTRY_REVERSAL_FIELDS)
                if changed:
                    raise FailedPrecondition(
                        f"Posted journal entry {self.pk} is immutable "
                        f"(attempted change: {', '.join(changed)})."
                    )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.is_posted:
            raise FailedPrecondition(
                "Posted journal entries cannot be deleted; reverse them instead."
            )
        return super().delete(*args, **kwargs)


class JournalLine(models.Model):
    """One debit or one credit against one account."""

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    entry = models.ForeignKey(
        JournalEntry, on_delete=models.CASCADE, related_name="lines"
    )
    line_number = models.PositiveIntegerField()

    # can't delete an account once lines exist
    account = models.ForeignKey(Account, on_delete=models.PROTECT)
    description = models.CharField(max_length=400, blank=True)

    debit_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    # Copied from the header so ranged queries skip the join
    entry_date = models.DateField()

    is_posted = models.BooleanField(default=False)
    is_reversed = models.BooleanField(default=False)
    reversal_entry = models.ForeignKey(
        JournalEntry, null=True, blank=True,
        on_delete=models.PROTECT, related_name="+",
    )

    objects = TenantManager()

    class Meta:
        ordering = ("entry_id", "line_number")
        indexes = [
            models.Index(fields=["company", "account", "entry_date"], name="jl_company_account_date_idx"),
            models.Index(fields=["company", "entry"], name="jl_company_entry_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(debit_amount__gte=0) & models.Q(credit_amount__gte=0),
                name="jl_non_negative_amounts",
            ),
            # exactly one side carries the amount
            models.CheckConstraint(
                condition=(
                    (models.Q(debit_amount__gt=0) & models.Q(credit_amount=0))
                    | (models.Q(debit_amount=0) & models.Q(credit_amount__gt=0))
                ),
                name="jl_debit_xor_credit",
            ),
            models.UniqueConstraint(
                fields=["entry", "line_number"], name="uq_jl_entry_line_number"
            ),
        ]

    def __str__(self):
        return f"{self.entry_id}#{self.line_number} | {self.account_id} | D:{self.debit_amount} C:{self.credit_amount}"

    def clean(self):
        if self.debit_amount < 0 or self.credit_amount < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if (self.debit_amount > 0) == (self.credit_amount > 0):
            raise ValidationError(
                "JournalLine must contain exactly one side (debit or credit)."
            )
        if self.account_id and self.account.company_id != self.company_id:
            raise ValidationError("JournalLine.account must belong to the same company.")
        if self.entry_id and self.entry.company_id != self.company_id:
            raise ValidationError("JournalLine.company must equal JournalEntry.company")

    def save(self, *args, **kwargs):
        if not self.company_id and self.entry_id:
            self.company_id = self.entry.company_id
        if self.entry_id and self.entry.is_posted:
            if not self.pk:
                raise FailedPrecondition("Cannot add a line to a posted journal entry.")
            orig = JournalLine.objects.using(kwargs.get("using") or self._state.db).get(pk=self.pk)
            if _changed_fields(orig, self, LINE_REVERSAL_FIELDS):
                raise FailedPrecondition("Cannot modify a line of a posted journal entry.")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if JournalEntry.objects.filter(pk=self.entry_id, is_posted=True).exists():
            raise FailedPrecondition(
                "Cannot delete JournalLine: parent JournalEntry is posted."
            )
        return super().delete(*args, **kwargs)
