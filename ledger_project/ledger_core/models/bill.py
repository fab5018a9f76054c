import datetime
from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .account import Account
from .entitymembership import Company
from .vendor import Vendor

# Paid when within this distance of the total
SETTLEMENT_EPSILON = Decimal("0.001")


class DocumentStatus(models.TextChoices):
    UNPAID = "Unpaid", "Unpaid"
    PARTIALLY_PAID = "Partially Paid", "Partially Paid"
    PAID = "Paid", "Paid"
    OVERDUE = "Overdue", "Overdue"
    VOID = "Void", "Void"


def settlement_status(total, amount_paid, due_date=None, today=None):
    """
    Status of a bill/invoice after a payment or a payment reversal.
    Overdue only applies when a due date is given and has passed.
    """
    if amount_paid >= total - SETTLEMENT_EPSILON:
        return DocumentStatus.PAID
    today = today or datetime.date.today()
    if due_date and due_date < today:
        return DocumentStatus.OVERDUE
    if amount_paid > 0:
        return DocumentStatus.PARTIALLY_PAID
    return DocumentStatus.UNPAID


# ---------- Bill (AP) ----------
class Bill(models.Model):
    """Vendor bill: Dr expense / Cr Accounts Payable when created."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name="bills")
    bill_number = models.CharField(max_length=50, blank=True)
    bill_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)
    description = models.CharField(max_length=255, blank=True)

    expense_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="+")
    total = models.DecimalField(max_digits=18, decimal_places=2)
    amount_paid = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    status = models.CharField(
        max_length=20, choices=DocumentStatus.choices, default=DocumentStatus.UNPAID
    )

    journal_entry = models.ForeignKey(
        "JournalEntry", null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"], name="bill_company_status_idx"),
            models.Index(fields=["company", "vendor"], name="bill_company_vendor_idx"),
        ]

    def __str__(self):
        return f"Bill {self.bill_number or self.pk} ({self.status})"

    @property
    def outstanding(self):
        return max(Decimal("0.00"), self.total - self.amount_paid)

    def clean(self):
        if self.vendor_id and self.vendor.company_id != self.company_id:
            raise ValidationError("Bill.vendor must belong to the same company.")
        if self.due_date and self.due_date < self.bill_date:
            raise ValidationError("due_date must be on or after bill_date")


class BillPayment(models.Model):
    """Payment against a bill; reversed through its journal entry."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    bill = models.ForeignKey(Bill, on_delete=models.PROTECT, related_name="payments")
    payment_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="+")
    payment_date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    notes = models.CharField(max_length=255, blank=True)

    journal_entry = models.ForeignKey(
        "JournalEntry", null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    is_reversed = models.BooleanField(default=False)
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversal_entry = models.ForeignKey(
        "JournalEntry", null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="bill_payment_amount_positive"
            ),
        ]

    def __str__(self):
        return f"BillPayment {self.pk} {self.amount}{' (reversed)' if self.is_reversed else ''}"
