from decimal import ROUND_HALF_UP, Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .account import Account
from .bill import DocumentStatus
from .customer import Customer
from .entitymembership import Company
from .inventory import Product


# ---------- Invoice (AR) ----------
class Invoice(models.Model):
    """Customer invoice: Dr Accounts Receivable / Cr revenue."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="invoices")
    invoice_number = models.CharField(max_length=50)
    invoice_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)
    description = models.CharField(max_length=255, blank=True)

    revenue_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="+")
    total = models.DecimalField(max_digits=18, decimal_places=2, default=0)
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
            models.Index(fields=["company", "status"], name="inv_company_status_idx"),
            models.Index(fields=["company", "customer"], name="inv_company_customer_idx"),
        ]
        # Within one company, each invoice number is unique
        constraints = [
            models.UniqueConstraint(
                fields=["company", "invoice_number"], name="uq_invoice_company_number"
            )
        ]

    def __str__(self):
        return f"Invoice {self.invoice_number} ({self.status})"

    @property
    def outstanding(self):
        return max(Decimal("0.00"), self.total - self.amount_paid)

    def clean(self):
        if self.customer_id and self.customer.company_id != self.company_id:
            raise ValidationError("Invoice.customer must belong to the same company.")


class InvoiceLine(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="lines")
    # Explicit product; otherwise matched by description at posting time
    product = models.ForeignKey(
        Product, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    description = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=2, default=1)
    unit_price = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        ordering = ("invoice_id", "id")

    def __str__(self):
        return f"{self.invoice_id}: {self.description} x{self.quantity}"

    @property
    def line_total(self):
        return (self.quantity * self.unit_price).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )


class InvoicePayment(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="payments")
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
                condition=models.Q(amount__gt=0), name="invoice_payment_amount_positive"
            ),
        ]

    def __str__(self):
        return f"InvoicePayment {self.pk} {self.amount}{' (reversed)' if self.is_reversed else ''}"
