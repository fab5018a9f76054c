from django.conf import settings
from django.db import models
from ..managers import TenantManager
from .account import Account
from .entitymembership import Company
from .vendor import Vendor


class ExpenseCategory(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    name = models.CharField(max_length=120)
    # an account linked here can't be deleted
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="expense_categories"
    )

    objects = TenantManager()

    class Meta:
        verbose_name_plural = "expense categories"
        constraints = [
            models.UniqueConstraint(fields=["company", "name"], name="uq_expense_category_name"),
        ]

    def __str__(self):
        return self.name


class Expense(models.Model):
    """Cash expense: Dr expense account / Cr payment account."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    category = models.ForeignKey(
        ExpenseCategory, null=True, blank=True, on_delete=models.SET_NULL
    )
    vendor = models.ForeignKey(Vendor, null=True, blank=True, on_delete=models.SET_NULL)
    expense_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="+")
    payment_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="+")
    expense_date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    description = models.CharField(max_length=255, blank=True)

    journal_entry = models.ForeignKey(
        "JournalEntry", null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    is_reversed = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "expense_date"], name="exp_company_date_idx")]

    def __str__(self):
        return f"Expense {self.pk} {self.amount}"
