from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .account import Account, AccountType
from .entitymembership import Company


class Direction(models.TextChoices):
    INFLOW = "inflow", "Inflow"
    OUTFLOW = "outflow", "Outflow"


# ---------- BankAccount ----------
class BankAccount(models.Model):
    """
    Bank account mirror. `current_balance` follows the ledger account
    it is linked to; every posting that moves money through that account
    adjusts it inside the same transaction.
    """
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    name = models.CharField(max_length=120)
    account_number = models.CharField(max_length=64, blank=True)
    ledger_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="bank_accounts",
    )
    current_balance = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "ledger_account"], name="bank_company_ledger_idx")]

    def __str__(self):
        return f"{self.name} ({self.current_balance})"

    def clean(self):
        la = self.ledger_account
        if la and la.company_id != self.company_id:
            raise ValidationError("BankAccount.ledger_account must belong to the same company.")
        if la and la.account_type != AccountType.ASSET:
            raise ValidationError("BankAccount.ledger_account must be an Asset account.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


# ---------- BankTransaction ----------
class BankTransaction(models.Model):
    """Cash movement recorded next to the journal entry that caused it."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    bank_account = models.ForeignKey(
        BankAccount, on_delete=models.PROTECT, related_name="transactions"
    )
    transaction_date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    direction = models.CharField(max_length=10, choices=Direction.choices)
    description = models.CharField(max_length=255, blank=True)

    # Free-form: includes "BillPaymentReversal" etc. besides ReferenceType
    reference_type = models.CharField(max_length=40)
    reference_id = models.CharField(max_length=64, blank=True)
    journal_entry = models.ForeignKey(
        "JournalEntry", null=True, blank=True,
        on_delete=models.PROTECT, related_name="bank_transactions",
    )
    is_reconciled = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "transaction_date"], name="banktx_company_date_idx"),
            models.Index(fields=["company", "reference_type", "reference_id"], name="banktx_company_ref_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="bt_amount_positive"
            ),
        ]

    def __str__(self):
        return f"{self.transaction_date} {self.direction} {self.amount} ({self.reference_type})"
