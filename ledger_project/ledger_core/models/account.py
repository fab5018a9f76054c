from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


class AccountType(models.TextChoices):
    ASSET = "Asset", "Asset"
    LIABILITY = "Liability", "Liability"
    EQUITY = "Equity", "Equity"
    INCOME = "Income", "Income"
    EXPENSE = "Expense", "Expense"


# Numeric code range each account type must live in (inclusive)
ACCOUNT_CODE_RANGES = {
    AccountType.ASSET: (1000, 19999),
    AccountType.LIABILITY: (2000, 29999),
    AccountType.EQUITY: (3000, 39999),
    AccountType.INCOME: (4000, 49999),
    AccountType.EXPENSE: (5000, 99999),
}

# Types whose balance grows on the debit side
DEBIT_NORMAL_TYPES = (AccountType.ASSET, AccountType.EXPENSE)


class Account(models.Model):
    """
    Ledger account in a company's chart of accounts.
    - code is unique per company and must sit inside its type's range
    - account_type decides the normal side (debit for Asset/Expense)
    - is_system marks accounts the posting flows resolve by name/code
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    code = models.PositiveIntegerField()
    name = models.CharField(max_length=200)
    account_type = models.CharField(max_length=10, choices=AccountType.choices)
    description = models.CharField(max_length=400, blank=True)

    # Optional hierarchy (1000 Cash → 1010 Petty Cash)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        # you can't delete a parent while children exist
        on_delete=models.PROTECT,
        related_name="children",
    )

    # soft deactivate: hidden from lookups, no new postings
    is_active = models.BooleanField(default=True)
    is_system = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "account_type"], name="acct_company_type_idx"),
            models.Index(fields=["company", "name"], name="acct_company_name_idx"),
            models.Index(fields=["company", "parent"], name="acct_company_parent_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"], name="uq_company_account_code"
            )
        ]
        ordering = ("company", "code")

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def normal_balance(self):
        return "debit" if self.account_type in DEBIT_NORMAL_TYPES else "credit"

    def clean(self):
        low_high = ACCOUNT_CODE_RANGES.get(self.account_type)
        if low_high and self.code is not None:
            low, high = low_high
            if not low <= self.code <= high:
                raise ValidationError(
                    {"code": f"{self.account_type} account codes must be between {low} and {high}."}
                )

        if self.parent_id and self.parent.company_id != self.company_id:
            raise ValidationError(
                "Parent & child accounts must belong to the same company"
            )

    def save(self, *args, **kwargs):
        """Can't deactivate an account that journal lines point at."""
        if self.pk:
            old = Account.objects.filter(pk=self.pk).only("is_active").first()
            if old and old.is_active and not self.is_active:
                if self.journalline_set.exists():
                    raise ValidationError(
                        "Cannot disable an account that is used in journal lines."
                    )
        self.full_clean()
        return super().save(*args, **kwargs)
