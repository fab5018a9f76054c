from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


class Employee(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    employee_number = models.CharField(max_length=32, blank=True)
    full_name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "employee_number"], name="emp_company_number_idx")]

    def __str__(self):
        return self.full_name


class PayrollStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PROCESSED = "processed", "Processed"
    PAID = "paid", "Paid"
    REVERSED = "reversed", "Reversed"


# ---------- PayrollRun ----------
class PayrollRun(models.Model):
    """
    draft → processed (Payroll entry posted, advances deducted)
          → paid (PayrollPayment entry posted)
    Reversing the payment returns the run to processed;
    reversing the Payroll entry marks it reversed.
    """
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    period_label = models.CharField(max_length=80, blank=True)
    period_start = models.DateField()
    period_end = models.DateField()
    run_date = models.DateField()
    status = models.CharField(
        max_length=10, choices=PayrollStatus.choices, default=PayrollStatus.DRAFT
    )

    total_gross = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    # Statutory (PAYE and the like) plus other deductions
    total_deductions = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    # Salary advance recoveries
    total_advances = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    total_net = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    journal_entry = models.ForeignKey(
        "JournalEntry", null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    payment_journal_entry = models.ForeignKey(
        "JournalEntry", null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    payment_account = models.ForeignKey(
        "Account", null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    payment_date = models.DateField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "status"], name="payrun_company_status_idx")]

    def __str__(self):
        return f"Payroll {self.period_label or self.period_end} [{self.status}]"

    def clean(self):
        if self.period_start and self.period_end and self.period_start > self.period_end:
            raise ValidationError("period_start must be before or equal to period_end.")


class PayrollItem(models.Model):
    payroll_run = models.ForeignKey(PayrollRun, on_delete=models.CASCADE, related_name="items")
    employee = models.ForeignKey(Employee, on_delete=models.PROTECT, related_name="+")
    gross_salary = models.DecimalField(max_digits=18, decimal_places=2)
    paye = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    other_deductions = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    # Budget the advance ledger draws down for this employee
    advances_deducted = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    net_salary = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    def __str__(self):
        return f"{self.employee} gross {self.gross_salary}"

    @property
    def statutory_deductions(self):
        return self.paye + self.other_deductions


class AdvanceStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PARTIAL = "partial", "Partially deducted"
    DEDUCTED = "deducted", "Fully deducted"


# Statuses that still have a balance to recover
OPEN_ADVANCE_STATUSES = (AdvanceStatus.PENDING, AdvanceStatus.PARTIAL)


# ---------- Advance ----------
class Advance(models.Model):
    """Salary advance repaid through payroll deductions, oldest first."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    employee = models.ForeignKey(Employee, on_delete=models.PROTECT, related_name="advances")
    original_amount = models.DecimalField(max_digits=18, decimal_places=2)
    remaining_balance = models.DecimalField(max_digits=18, decimal_places=2)
    monthly_deduction = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    months_to_repay = models.PositiveIntegerField(default=0)  # 0 = no term
    months_deducted = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=10, choices=AdvanceStatus.choices, default=AdvanceStatus.PENDING
    )
    date_to_deduct = models.DateField()
    last_deducted_run = models.ForeignKey(
        PayrollRun, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    last_deducted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "employee", "status"], name="adv_company_emp_status_idx")]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(remaining_balance__gte=0)
                & models.Q(remaining_balance__lte=models.F("original_amount")),
                name="advance_remaining_within_original",
            ),
        ]

    def __str__(self):
        return f"Advance {self.pk} {self.remaining_balance}/{self.original_amount} [{self.status}]"


# ---------- PayrollAdvanceDeduction ----------
class PayrollAdvanceDeduction(models.Model):
    """
    Snapshot of one allocation, so a payroll reversal can restore
    the advance exactly. One row per (company, payroll run, advance).
    """
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    payroll_run = models.ForeignKey(
        PayrollRun, on_delete=models.PROTECT, related_name="advance_deductions"
    )
    # SET_NULL keeps the audit row if the advance goes away
    advance = models.ForeignKey(
        Advance, null=True, blank=True, on_delete=models.SET_NULL, related_name="deductions"
    )
    employee = models.ForeignKey(Employee, on_delete=models.PROTECT, related_name="+")
    deduction_key = models.CharField(max_length=120, unique=True)

    amount = models.DecimalField(max_digits=18, decimal_places=2)
    balance_before = models.DecimalField(max_digits=18, decimal_places=2)
    balance_after = models.DecimalField(max_digits=18, decimal_places=2)
    months_before = models.PositiveIntegerField()
    months_after = models.PositiveIntegerField()
    month_increment = models.PositiveIntegerField()
    status_before = models.CharField(max_length=10, choices=AdvanceStatus.choices)
    status_after = models.CharField(max_length=10, choices=AdvanceStatus.choices)

    is_reversed = models.BooleanField(default=False)
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    skip_reason = models.CharField(max_length=40, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "payroll_run"], name="advded_company_run_idx")]

    def __str__(self):
        return self.deduction_key

    @staticmethod
    def build_key(company_id, payroll_run_id, advance_id):
        return f"{company_id}_{payroll_run_id}_{advance_id}"
