from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


class PeriodStatus(models.TextChoices):
    OPEN = "open", "Open"
    CLOSED = "closed", "Closed"
    LOCKED = "locked", "Locked"


# Either status blocks postings dated inside the period
BLOCKING_STATUSES = (PeriodStatus.CLOSED, PeriodStatus.LOCKED)


# ---------- Period (financial period) ----------
class Period(models.Model):
    """
    Time bucket for reporting and closing.
    "Company A" can close July while "Company B" is still open.
    """
    company = models.ForeignKey(Company, on_delete=models.PROTECT)
    name = models.CharField(max_length=50)  # "2025-Q3", "FY2025-01"
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(
        max_length=10, choices=PeriodStatus.choices, default=PeriodStatus.OPEN
    )

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "start_date"], name="period_company_start_idx"),
            models.Index(fields=["company", "status"], name="period_company_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["company", "name"],
                                    name="uq_company_period_name"),
        ]
        ordering = ("company", "start_date")

    def __str__(self):
        return f"{self.company.slug} {self.name}"

    @property
    def is_closed(self):
        return self.status in BLOCKING_STATUSES

    def clean(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError("start_date must be on or before end_date")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


# ---------- PeriodLock ----------
class PeriodLock(models.Model):
    """
    Explicit lock over a date range. Missing bounds are open-ended;
    a lock with neither bound covers every date.
    """
    company = models.ForeignKey(Company, on_delete=models.CASCADE,
                                related_name="period_locks")
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    is_locked = models.BooleanField(default=True)
    status = models.CharField(
        max_length=10, choices=PeriodStatus.choices, default=PeriodStatus.LOCKED
    )
    reason = models.CharField(max_length=200, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "is_locked"], name="plock_company_locked_idx")]

    def __str__(self):
        return f"{self.company.slug} lock {self.start_date or '…'} → {self.end_date or '…'}"

    @property
    def is_effective(self):
        return self.is_locked or self.status in BLOCKING_STATUSES

    def covers(self, day):
        """Inclusive bounds; a missing bound does not restrict."""
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True
