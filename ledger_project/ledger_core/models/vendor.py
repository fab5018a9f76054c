from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


class Vendor(models.Model):
    # Payables counterparty; counters follow bill / bill payment postings
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)

    total_billed = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    total_paid = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    outstanding_payables = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "name"], name="vendor_company_name_idx")]

    def __str__(self):
        return self.name
