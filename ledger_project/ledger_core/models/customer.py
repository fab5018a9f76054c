from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


class Customer(models.Model):
    """
    Receivables counterparty. The three counters are maintained by
    invoice / payment postings and rolled back by their reversals.
    """
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)

    total_invoiced = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    total_received = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    outstanding_balance = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "name"], name="cust_company_name_idx")]

    def __str__(self):
        return self.name
