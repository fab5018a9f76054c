from django.db import models
from ..managers import TenantManager
from .banking import Direction
from .entitymembership import Company


class Product(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=64, blank=True)
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "name"], name="prod_company_name_idx")]

    def __str__(self):
        return self.name


class InventoryItem(models.Model):
    """Stock on hand for one product; issued by invoices."""
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    product = models.OneToOneField(
        Product, on_delete=models.CASCADE, related_name="inventory_item"
    )
    quantity_on_hand = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    objects = TenantManager()

    def __str__(self):
        return f"{self.product} on hand: {self.quantity_on_hand}"


class StockMovement(models.Model):
    MOVEMENT_TYPES = [
        ("issue", "Issue"),    # sold on an invoice
        ("return", "Return"),  # invoice reversed
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name="movements")
    movement_date = models.DateField()
    direction = models.CharField(max_length=10, choices=Direction.choices)
    movement_type = models.CharField(max_length=10, choices=MOVEMENT_TYPES)
    quantity = models.DecimalField(max_digits=14, decimal_places=2)
    reference_type = models.CharField(max_length=40)
    reference_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "reference_type", "reference_id"], name="stock_company_ref_idx")]

    def __str__(self):
        return f"{self.movement_type} {self.quantity} of {self.item_id}"
