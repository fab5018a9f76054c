from django.conf import settings
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


# ---------- Audit / Event log ----------
class AuditLog(models.Model):
    """
    Written after commit by the record_audit_events task.
    At-least-once: `event_id` makes redelivery a no-op.
    """
    company = models.ForeignKey(Company, null=True, blank=True, on_delete=models.SET_NULL)
    # Null for automated actions (background job, import script)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    event_id = models.CharField(max_length=64, unique=True)
    action = models.CharField(max_length=50)  # journal_entry_posted, payroll_processed...
    object_type = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "user"], name="audit_company_user_idx"),
            models.Index(fields=["company", "created_at"], name="audit_company_created_idx"),
        ]

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"
