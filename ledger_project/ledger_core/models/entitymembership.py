from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager, UserManager


# ---------- Tenant / Company ----------
class Company(models.Model):
    """Tenant / Organization"""

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=80, unique=True)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        # company record stays if the owner is deleted
        on_delete=models.SET_NULL,
        related_name="owned_companies",
    )
    currency_code = models.CharField(max_length=10, default="USD")

    # Tenant settings written by the opening-balance posting
    opening_balances_posted = models.BooleanField(default=False)
    opening_balances_posted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name


# ---------- Custom User ----------
class User(AbstractUser):
    """
    AUTH_USER_MODEL = "ledger_core.User" must be in settings.py
    before the first migrate.
    """
    default_company = models.ForeignKey(
        "Company",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="default_users",
    )
    phone = models.CharField(max_length=32, blank=True)

    objects = UserManager()

    class Meta:
        indexes = [models.Index(fields=["default_company"], name="user_default_company_idx")]

    def __str__(self):
        return self.get_full_name() or self.username


# ---------- EntityMembership ----------
class EntityMembership(models.Model):
    """Bridge between User and Company carrying the user's role."""

    ROLE_CHOICES = [
        ("owner", "Owner"),            # full control
        ("admin", "Admin"),            # settings, users, chart of accounts
        ("accountant", "Accountant"),  # posts and reverses journals
        ("hr_manager", "HR Manager"),  # payroll only
        ("viewer", "Viewer"),          # read-only
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    company = models.ForeignKey(
        "Company", on_delete=models.CASCADE, related_name="memberships"
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="viewer")

    # Suspend access without deleting the record
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"], name="uq_user_company_membership"
            ),
        ]
        indexes = [models.Index(fields=["company", "user"], name="member_company_user_idx")]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"

    def clean(self):
        """
        A user's default company must be one of their memberships;
        the membership being validated counts.
        """
        if self.user_id and self.user.default_company_id:
            existing = self.user.memberships.exclude(pk=self.pk).values_list(
                "company_id", flat=True
            )
            default_pk = self.user.default_company_id
            if default_pk not in set(existing) and default_pk != self.company_id:
                raise ValidationError(
                    f"Default company {self.user.default_company} must be a user's membership."
                )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @classmethod
    def role_for(cls, user, company):
        """Active role of `user` in `company`, or None."""
        if user is None or company is None:
            return None
        return (
            cls.objects.filter(user=user, company=company, is_active=True)
            .values_list("role", flat=True)
            .first()
        )
