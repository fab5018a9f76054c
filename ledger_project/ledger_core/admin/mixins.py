from django.contrib import admin
from django.core.exceptions import PermissionDenied


class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.company (set by CurrentCompanyMiddleware).
    """

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        # If superuser, show everything; otherwise restrict to the active company
        if request.user.is_superuser:
            return qs
        company = getattr(request, "company", None)
        if company is None:
            return qs.none()
        return qs.filter(company=company)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """Restrict company-scoped dropdowns to the current company."""
        company = getattr(request, "company", None)
        rel_model = getattr(db_field, "related_model", None)
        if not request.user.is_superuser and rel_model is not None:
            if db_field.name == "company":
                kwargs["queryset"] = rel_model.objects.filter(
                    pk=getattr(company, "pk", None)
                )
            elif hasattr(rel_model, "company"):
                kwargs["queryset"] = rel_model.objects.filter(company=company)
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Always owned by the active company (unless superuser)
        company = getattr(request, "company", None)
        if not request.user.is_superuser and company is not None:
            obj.company = company
        super().save_model(request, obj, form, change)


class ReadOnlyAdmin(TenantAdminMixin, admin.ModelAdmin):
    """
    Ledger rows are written by the posting services only; the admin
    shows them but never adds, edits or deletes.
    """
    list_per_page = 50

    # make every model field readonly
    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        raise PermissionDenied("Ledger rows cannot be changed via the admin.")

    # Disable admin actions like delete_selected
    def get_actions(self, request):
        return {}
