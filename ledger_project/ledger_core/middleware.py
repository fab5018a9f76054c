from django.utils.deprecation import MiddlewareMixin

from .models import Company, EntityMembership


class CurrentCompanyMiddleware(MiddlewareMixin):
    """
    Attach the active tenant and the user's role in it to every request
    as `request.company` / `request.company_role`.
    """

    def process_request(self, request):
        request.company = None
        request.company_role = None
        if not request.user.is_authenticated:
            return

        company = request.user.default_company
        # A company switched to in the session wins over the default
        company_id = request.session.get("active_company_id")
        if company_id:
            company = Company.objects.filter(
                pk=company_id, memberships__user=request.user,
                memberships__is_active=True,
            ).first()

        role = EntityMembership.role_for(request.user, company)
        # No active membership, no tenant
        if role is None:
            return
        request.company = company
        request.company_role = role
