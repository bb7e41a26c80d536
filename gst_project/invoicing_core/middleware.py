from django.utils.deprecation import MiddlewareMixin
from .models import Company


class CurrentCompanyMiddleware(MiddlewareMixin):
    # Run on every request and attach request.company (the tenant)
    # based on the logged-in user's memberships
    def process_request(self, request):
        request.company = None
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return

        # If user switched companies, choice is stored in the session
        company_id = request.session.get("active_company_id") or user.default_company_id
        if not company_id:
            return

        try:
            # user must hold an active membership in that company;
            # a tampered session id simply yields no company
            request.company = Company.objects.get(
                id=company_id,
                memberships__user=user,
                memberships__is_active=True,
            )
        except Company.DoesNotExist:
            request.company = None
