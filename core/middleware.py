import logging

from .models import Business

logger = logging.getLogger(__name__)


class BusinessMiddleware:
    """
    Attach business to request based on the logged in user

    For session-authenticated users:
    - Uses the business they own

    For anonymous users and bearer-token API clients:
    - request.business stays None here; api.permissions.get_request_business
      resolves it once DRF has authenticated the token
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.business = None

        # Public widget endpoints never need tenant context
        exempt_paths = [
            '/api/widgets/',
            '/api/stripe/webhook/',
            '/static/',
            '/health/',
        ]

        if any(request.path.startswith(path) for path in exempt_paths):
            return self.get_response(request)

        if request.user.is_authenticated:
            try:
                request.business = request.user.business
            except Business.DoesNotExist:
                logger.info(f"User {request.user.pk} has no business yet")

        return self.get_response(request)
