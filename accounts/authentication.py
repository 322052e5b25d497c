"""
Bearer token authentication for DRF.
"""
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from django.utils import timezone
from .models import AccessToken


class AccessTokenAuthentication(BaseAuthentication):
    """
    Authenticate with a token issued by sign in.

    Example: Authorization: Bearer <token>
    """

    keyword = "Bearer"

    def authenticate(self, request):
        """
        Returns:
            Tuple of (user, token) if the header is present, None otherwise

        Raises:
            AuthenticationFailed: If token is unknown, revoked, or expired
        """
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith(f"{self.keyword} "):
            return None

        token_value = auth_header[len(self.keyword) + 1:].strip()

        try:
            token = AccessToken.objects.select_related("user").get(
                token=token_value, is_active=True
            )
        except AccessToken.DoesNotExist:
            raise AuthenticationFailed("Invalid or inactive token")

        if token.is_expired:
            raise AuthenticationFailed("Token has expired")

        if not token.user.is_active:
            raise AuthenticationFailed("User inactive or deleted")

        # Update last used timestamp without touching updated_at
        AccessToken.objects.filter(pk=token.pk).update(last_used_at=timezone.now())

        return (token.user, token)

    def authenticate_header(self, request):
        return self.keyword
