"""
Account operations: sign up, sign in, profile and password changes, deletion.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import authenticate
from django.contrib.auth.models import User
from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from django.utils import timezone

from core.models import Business
from .models import AccessToken, UserProfile

logger = logging.getLogger(__name__)


class AccountError(Exception):
    """An account operation that cannot be completed; message is safe to show"""


def ensure_business(user, name=None):
    """
    Return the user's business, creating a default one if they have none.

    The default is named after the local part of the user's email.
    """
    try:
        return user.business
    except Business.DoesNotExist:
        pass

    email = user.email or user.username
    business = Business.objects.create(
        owner=user,
        name=name or f"{email.split('@')[0]} Business",
        email=email,
        industry='General',
    )
    logger.info(f"Created business {business.pk} for user {user.pk}")
    return business


def issue_token(user):
    return AccessToken.objects.create(
        user=user,
        expires_at=timezone.now() + timedelta(hours=settings.ACCESS_TOKEN_TTL_HOURS),
    )


def revoke_tokens(user, keep=None):
    """Deactivate a user's tokens, optionally keeping one"""
    tokens = AccessToken.objects.filter(user=user, is_active=True)
    if keep is not None:
        tokens = tokens.exclude(pk=keep.pk)
    return tokens.update(is_active=False)


def sign_up(email, password, metadata=None, business_name=None):
    """
    Register a user with their business.

    Returns:
        tuple: (user, business, access token)

    Raises:
        AccountError: Email already registered
        django.core.exceptions.ValidationError: Password rejected by validators
    """
    email = email.strip().lower()
    metadata = dict(metadata or {})

    if User.objects.filter(username=email).exists() or User.objects.filter(email=email).exists():
        raise AccountError('An account with this email already exists')

    validate_password(password, user=User(username=email, email=email))

    with transaction.atomic():
        user = User.objects.create_user(
            username=email,
            email=email,
            password=password,
            first_name=metadata.get('first_name', '')[:150],
            last_name=metadata.get('last_name', '')[:150],
        )
        UserProfile.objects.update_or_create(user=user, defaults={'metadata': metadata})
        business = ensure_business(user, name=business_name)
        token = issue_token(user)

    logger.info(f"New account {user.pk} signed up")
    return user, business, token


def sign_in(request, email, password):
    """
    Check credentials and issue a token.

    django-axes counts failures against the username/IP pair. Once locked
    out, authenticate() returns None and AxesMiddleware replaces the
    response with its lockout response, so pass the Django HttpRequest.

    Raises:
        AccountError: Wrong email or password
    """
    user = authenticate(request=request, username=email.strip().lower(), password=password)
    if user is None:
        raise AccountError('Invalid email or password')
    if not user.is_active:
        raise AccountError('This account is disabled')

    ensure_business(user)
    token = issue_token(user)
    logger.info(f"User {user.pk} signed in")
    return user, token


def sign_out(user, token=None):
    """Revoke the presented token, or every token when signed in by session"""
    if token is not None:
        token.is_active = False
        token.save(update_fields=['is_active', 'updated_at'])
        return 1
    return revoke_tokens(user)


def update_profile(user, first_name=None, last_name=None, metadata=None):
    """Update name fields and merge metadata into the profile"""
    fields = []
    if first_name is not None:
        user.first_name = first_name
        fields.append('first_name')
    if last_name is not None:
        user.last_name = last_name
        fields.append('last_name')
    if fields:
        user.save(update_fields=fields)

    profile, _ = UserProfile.objects.get_or_create(user=user)
    if metadata:
        profile.metadata = {**profile.metadata, **metadata}
        profile.save(update_fields=['metadata', 'updated_at'])
    return user


def update_password(user, password, current_token=None):
    """
    Change the password and revoke every other token.

    Raises:
        django.core.exceptions.ValidationError: Password rejected by validators
    """
    validate_password(password, user=user)
    user.set_password(password)
    user.save(update_fields=['password'])
    revoked = revoke_tokens(user, keep=current_token)
    logger.info(f"User {user.pk} changed password, revoked {revoked} token(s)")
    return user


def delete_account(user):
    """Cancel billing, then delete the business (and everything it owns) and the user"""
    from subscriptions.services import cancel_all_subscriptions

    try:
        business = user.business
    except Business.DoesNotExist:
        business = None

    if business is not None:
        cancel_all_subscriptions(business)

    with transaction.atomic():
        if business is not None:
            business.delete()
        user_id = user.pk
        user.delete()

    logger.info(f"Deleted account {user_id}")
