"""
Factory definitions for accounts models
"""
import factory
from factory.django import DjangoModelFactory
from django.utils import timezone
from datetime import timedelta
from .models import AccessToken
from core.factories import UserFactory


class AccessTokenFactory(DjangoModelFactory):
    """Factory for creating access tokens"""

    class Meta:
        model = AccessToken

    user = factory.SubFactory(UserFactory)
    is_active = True
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(days=7))
