import secrets
from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone
from core.models import TimeStampedModel


class UserProfile(TimeStampedModel):
    """Free-form profile data kept alongside the auth user"""
    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile'
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text='Arbitrary profile fields set at sign up or by update_profile'
    )

    class Meta:
        db_table = 'user_profiles'
        ordering = ['user__username']

    def __str__(self):
        return self.user.username


class AccessToken(TimeStampedModel):
    """
    Bearer token issued on sign in / sign up.

    Sent as "Authorization: Bearer <token>". Tokens expire and are revoked on
    sign out and on password change.
    """
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='access_tokens'
    )
    token = models.CharField(max_length=64, unique=True, db_index=True, editable=False)
    is_active = models.BooleanField(default=True)
    expires_at = models.DateTimeField()
    last_used_at = models.DateTimeField(null=True, blank=True, editable=False)

    class Meta:
        db_table = 'access_tokens'
        ordering = ['-created_at']

    def __str__(self):
        return f"Token for {self.user.username} (expires {self.expires_at:%Y-%m-%d})"

    def save(self, *args, **kwargs):
        """Auto-generate token if not set"""
        if not self.token:
            self.token = secrets.token_urlsafe(48)  # 64 chars after encoding
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return self.expires_at < timezone.now()
