"""
Embeddable review-collection widgets.
"""
import string

from django.core.validators import RegexValidator, MinValueValidator
from django.db import models
from django.utils.crypto import get_random_string

from core.models import TimeStampedModel, Business
from core.managers import BusinessManager

WIDGET_CODE_PREFIX = 'widget_'
WIDGET_CODE_LENGTH = 13
WIDGET_CODE_PATTERN = r'^[A-Za-z0-9_-]+$'


def generate_widget_code():
    """Public opaque widget code, e.g. widget_k3j9x0q2m1a7b"""
    return WIDGET_CODE_PREFIX + get_random_string(
        WIDGET_CODE_LENGTH, allowed_chars=string.ascii_lowercase + string.digits
    )


def default_colors():
    return {
        'primary': '#007cba',
        'secondary': '#f8f9fa',
        'text': '#333333',
    }


class Widget(TimeStampedModel):
    """
    A review widget a business embeds on its own site.

    Widgets are soft-disabled through is_active and never hard-deleted while
    reviews reference them.
    """

    THEME_CHOICES = [
        ('light', 'Light'),
        ('dark', 'Dark'),
    ]

    POSITION_CHOICES = [
        ('bottom-right', 'Bottom Right'),
        ('bottom-left', 'Bottom Left'),
        ('top-right', 'Top Right'),
        ('top-left', 'Top Left'),
    ]

    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name='widgets'
    )

    # Public code used by the embed snippet (distinct from the primary key)
    widget_code = models.CharField(
        max_length=64,
        unique=True,
        db_index=True,
        editable=False,
        validators=[RegexValidator(WIDGET_CODE_PATTERN)],
        help_text='Public identifier used in embed snippets'
    )

    name = models.CharField(max_length=255, default='Review Widget')
    title = models.CharField(max_length=255, default='How was your experience?')
    subtitle = models.CharField(max_length=500, blank=True, default="We'd love to hear your feedback!")
    button_text = models.CharField(max_length=100, default='Leave a Review')
    theme = models.CharField(max_length=20, choices=THEME_CHOICES, default='light')
    position = models.CharField(max_length=20, choices=POSITION_CHOICES, default='bottom-right')
    show_after = models.PositiveIntegerField(
        default=5000,
        validators=[MinValueValidator(0)],
        help_text='Delay in milliseconds before the call-to-action appears'
    )
    colors = models.JSONField(
        default=default_colors,
        help_text='{"primary": "#007cba", "secondary": "#f8f9fa", "text": "#333333"}'
    )

    is_active = models.BooleanField(default=True)

    # Counters, only ever changed with atomic F() updates
    views = models.PositiveIntegerField(default=0, editable=False)
    clicks = models.PositiveIntegerField(default=0, editable=False)

    objects = BusinessManager()

    class Meta:
        db_table = 'widgets'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.widget_code})"

    def save(self, *args, **kwargs):
        """Auto-generate public code if not set"""
        if not self.widget_code:
            self.widget_code = generate_widget_code()
            while Widget.objects.filter(widget_code=self.widget_code).exists():
                self.widget_code = generate_widget_code()
        super().save(*args, **kwargs)

    @property
    def conversion_rate(self):
        """Clicks per hundred views, one decimal"""
        if not self.views:
            return 0.0
        return round(self.clicks / self.views * 100, 1)
