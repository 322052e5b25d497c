from django.db import models
from core.models import Business
from core.managers import BusinessManager
from widgets.models import Widget


class AnalyticsEvent(models.Model):
    """Append-only record of something that happened to a widget"""

    EVENT_TYPE_CHOICES = [
        ('widget_viewed', 'Widget Viewed'),
        ('review_submitted', 'Review Submitted'),
    ]

    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name='analytics_events'
    )
    widget = models.ForeignKey(
        Widget,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='analytics_events'
    )
    event_type = models.CharField(max_length=50, choices=EVENT_TYPE_CHOICES, db_index=True)
    event_data = models.JSONField(default=dict, blank=True)

    views = models.PositiveIntegerField(default=0)
    clicks = models.PositiveIntegerField(default=0)
    conversions = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = BusinessManager()

    class Meta:
        db_table = 'analytics_events'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.event_type} @ {self.created_at:%Y-%m-%d %H:%M}"
