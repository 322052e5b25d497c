"""
Widget analytics: recording events and summarising them for the dashboard.
"""
import logging
from datetime import timedelta

from django.db.models import Avg, Count, Sum
from django.utils import timezone

from .models import AnalyticsEvent

logger = logging.getLogger(__name__)

DATE_RANGES = {
    '7d': 7,
    '30d': 30,
    '90d': 90,
}
DEFAULT_RANGE = '30d'


def record_event(business, widget, event_type, event_data=None, views=0, clicks=0, conversions=0):
    """Append one analytics event"""
    return AnalyticsEvent.objects.create(
        business=business,
        widget=widget,
        event_type=event_type,
        event_data=event_data or {},
        views=views,
        clicks=clicks,
        conversions=conversions,
    )


def range_start(date_range, now=None):
    """
    Start of a named reporting window.

    Unknown range names fall back to the 30 day window.

    Returns:
        tuple: (normalised range name, start datetime)
    """
    if date_range not in DATE_RANGES:
        date_range = DEFAULT_RANGE
    now = now or timezone.now()
    return date_range, now - timedelta(days=DATE_RANGES[date_range])


def conversion_rate(clicks, views):
    if not views:
        return 0
    return round(clicks / views * 100, 1)


def summarize(business, date_range=DEFAULT_RANGE):
    """
    Totals for a business over a reporting window.

    Returns:
        dict: range, since, views, clicks, conversions, conversion_rate,
              review_count, average_rating and per event type counts
    """
    from reviews.models import Review

    date_range, since = range_start(date_range)

    events = AnalyticsEvent.objects.for_business(business).filter(created_at__gte=since)
    totals = events.aggregate(
        views=Sum('views'),
        clicks=Sum('clicks'),
        conversions=Sum('conversions'),
    )
    views = totals['views'] or 0
    clicks = totals['clicks'] or 0

    by_type = {
        row['event_type']: row['count']
        for row in events.order_by().values('event_type').annotate(count=Count('id'))
    }

    reviews = Review.objects.for_business(business).filter(created_at__gte=since)
    published = reviews.filter(status='published').aggregate(average=Avg('rating'))
    average = published['average']

    return {
        'range': date_range,
        'since': since,
        'views': views,
        'clicks': clicks,
        'conversions': totals['conversions'] or 0,
        'conversion_rate': conversion_rate(clicks, views),
        'review_count': reviews.count(),
        'average_rating': round(average, 1) if average is not None else None,
        'events': by_type,
    }
