from datetime import timedelta

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from core.factories import BusinessFactory
from reviews.factories import ReviewFactory
from widgets.factories import WidgetFactory
from .models import AnalyticsEvent
from .services import conversion_rate, range_start, record_event, summarize


class ConversionRateTestCase(SimpleTestCase):

    def test_no_views_is_zero(self):
        self.assertEqual(conversion_rate(0, 0), 0)
        self.assertEqual(conversion_rate(5, 0), 0)

    def test_rounded_to_one_decimal(self):
        self.assertEqual(conversion_rate(1, 3), 33.3)
        self.assertEqual(conversion_rate(2, 3), 66.7)
        self.assertEqual(conversion_rate(10, 10), 100.0)

    def test_unknown_range_falls_back_to_30_days(self):
        now = timezone.now()
        name, since = range_start('1y', now=now)
        self.assertEqual(name, '30d')
        self.assertEqual(since, now - timedelta(days=30))

        name, since = range_start('7d', now=now)
        self.assertEqual(name, '7d')
        self.assertEqual(since, now - timedelta(days=7))


class SummarizeTestCase(TestCase):
    """
    Summaries count only the business's own events inside the window
    """

    def setUp(self):
        self.widget = WidgetFactory()
        self.business = self.widget.business

    def _event(self, event_type, days_ago=0, **counts):
        event = record_event(self.business, self.widget, event_type, **counts)
        if days_ago:
            AnalyticsEvent.objects.filter(pk=event.pk).update(
                created_at=timezone.now() - timedelta(days=days_ago)
            )
        return event

    def test_empty_business(self):
        summary = summarize(BusinessFactory())
        self.assertEqual(summary['range'], '30d')
        self.assertEqual(summary['views'], 0)
        self.assertEqual(summary['clicks'], 0)
        self.assertEqual(summary['conversion_rate'], 0)
        self.assertEqual(summary['review_count'], 0)
        self.assertIsNone(summary['average_rating'])
        self.assertEqual(summary['events'], {})

    def test_totals_and_conversion_rate(self):
        for _ in range(4):
            self._event('widget_viewed', views=1)
        self._event('review_submitted', clicks=1, conversions=1)

        summary = summarize(self.business, '7d')

        self.assertEqual(summary['views'], 4)
        self.assertEqual(summary['clicks'], 1)
        self.assertEqual(summary['conversions'], 1)
        self.assertEqual(summary['conversion_rate'], 25.0)
        self.assertEqual(summary['events'], {'widget_viewed': 4, 'review_submitted': 1})

    def test_events_outside_window_ignored(self):
        self._event('widget_viewed', views=1)
        self._event('widget_viewed', days_ago=10, views=1)
        self._event('widget_viewed', days_ago=45, views=1)

        self.assertEqual(summarize(self.business, '7d')['views'], 1)
        self.assertEqual(summarize(self.business, '30d')['views'], 2)
        self.assertEqual(summarize(self.business, '90d')['views'], 3)

    def test_other_businesses_excluded(self):
        other = WidgetFactory()
        record_event(other.business, other, 'widget_viewed', views=1)
        ReviewFactory(widget=other)

        summary = summarize(self.business)
        self.assertEqual(summary['views'], 0)
        self.assertEqual(summary['review_count'], 0)

    def test_average_rating_uses_published_reviews(self):
        ReviewFactory(widget=self.widget, rating=5)
        ReviewFactory(widget=self.widget, rating=4)
        ReviewFactory(widget=self.widget, rating=4)
        ReviewFactory(widget=self.widget, rating=1, status='hidden')

        summary = summarize(self.business)
        self.assertEqual(summary['review_count'], 4)
        self.assertEqual(summary['average_rating'], 4.3)

    def test_event_survives_widget_removal(self):
        event = self._event('review_submitted', clicks=1, conversions=1)
        self.widget.delete()
        event.refresh_from_db()
        self.assertIsNone(event.widget)
