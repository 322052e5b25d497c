"""
Tests for the public widget endpoints (review submission and view tracking).
"""
import json
import uuid
from unittest.mock import patch

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase, override_settings

from analytics.models import AnalyticsEvent
from reviews.models import Review
from widgets.factories import WidgetFactory
from widgets.models import Widget

SUBMIT_URL = '/api/widgets/submit-review/'
TRACK_URL = '/api/widgets/track-view/'
MISSING_FIELDS = 'Missing required fields: name, email, rating, review, widgetId'
BAD_RATING = 'Rating must be between 1 and 5'


class WidgetEndpointTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.widget = WidgetFactory(name='Homepage')

    def payload(self, **overrides):
        data = {
            'name': 'Amy',
            'email': 'a@x.com',
            'rating': 5,
            'review': 'Great!',
            'widgetId': self.widget.widget_code,
        }
        data.update(overrides)
        return data

    def post_json(self, url, data, **extra):
        return self.client.post(url, data=json.dumps(data), content_type='application/json', **extra)

    def assertCors(self, response):
        self.assertEqual(response['Access-Control-Allow-Origin'], '*')
        self.assertEqual(response['Access-Control-Allow-Headers'], 'Content-Type')
        self.assertEqual(response['Access-Control-Allow-Methods'], 'POST, OPTIONS')
        self.assertEqual(response['Content-Type'], 'application/json')


@override_settings(RATELIMIT_ENABLE=False)
class SubmitReviewTransportTest(WidgetEndpointTestCase):
    """Preflight, method guard and parse errors"""

    @patch('widgets.services.handle_submission')
    def test_options_preflight_skips_processing(self, mock_handle):
        response = self.client.options(SUBMIT_URL)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'message': 'OK'})
        self.assertCors(response)
        mock_handle.assert_not_called()
        self.assertEqual(Review.objects.count(), 0)

    def test_other_methods_not_allowed(self):
        for method in ('get', 'put', 'delete', 'patch'):
            with self.subTest(method=method):
                response = getattr(self.client, method)(SUBMIT_URL)
                self.assertEqual(response.status_code, 405)
                self.assertEqual(response.json(), {'error': 'Method not allowed'})
                self.assertCors(response)

    def test_malformed_json_is_generic_500(self):
        response = self.client.post(SUBMIT_URL, data='{"name": "Amy", ', content_type='application/json')
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Internal server error'})
        self.assertNotIn('Expecting', response.content.decode())
        self.assertCors(response)
        self.assertEqual(Review.objects.count(), 0)

    def test_deeply_nested_json_is_generic_500(self):
        body = '[' * 100000 + ']' * 100000
        response = self.client.post(SUBMIT_URL, data=body, content_type='application/json')
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Internal server error'})
        self.assertCors(response)

    @patch('widgets.services.handle_submission', side_effect=RuntimeError('pool exhausted'))
    def test_unexpected_error_keeps_cors_headers(self, mock_handle):
        with self.assertLogs('widgets.views', level='ERROR'):
            response = self.post_json(SUBMIT_URL, self.payload())

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Internal server error'})
        self.assertNotIn('pool', response.content.decode())
        self.assertCors(response)


@override_settings(RATELIMIT_ENABLE=False)
class SubmitReviewValidationTest(WidgetEndpointTestCase):

    def test_each_missing_field_names_all_fields(self):
        for field in ('name', 'email', 'rating', 'review', 'widgetId'):
            with self.subTest(field=field):
                data = self.payload()
                del data[field]
                response = self.post_json(SUBMIT_URL, data)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json(), {'error': MISSING_FIELDS})
                self.assertCors(response)

    def test_blank_fields_count_as_missing(self):
        for field in ('name', 'email', 'review', 'widgetId'):
            with self.subTest(field=field):
                response = self.post_json(SUBMIT_URL, self.payload(**{field: '   '}))
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['error'], MISSING_FIELDS)

    def test_null_rating_counts_as_missing(self):
        response = self.post_json(SUBMIT_URL, self.payload(rating=None))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], MISSING_FIELDS)

    def test_out_of_range_or_non_integral_ratings_rejected(self):
        for rating in (0, 6, 3.5, 'five', -1, True, [5], '4.5'):
            with self.subTest(rating=rating):
                response = self.post_json(SUBMIT_URL, self.payload(rating=rating))
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['error'], BAD_RATING)
        self.assertEqual(Review.objects.count(), 0)

    def test_rating_with_thousands_of_digits_rejected(self):
        response = self.post_json(SUBMIT_URL, self.payload(rating='0' * 5000 + '3'))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], BAD_RATING)
        self.assertCors(response)

    def test_integral_ratings_accepted(self):
        for rating, expected in ((1, 1), (5, 5), (4.0, 4), ('3', 3)):
            with self.subTest(rating=rating):
                response = self.post_json(SUBMIT_URL, self.payload(rating=rating))
                self.assertEqual(response.status_code, 200)
                review = Review.objects.get(uuid=response.json()['reviewId'])
                self.assertEqual(review.rating, expected)

    def test_non_string_fields_rejected(self):
        response = self.post_json(SUBMIT_URL, self.payload(name=['Amy']))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid value for name')

    def test_invalid_email_rejected(self):
        response = self.post_json(SUBMIT_URL, self.payload(email='not-an-email'))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid email address')

    def test_over_long_name_rejected(self):
        response = self.post_json(SUBMIT_URL, self.payload(name='A' * 256))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Name must be at most 255 characters')
        self.assertCors(response)
        self.assertEqual(Review.objects.count(), 0)

    def test_longest_name_accepted(self):
        response = self.post_json(SUBMIT_URL, self.payload(name='A' * 255))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(Review.objects.get().customer_name), 255)

    def test_over_long_email_rejected(self):
        response = self.post_json(SUBMIT_URL, self.payload(email='a' * 250 + '@x.com'))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Email must be at most 254 characters')

    def test_non_object_body_rejected(self):
        response = self.post_json(SUBMIT_URL, ['Amy', 5])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], MISSING_FIELDS)

    def test_unknown_widget_not_found(self):
        response = self.post_json(SUBMIT_URL, self.payload(widgetId='widget_doesnotexist1'))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'error': 'Widget not found'})
        self.assertCors(response)

    def test_inactive_widget_not_found(self):
        inactive = WidgetFactory(is_active=False)
        response = self.post_json(SUBMIT_URL, self.payload(widgetId=inactive.widget_code))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(Review.objects.count(), 0)


@override_settings(RATELIMIT_ENABLE=False)
class SubmitReviewSuccessTest(WidgetEndpointTestCase):

    def test_successful_submission(self):
        response = self.post_json(SUBMIT_URL, self.payload())

        self.assertEqual(response.status_code, 200)
        self.assertCors(response)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['message'], 'Review submitted successfully')
        uuid.UUID(body['reviewId'])

        review = Review.objects.get()
        self.assertEqual(str(review.uuid), body['reviewId'])
        self.assertEqual(review.title, '5 star review from Amy')
        self.assertEqual(review.content, 'Great!')
        self.assertEqual(review.customer_name, 'Amy')
        self.assertEqual(review.customer_email, 'a@x.com')
        self.assertEqual(review.status, 'published')
        self.assertEqual(review.source, 'widget')
        self.assertEqual(review.widget, self.widget)
        self.assertEqual(review.business, self.widget.business)

    def test_side_effects_happen_once(self):
        self.post_json(SUBMIT_URL, self.payload(rating=4))

        self.widget.refresh_from_db()
        self.assertEqual(self.widget.clicks, 1)

        event = AnalyticsEvent.objects.get()
        self.assertEqual(event.event_type, 'review_submitted')
        self.assertEqual(event.business, self.widget.business)
        self.assertEqual(event.widget, self.widget)
        self.assertEqual(event.conversions, 1)
        self.assertEqual(event.event_data, {
            'rating': 4,
            'widget_name': 'Homepage',
            'customer_name': 'Amy',
        })

    @patch('widgets.services.record_event')
    @patch('widgets.services.increment_click_count')
    def test_each_collaborator_called_exactly_once(self, mock_increment, mock_record):
        response = self.post_json(SUBMIT_URL, self.payload())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(Review.objects.count(), 1)
        mock_increment.assert_called_once_with(self.widget)
        mock_record.assert_called_once()
        self.assertEqual(mock_record.call_args.kwargs['event_type'], 'review_submitted')

    @patch('widgets.services.record_event', side_effect=DatabaseError('analytics down'))
    @patch('widgets.services.increment_click_count', side_effect=DatabaseError('counter down'))
    def test_side_effect_failures_do_not_fail_submission(self, mock_increment, mock_record):
        with self.assertLogs('widgets.services', level='ERROR') as logs:
            response = self.post_json(SUBMIT_URL, self.payload())

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['success'])
        self.assertEqual(Review.objects.count(), 1)
        mock_increment.assert_called_once()
        mock_record.assert_called_once()
        self.assertEqual(len(logs.records), 2)

    @patch('widgets.services.record_event', side_effect=DatabaseError('analytics down'))
    def test_counter_still_increments_when_analytics_fails(self, mock_record):
        response = self.post_json(SUBMIT_URL, self.payload())
        self.assertEqual(response.status_code, 200)
        self.widget.refresh_from_db()
        self.assertEqual(self.widget.clicks, 1)
        self.assertEqual(AnalyticsEvent.objects.count(), 0)

    @patch('widgets.services.Review.objects.create', side_effect=DatabaseError('relation "reviews" is locked'))
    def test_insert_failure_does_not_leak_detail(self, mock_create):
        response = self.post_json(SUBMIT_URL, self.payload())

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Failed to submit review'})
        self.assertNotIn('locked', response.content.decode())
        self.assertCors(response)
        self.widget.refresh_from_db()
        self.assertEqual(self.widget.clicks, 0)

    def test_client_ip_from_first_forwarded_hop(self):
        self.post_json(
            SUBMIT_URL, self.payload(),
            HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1',
            HTTP_X_REAL_IP='10.0.0.2',
            HTTP_USER_AGENT='Mozilla/5.0 (Test)',
        )
        review = Review.objects.get()
        self.assertEqual(review.ip_address, '203.0.113.7')
        self.assertEqual(review.user_agent, 'Mozilla/5.0 (Test)')

    def test_long_forwarded_hop_truncated(self):
        response = self.post_json(SUBMIT_URL, self.payload(), HTTP_X_FORWARDED_FOR='f' * 200 + ', 10.0.0.1')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Review.objects.get().ip_address, 'f' * 64)

    def test_client_ip_from_real_ip_header(self):
        self.post_json(SUBMIT_URL, self.payload(), HTTP_X_REAL_IP='198.51.100.4')
        self.assertEqual(Review.objects.get().ip_address, '198.51.100.4')

    def test_client_meta_unknown_when_absent(self):
        self.post_json(SUBMIT_URL, self.payload())
        review = Review.objects.get()
        self.assertEqual(review.ip_address, 'unknown')
        self.assertEqual(review.user_agent, 'unknown')


@override_settings(RATELIMIT_ENABLE=True, WIDGET_SUBMIT_RATE='2/m')
class SubmitReviewRateLimitTest(WidgetEndpointTestCase):

    def test_rate_limited_with_cors_headers(self):
        for _ in range(2):
            self.assertEqual(self.post_json(SUBMIT_URL, self.payload()).status_code, 200)

        response = self.post_json(SUBMIT_URL, self.payload())
        self.assertEqual(response.status_code, 429)
        self.assertCors(response)
        self.assertEqual(Review.objects.count(), 2)

    def test_preflight_not_rate_limited(self):
        for _ in range(5):
            self.assertEqual(self.client.options(SUBMIT_URL).status_code, 200)


@override_settings(RATELIMIT_ENABLE=False)
class TrackViewTest(WidgetEndpointTestCase):

    def test_counts_view_and_records_event(self):
        response = self.post_json(TRACK_URL, {'widgetId': self.widget.widget_code})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'success': True})
        self.assertCors(response)
        self.assertEqual(Widget.objects.get(pk=self.widget.pk).views, 1)

        event = AnalyticsEvent.objects.get()
        self.assertEqual(event.event_type, 'widget_viewed')
        self.assertEqual(event.views, 1)

    def test_unknown_widget(self):
        response = self.post_json(TRACK_URL, {'widgetId': 'widget_nope'})
        self.assertEqual(response.status_code, 404)

    def test_missing_widget_id(self):
        response = self.post_json(TRACK_URL, {})
        self.assertEqual(response.status_code, 400)

    def test_options(self):
        response = self.client.options(TRACK_URL)
        self.assertEqual(response.status_code, 200)
        self.assertCors(response)
