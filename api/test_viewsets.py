"""
Tests for API viewsets.
"""
import uuid
from decimal import Decimal
from unittest.mock import patch

import stripe
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounts.factories import AccessTokenFactory
from analytics.services import record_event
from core.factories import BusinessFactory
from reviews.factories import ReviewFactory
from reviews.models import Review
from subscriptions.models import Plan, Subscription
from widgets.factories import WidgetFactory
from widgets.models import Widget


class APITestCase(TestCase):

    def setUp(self):
        """Set up test data."""
        self.business = BusinessFactory(name='Corner Coffee')
        self.user = self.business.owner
        self.token = AccessTokenFactory(user=self.user)

        self.client = APIClient()
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.token.token}')


class BusinessViewTest(APITestCase):

    def test_retrieve_business(self):
        response = self.client.get('/api/v1/business/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['name'], 'Corner Coffee')

    def test_update_business(self):
        response = self.client.patch('/api/v1/business/', {'website': 'https://corner.coffee'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.business.refresh_from_db()
        self.assertEqual(self.business.website, 'https://corner.coffee')

    def test_business_created_for_user_without_one(self):
        token = AccessTokenFactory()
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.token}')

        response = client.get('/api/v1/business/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['email'], token.user.email)


class WidgetViewSetTest(APITestCase):
    """Test WidgetViewSet CRUD operations."""

    def test_list_widgets(self):
        WidgetFactory(business=self.business)
        WidgetFactory(business=self.business)

        response = self.client.get('/api/v1/widgets/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data['results']), 2)

    def test_create_widget(self):
        response = self.client.post('/api/v1/widgets/', {
            'name': 'Homepage',
            'position': 'top-left',
            'show_after': 3000,
            'colors': {'primary': '#ff6600'},
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertRegex(response.data['widget_code'], r'^widget_[a-z0-9]{13}$')
        self.assertEqual(response.data['colors'], {
            'primary': '#ff6600',
            'secondary': '#f8f9fa',
            'text': '#333333',
        })

        widget = Widget.objects.get(widget_code=response.data['widget_code'])
        self.assertEqual(widget.business, self.business)
        self.assertEqual(widget.position, 'top-left')

    def test_create_widget_rejects_bad_colour(self):
        response = self.client.post('/api/v1/widgets/', {
            'name': 'Homepage',
            'colors': {'primary': 'red; } body {'},
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('colors', response.data)

    def test_create_widget_rejects_unknown_position(self):
        response = self.client.post('/api/v1/widgets/', {'name': 'x', 'position': 'center'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_widget_code_is_read_only(self):
        widget = WidgetFactory(business=self.business)
        response = self.client.patch(
            f'/api/v1/widgets/{widget.widget_code}/',
            {'widget_code': 'widget_hijacked0000', 'title': 'Rate us'},
            format='json',
        )
        self.assertEqual(response.status_code, 200)
        widget.refresh_from_db()
        self.assertEqual(response.data['widget_code'], widget.widget_code)
        self.assertEqual(widget.title, 'Rate us')

    def test_widget_limit(self):
        plan = Plan.objects.create(
            name='Starter', plan_type='starter', price_monthly=Decimal('29.00'), max_widgets=1
        )
        Subscription.objects.create(business=self.business, plan=plan, status='active')
        WidgetFactory(business=self.business)

        response = self.client.post('/api/v1/widgets/', {'name': 'Second'}, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['error_code'], 'permission_denied')
        self.assertEqual(Widget.objects.count(), 1)

    def test_reactivation_respects_widget_limit(self):
        plan = Plan.objects.create(
            name='Starter', plan_type='starter', price_monthly=Decimal('29.00'), max_widgets=1
        )
        Subscription.objects.create(business=self.business, plan=plan, status='active')
        WidgetFactory(business=self.business)
        retired = WidgetFactory(business=self.business, is_active=False)

        response = self.client.patch(
            f'/api/v1/widgets/{retired.widget_code}/', {'is_active': True}, format='json'
        )

        self.assertEqual(response.status_code, 403)
        retired.refresh_from_db()
        self.assertFalse(retired.is_active)
        self.assertEqual(Widget.objects.for_business(self.business).active().count(), 1)

    def test_reactivation_under_limit(self):
        plan = Plan.objects.create(
            name='Starter', plan_type='starter', price_monthly=Decimal('29.00'), max_widgets=1
        )
        Subscription.objects.create(business=self.business, plan=plan, status='active')
        retired = WidgetFactory(business=self.business, is_active=False)

        response = self.client.patch(
            f'/api/v1/widgets/{retired.widget_code}/', {'is_active': True}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        retired.refresh_from_db()
        self.assertTrue(retired.is_active)

    def test_partial_colour_update_keeps_other_colours(self):
        widget = WidgetFactory(business=self.business, colors={
            'primary': '#111111',
            'secondary': '#222222',
            'text': '#333333',
        })

        response = self.client.patch(
            f'/api/v1/widgets/{widget.widget_code}/', {'colors': {'primary': '#ff6600'}}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        widget.refresh_from_db()
        self.assertEqual(widget.colors, {
            'primary': '#ff6600',
            'secondary': '#222222',
            'text': '#333333',
        })

        self.assertEqual(Widget.objects.count(), 1)

    def test_delete_deactivates(self):
        widget = WidgetFactory(business=self.business)
        ReviewFactory(widget=widget)

        response = self.client.delete(f'/api/v1/widgets/{widget.widget_code}/')

        self.assertEqual(response.status_code, 204)
        widget.refresh_from_db()
        self.assertFalse(widget.is_active)
        self.assertEqual(Review.objects.filter(widget=widget).count(), 1)

    @override_settings(DEBUG=False, MAIN_APP_URL='https://smartreview.example')
    def test_embed(self):
        widget = WidgetFactory(business=self.business)

        response = self.client.get(f'/api/v1/widgets/{widget.widget_code}/embed/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['widget_code'], widget.widget_code)
        self.assertIn(f'smart-review-widget-{widget.widget_code}', response.data['snippet'])
        self.assertIn('https://smartreview.example/api/widgets/submit-review/', response.data['snippet'])
        self.assertTrue(response.data['instructions'])


class ReviewViewSetTest(APITestCase):

    def setUp(self):
        super().setUp()
        self.widget = WidgetFactory(business=self.business)

    def test_list_reviews(self):
        ReviewFactory(widget=self.widget)
        ReviewFactory(widget=self.widget)

        response = self.client.get('/api/v1/reviews/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 2)

    def test_filter_reviews(self):
        ReviewFactory(widget=self.widget, rating=5)
        ReviewFactory(widget=self.widget, rating=2)
        ReviewFactory(widget=self.widget, rating=4, status='hidden')
        other_widget = WidgetFactory(business=self.business)
        ReviewFactory(widget=other_widget, rating=5)

        self.assertEqual(self.client.get('/api/v1/reviews/', {'rating__gte': 4}).data['count'], 3)
        self.assertEqual(self.client.get('/api/v1/reviews/', {'status': 'hidden'}).data['count'], 1)
        self.assertEqual(
            self.client.get('/api/v1/reviews/', {'widget__widget_code': other_widget.widget_code}).data['count'],
            1,
        )

    def test_create_manual_review(self):
        response = self.client.post('/api/v1/reviews/', {
            'widget': self.widget.widget_code,
            'title': 'Lovely flat white',
            'content': 'Best coffee on the street',
            'rating': 5,
            'customer_name': 'Sam',
            'customer_email': 'sam@example.com',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['source'], 'manual')
        review = Review.objects.get(uuid=response.data['uuid'])
        self.assertEqual(review.business, self.business)
        self.assertEqual(review.widget, self.widget)

    def test_create_rejects_out_of_range_rating(self):
        response = self.client.post('/api/v1/reviews/', {
            'title': 'x', 'content': 'y', 'rating': 6,
            'customer_name': 'Sam', 'customer_email': 'sam@example.com',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('rating', response.data)

    def test_create_rejects_other_business_widget(self):
        foreign = WidgetFactory()
        response = self.client.post('/api/v1/reviews/', {
            'widget': foreign.widget_code,
            'title': 'x', 'content': 'y', 'rating': 4,
            'customer_name': 'Sam', 'customer_email': 'sam@example.com',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('widget', response.data)

    def test_update_status(self):
        review = ReviewFactory(widget=self.widget)
        response = self.client.patch(f'/api/v1/reviews/{review.uuid}/', {'status': 'hidden'}, format='json')
        self.assertEqual(response.status_code, 200)
        review.refresh_from_db()
        self.assertEqual(review.status, 'hidden')

    def test_bulk_delete_by_uuid(self):
        keep = ReviewFactory(widget=self.widget)
        drop = ReviewFactory(widget=self.widget)
        foreign = ReviewFactory()

        response = self.client.post('/api/v1/reviews/bulk_delete/', {
            'uuids': [str(drop.uuid), str(foreign.uuid), str(uuid.uuid4())],
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {'deleted': 1})
        self.assertTrue(Review.objects.filter(pk=keep.pk).exists())
        self.assertTrue(Review.objects.filter(pk=foreign.pk).exists())

    def test_bulk_delete_all(self):
        ReviewFactory(widget=self.widget)
        ReviewFactory(widget=self.widget)
        foreign = ReviewFactory()

        response = self.client.post('/api/v1/reviews/bulk_delete/', {'all': True}, format='json')

        self.assertEqual(response.data, {'deleted': 2})
        self.assertEqual(list(Review.objects.all()), [foreign])

    def test_bulk_delete_requires_target(self):
        response = self.client.post('/api/v1/reviews/bulk_delete/', {}, format='json')
        self.assertEqual(response.status_code, 400)

        response = self.client.post('/api/v1/reviews/bulk_delete/', {'uuids': ['not-a-uuid']}, format='json')
        self.assertEqual(response.status_code, 400)


class AnalyticsViewSetTest(APITestCase):

    def test_summary(self):
        widget = WidgetFactory(business=self.business)
        for _ in range(3):
            record_event(self.business, widget, 'widget_viewed', views=1)
        record_event(self.business, widget, 'review_submitted', clicks=1, conversions=1)
        ReviewFactory(widget=widget, rating=4)

        response = self.client.get('/api/v1/analytics/summary/', {'range': '7d'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['range'], '7d')
        self.assertEqual(response.data['views'], 3)
        self.assertEqual(response.data['clicks'], 1)
        self.assertEqual(response.data['conversion_rate'], 33.3)
        self.assertEqual(response.data['average_rating'], 4.0)

    def test_summary_unknown_range_defaults(self):
        response = self.client.get('/api/v1/analytics/summary/', {'range': 'forever'})
        self.assertEqual(response.data['range'], '30d')
        self.assertEqual(response.data['conversion_rate'], 0)

    def test_list_events(self):
        widget = WidgetFactory(business=self.business)
        record_event(self.business, widget, 'widget_viewed', views=1)

        response = self.client.get('/api/v1/analytics/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['results'][0]['widget'], widget.widget_code)

    def test_events_read_only(self):
        response = self.client.post('/api/v1/analytics/', {'event_type': 'widget_viewed'}, format='json')
        self.assertEqual(response.status_code, 405)


class BillingViewSetTest(APITestCase):

    def setUp(self):
        super().setUp()
        self.plan = Plan.objects.create(
            name='Professional',
            plan_type='professional',
            price_monthly=Decimal('79.00'),
            max_widgets=5,
            stripe_price_id='price_pro',
        )

    def test_plans(self):
        Plan.objects.create(name='Old', plan_type='enterprise', price_monthly=Decimal('1.00'), is_active=False)
        response = self.client.get('/api/v1/billing/plans/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p['plan_type'] for p in response.data], ['professional'])

    def test_no_subscription(self):
        response = self.client.get('/api/v1/billing/subscription/')
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.data)

    def test_current_subscription(self):
        Subscription.objects.create(business=self.business, plan=self.plan, status='trialing')
        response = self.client.get('/api/v1/billing/subscription/')
        self.assertEqual(response.data['status'], 'trialing')
        self.assertEqual(response.data['plan']['plan_type'], 'professional')

    @patch('subscriptions.services.stripe.checkout.Session.create')
    def test_checkout(self, mock_create):
        mock_create.return_value = {'id': 'cs_1', 'url': 'https://checkout.stripe.com/c/pay/cs_1'}

        response = self.client.post('/api/v1/billing/checkout/', {'plan_type': 'professional'}, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['session_id'], 'cs_1')
        self.assertTrue(Subscription.objects.filter(business=self.business, status='pending').exists())

    @patch('subscriptions.services.stripe.checkout.Session.create', side_effect=stripe.StripeError('down'))
    def test_checkout_stripe_error(self, mock_create):
        response = self.client.post('/api/v1/billing/checkout/', {'plan_type': 'professional'}, format='json')
        self.assertEqual(response.status_code, 502)

    def test_checkout_unavailable_plan(self):
        response = self.client.post('/api/v1/billing/checkout/', {'plan_type': 'starter'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_portal_without_subscription(self):
        response = self.client.post('/api/v1/billing/portal/')
        self.assertEqual(response.status_code, 404)
