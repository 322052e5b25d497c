import json
import time
from decimal import Decimal
from unittest.mock import Mock, patch

import stripe
from django.test import TestCase, override_settings

from core.factories import BusinessFactory
from widgets.exceptions import WidgetLimitReached
from widgets.factories import WidgetFactory
from widgets.services import create_widget
from . import services
from .models import Plan, Subscription

WEBHOOK_URL = '/api/stripe/webhook/'
CHECKOUT_SUCCESS_URL = '/api/stripe/checkout-success/'


def stripe_subscription(sub_id='sub_123', status='trialing', **extra):
    now = int(time.time())
    data = {
        'id': sub_id,
        'status': status,
        'created': now,
        'trial_start': now,
        'trial_end': now + 14 * 86400,
        'current_period_start': None,
        'current_period_end': None,
        'cancel_at_period_end': False,
    }
    data.update(extra)
    return data


class BillingTestCase(TestCase):

    def setUp(self):
        self.business = BusinessFactory()
        self.starter = Plan.objects.create(
            name='Starter',
            plan_type='starter',
            price_monthly=Decimal('29.00'),
            max_widgets=1,
            stripe_price_id='price_starter',
        )
        self.enterprise = Plan.objects.create(
            name='Enterprise',
            plan_type='enterprise',
            price_monthly=Decimal('199.00'),
            max_widgets=None,
            stripe_price_id='price_enterprise',
        )

    def session(self, session_id='cs_test_1', subscription='sub_123', plan_type='starter'):
        return {
            'id': session_id,
            'subscription': subscription,
            'customer': 'cus_123',
            'metadata': {'business_id': str(self.business.pk), 'plan_type': plan_type},
        }

    def live_subscription(self, plan=None, **kwargs):
        defaults = {
            'business': self.business,
            'plan': plan or self.starter,
            'status': 'active',
            'stripe_customer_id': 'cus_123',
            'stripe_subscription_id': 'sub_live',
        }
        defaults.update(kwargs)
        return Subscription.objects.create(**defaults)


class CreateSubscriptionTest(BillingTestCase):

    @patch('subscriptions.services.stripe.checkout.Session.create')
    def test_creates_pending_subscription(self, mock_create):
        mock_create.return_value = {'id': 'cs_test_1', 'url': 'https://checkout.stripe.com/c/pay/cs_test_1'}

        result = services.create_subscription(self.business, 'starter', 'https://app.example.com')

        self.assertEqual(result, {'session_id': 'cs_test_1', 'url': 'https://checkout.stripe.com/c/pay/cs_test_1'})
        subscription = Subscription.objects.get()
        self.assertEqual(subscription.status, 'pending')
        self.assertEqual(subscription.plan, self.starter)
        self.assertEqual(subscription.stripe_checkout_session_id, 'cs_test_1')

        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs['line_items'], [{'price': 'price_starter', 'quantity': 1}])
        self.assertEqual(kwargs['metadata']['business_id'], str(self.business.pk))
        self.assertTrue(kwargs['success_url'].startswith('https://app.example.com/api/stripe/checkout-success/'))

    def test_unknown_plan(self):
        with self.assertRaises(services.BillingError):
            services.create_subscription(self.business, 'platinum', 'https://app.example.com')

    def test_plan_without_price(self):
        self.starter.stripe_price_id = ''
        self.starter.save()
        with self.assertRaises(services.BillingError):
            services.create_subscription(self.business, 'starter', 'https://app.example.com')


class CheckoutSuccessTest(BillingTestCase):

    def setUp(self):
        super().setUp()
        Subscription.objects.create(
            business=self.business,
            plan=self.starter,
            stripe_checkout_session_id='cs_test_1',
        )

    def test_missing_session_id(self):
        response = self.client.get(CHECKOUT_SUCCESS_URL)
        self.assertEqual(response.status_code, 400)

    @patch('subscriptions.services.stripe.Subscription.retrieve')
    @patch('subscriptions.views.stripe.checkout.Session.retrieve')
    def test_activates_subscription(self, mock_session, mock_subscription):
        mock_session.return_value = self.session()
        mock_subscription.return_value = stripe_subscription()

        response = self.client.get(CHECKOUT_SUCCESS_URL, {'session_id': 'cs_test_1'})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['subscription']['status'], 'trialing')
        self.assertEqual(body['subscription']['plan'], 'starter')

        subscription = Subscription.objects.get()
        self.assertEqual(subscription.stripe_subscription_id, 'sub_123')
        self.assertEqual(subscription.stripe_customer_id, 'cus_123')
        self.assertIsNotNone(subscription.trial_end)
        self.assertEqual(services.get_subscription(self.business), subscription)

    @patch('subscriptions.services.stripe.Subscription.retrieve')
    @patch('subscriptions.views.stripe.checkout.Session.retrieve')
    def test_approval_and_webhook_activate_once(self, mock_session, mock_subscription):
        mock_session.return_value = self.session()
        mock_subscription.return_value = stripe_subscription()

        self.client.get(CHECKOUT_SUCCESS_URL, {'session_id': 'cs_test_1'})
        services.handle_webhook_event({
            'type': 'checkout.session.completed',
            'data': {'object': self.session()},
        })

        self.assertEqual(Subscription.objects.count(), 1)
        mock_subscription.assert_called_once_with('sub_123')

    @patch('subscriptions.services.stripe.Subscription.retrieve')
    @patch('subscriptions.views.stripe.checkout.Session.retrieve')
    def test_new_subscription_replaces_live_one(self, mock_session, mock_subscription):
        previous = self.live_subscription()
        mock_session.return_value = self.session()
        mock_subscription.return_value = stripe_subscription(status='active')

        self.client.get(CHECKOUT_SUCCESS_URL, {'session_id': 'cs_test_1'})

        previous.refresh_from_db()
        self.assertEqual(previous.status, 'canceled')
        self.assertIsNotNone(previous.canceled_at)
        self.assertEqual(services.get_subscription(self.business).stripe_subscription_id, 'sub_123')

    @patch('subscriptions.views.stripe.checkout.Session.retrieve')
    def test_stripe_error(self, mock_session):
        mock_session.side_effect = stripe.StripeError('boom')
        response = self.client.get(CHECKOUT_SUCCESS_URL, {'session_id': 'cs_test_1'})
        self.assertEqual(response.status_code, 502)

    @patch('subscriptions.views.stripe.checkout.Session.retrieve')
    def test_session_without_business(self, mock_session):
        mock_session.return_value = {
            'id': 'cs_unknown',
            'subscription': 'sub_999',
            'metadata': {},
        }
        with patch('subscriptions.services.stripe.Subscription.retrieve') as mock_subscription:
            response = self.client.get(CHECKOUT_SUCCESS_URL, {'session_id': 'cs_unknown'})
        self.assertEqual(response.status_code, 404)
        mock_subscription.assert_not_called()


@override_settings(STRIPE_WEBHOOK_SECRET='whsec_test')
class StripeWebhookTest(BillingTestCase):

    def post_event(self, event):
        with patch('subscriptions.views.stripe.Webhook.construct_event', return_value=event):
            return self.client.post(
                WEBHOOK_URL,
                data=json.dumps(event),
                content_type='application/json',
                HTTP_STRIPE_SIGNATURE='t=1,v1=abc',
            )

    def test_bad_signature(self):
        error = stripe.SignatureVerificationError('bad signature', 't=1,v1=abc')
        with patch('subscriptions.views.stripe.Webhook.construct_event', side_effect=error):
            response = self.client.post(WEBHOOK_URL, data='{}', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_bad_payload(self):
        with patch('subscriptions.views.stripe.Webhook.construct_event', side_effect=ValueError('bad json')):
            response = self.client.post(WEBHOOK_URL, data='nope', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(WEBHOOK_URL).status_code, 405)

    def test_subscription_updated(self):
        subscription = self.live_subscription(status='trialing')
        event = {
            'type': 'customer.subscription.updated',
            'data': {'object': stripe_subscription(sub_id='sub_live', status='active', cancel_at_period_end=True)},
        }
        self.assertEqual(self.post_event(event).status_code, 200)

        subscription.refresh_from_db()
        self.assertEqual(subscription.status, 'active')
        self.assertTrue(subscription.cancel_at_period_end)

    def test_subscription_deleted(self):
        subscription = self.live_subscription()
        event = {
            'type': 'customer.subscription.deleted',
            'data': {'object': {'id': 'sub_live'}},
        }
        self.assertEqual(self.post_event(event).status_code, 200)

        subscription.refresh_from_db()
        self.assertEqual(subscription.status, 'canceled')
        self.assertIsNone(services.get_subscription(self.business))

    def test_payment_failed(self):
        subscription = self.live_subscription()
        event = {
            'type': 'invoice.payment_failed',
            'data': {'object': {'customer': 'cus_123'}},
        }
        self.post_event(event)
        subscription.refresh_from_db()
        self.assertTrue(subscription.is_past_due)

    def test_unknown_event_acknowledged(self):
        event = {'type': 'customer.created', 'data': {'object': {}}}
        self.assertEqual(self.post_event(event).status_code, 200)

    def test_handler_error_still_acknowledged(self):
        event = {'type': 'customer.subscription.deleted', 'data': {'object': {'id': 'sub_live'}}}
        failing = Mock(side_effect=RuntimeError('boom'))
        with patch.dict(services.WEBHOOK_HANDLERS, {'customer.subscription.deleted': failing}):
            with self.assertLogs('subscriptions.views', level='ERROR'):
                response = self.post_event(event)
        self.assertEqual(response.status_code, 200)


class BillingPortalTest(BillingTestCase):

    def test_no_subscription(self):
        with self.assertRaises(services.BillingError):
            services.create_billing_portal_session(self.business, 'https://app.example.com/billing/')

    @patch('subscriptions.services.stripe.billing_portal.Session.create')
    def test_portal_url(self, mock_create):
        self.live_subscription()
        mock_create.return_value = {'url': 'https://billing.stripe.com/p/session_1'}

        url = services.create_billing_portal_session(self.business, 'https://app.example.com/billing/')

        self.assertEqual(url, 'https://billing.stripe.com/p/session_1')
        mock_create.assert_called_once_with(customer='cus_123', return_url='https://app.example.com/billing/')


class CancelSubscriptionsTest(BillingTestCase):

    @patch('subscriptions.services.stripe.Subscription.cancel')
    def test_cancels_live_subscriptions(self, mock_cancel):
        self.live_subscription()
        self.live_subscription(status='canceled', stripe_subscription_id='sub_old')

        self.assertEqual(services.cancel_all_subscriptions(self.business), 1)
        mock_cancel.assert_called_once_with('sub_live')
        self.assertFalse(Subscription.objects.filter(status='active').exists())

    @patch('subscriptions.services.stripe.Subscription.cancel', side_effect=stripe.StripeError('down'))
    def test_stripe_failure_is_logged(self, mock_cancel):
        subscription = self.live_subscription()
        with self.assertLogs('subscriptions.services', level='ERROR'):
            self.assertEqual(services.cancel_all_subscriptions(self.business), 0)
        subscription.refresh_from_db()
        self.assertEqual(subscription.status, 'active')


class WidgetLimitTest(BillingTestCase):

    def test_unlimited_without_subscription(self):
        self.assertIsNone(services.get_widget_limit(self.business))
        for _ in range(3):
            create_widget(self.business, name='Widget')

    def test_plan_limit_enforced(self):
        self.live_subscription()
        create_widget(self.business, name='First')
        with self.assertRaises(WidgetLimitReached):
            create_widget(self.business, name='Second')

    def test_inactive_widgets_do_not_count(self):
        self.live_subscription()
        WidgetFactory(business=self.business, is_active=False)
        create_widget(self.business, name='First')

    def test_unlimited_plan(self):
        self.live_subscription(plan=self.enterprise)
        self.assertIsNone(services.get_widget_limit(self.business))
