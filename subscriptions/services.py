"""Subscription management services."""
import logging
from datetime import datetime, timezone as dt_timezone

import stripe
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.models import Business
from .models import Plan, Subscription

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY

LIVE_STATUSES = ('active', 'trialing')


class BillingError(Exception):
    """A billing request that cannot be fulfilled; message is safe to show"""


def _timestamp(value):
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=dt_timezone.utc)


def get_subscription(business):
    """Latest active or trialing subscription for a business, or None"""
    if business is None:
        return None
    return (
        Subscription.objects.for_business(business)
        .filter(status__in=LIVE_STATUSES)
        .select_related('plan')
        .first()
    )


def get_widget_limit(business):
    """
    Active widgets the business may have.

    Returns None (unlimited) when there is no live subscription or the plan
    sets no limit.
    """
    subscription = get_subscription(business)
    if subscription is None:
        return None
    return subscription.plan.max_widgets


def create_subscription(business, plan_type, base_url):
    """
    Start a Stripe Checkout session for a plan.

    A pending Subscription row is recorded against the session so the
    approval callback and the webhook can both find it.

    Returns:
        dict: session_id and url of the hosted checkout page

    Raises:
        BillingError: Unknown plan or plan not purchasable
        stripe.StripeError: Stripe rejected the request
    """
    try:
        plan = Plan.objects.get(plan_type=plan_type, is_active=True)
    except Plan.DoesNotExist:
        raise BillingError(f"Unknown plan: {plan_type}")

    if not plan.stripe_price_id:
        raise BillingError(f"Plan {plan.name} is not available for purchase")

    session = stripe.checkout.Session.create(
        payment_method_types=['card'],
        line_items=[{
            'price': plan.stripe_price_id,
            'quantity': 1,
        }],
        mode='subscription',
        customer_email=business.email,
        client_reference_id=str(business.pk),
        success_url=f'{base_url}/api/stripe/checkout-success/?session_id={{CHECKOUT_SESSION_ID}}',
        cancel_url=f'{base_url}/billing/?canceled=true',
        subscription_data={
            'trial_period_days': settings.STRIPE_TRIAL_DAYS,
        },
        metadata={
            'plan_type': plan.plan_type,
            'business_id': str(business.pk),
        },
    )

    Subscription.objects.create(
        business=business,
        plan=plan,
        stripe_checkout_session_id=session['id'],
        status='pending',
    )
    logger.info(f"Created checkout session {session['id']} for business {business.pk} ({plan.plan_type})")
    return {'session_id': session['id'], 'url': session.get('url')}


def _apply_stripe_subscription(subscription, stripe_subscription):
    sub = dict(stripe_subscription)
    # Trials have no billing period yet; fall back to trial dates
    current_start = sub.get('current_period_start') or sub.get('trial_start') or sub.get('created')
    current_end = sub.get('current_period_end') or sub.get('trial_end')

    subscription.stripe_subscription_id = sub['id']
    subscription.status = sub.get('status', 'trialing')
    subscription.current_period_start = _timestamp(current_start)
    subscription.current_period_end = _timestamp(current_end)
    subscription.cancel_at_period_end = bool(sub.get('cancel_at_period_end'))
    subscription.trial_start = _timestamp(sub.get('trial_start'))
    subscription.trial_end = _timestamp(sub.get('trial_end'))
    if subscription.status not in dict(Subscription.STATUS_CHOICES):
        subscription.status = 'past_due'


def activate_from_session(session):
    """
    Record the outcome of a completed checkout session.

    Called from both the approval redirect and the checkout.session.completed
    webhook, so it is idempotent: a session that was already activated is
    returned unchanged.

    Returns:
        Subscription or None if the session cannot be tied to a business
    """
    session_id = session['id']
    stripe_subscription_id = session.get('subscription')

    if stripe_subscription_id:
        existing = Subscription.objects.filter(stripe_subscription_id=stripe_subscription_id).first()
        if existing:
            logger.info(f"Subscription {stripe_subscription_id} already recorded, skipping")
            return existing

    subscription = Subscription.objects.filter(stripe_checkout_session_id=session_id).first()
    if subscription is None:
        metadata = session.get('metadata') or {}
        business = Business.objects.filter(pk=metadata.get('business_id')).first()
        plan = Plan.objects.filter(plan_type=metadata.get('plan_type')).first()
        if business is None or plan is None:
            logger.error(f"Checkout session {session_id} has no usable business/plan metadata")
            return None
        subscription = Subscription(
            business=business,
            plan=plan,
            stripe_checkout_session_id=session_id,
        )

    if not stripe_subscription_id:
        logger.warning(f"Checkout session {session_id} completed without a subscription")
        return subscription if subscription.pk else None

    stripe_subscription = stripe.Subscription.retrieve(stripe_subscription_id)

    with transaction.atomic():
        subscription.stripe_customer_id = session.get('customer') or ''
        _apply_stripe_subscription(subscription, stripe_subscription)
        subscription.save()

        # A business has one live subscription at a time
        (
            Subscription.objects.for_business(subscription.business)
            .filter(status__in=LIVE_STATUSES)
            .exclude(pk=subscription.pk)
            .update(status='canceled', canceled_at=timezone.now())
        )

    logger.info(
        f"Activated subscription {stripe_subscription_id} for business "
        f"{subscription.business_id} ({subscription.status})"
    )
    return subscription


def handle_checkout_session_completed(session):
    return activate_from_session(session)


def handle_subscription_updated(stripe_subscription):
    """Update subscription status"""
    try:
        subscription = Subscription.objects.get(
            stripe_subscription_id=stripe_subscription['id']
        )
    except Subscription.DoesNotExist:
        logger.warning(f"Update for unknown subscription {stripe_subscription['id']}")
        return None
    _apply_stripe_subscription(subscription, stripe_subscription)
    subscription.save()
    return subscription


def handle_subscription_deleted(stripe_subscription):
    """Mark subscription as canceled"""
    try:
        subscription = Subscription.objects.get(
            stripe_subscription_id=stripe_subscription['id']
        )
    except Subscription.DoesNotExist:
        logger.warning(f"Deletion of unknown subscription {stripe_subscription['id']}")
        return None
    subscription.status = 'canceled'
    subscription.canceled_at = timezone.now()
    subscription.save()
    return subscription


def handle_payment_failed(invoice):
    """Handle failed payment"""
    updated = (
        Subscription.objects
        .filter(stripe_customer_id=invoice['customer'], status__in=LIVE_STATUSES)
        .update(status='past_due')
    )
    if not updated:
        logger.warning(f"Payment failure for unknown customer {invoice['customer']}")
    return updated


WEBHOOK_HANDLERS = {
    'checkout.session.completed': handle_checkout_session_completed,
    'customer.subscription.updated': handle_subscription_updated,
    'customer.subscription.deleted': handle_subscription_deleted,
    'invoice.payment_failed': handle_payment_failed,
}


def handle_webhook_event(event):
    """Dispatch a verified Stripe event; returns False for unhandled types"""
    handler = WEBHOOK_HANDLERS.get(event['type'])
    if handler is None:
        logger.info(f"Unhandled Stripe event type: {event['type']}")
        return False
    handler(event['data']['object'])
    return True


def create_billing_portal_session(business, return_url):
    """
    Open a Stripe billing portal session for the business's subscription.

    Raises:
        BillingError: No subscription with a Stripe customer
    """
    subscription = get_subscription(business)
    if subscription is None or not subscription.stripe_customer_id:
        raise BillingError('No active subscription')

    session = stripe.billing_portal.Session.create(
        customer=subscription.stripe_customer_id,
        return_url=return_url,
    )
    return session['url']


def cancel_subscription_immediately(subscription):
    """
    Cancel a subscription immediately.

    Args:
        subscription: Subscription instance

    Returns:
        Updated subscription instance
    """
    if subscription.stripe_subscription_id:
        stripe.Subscription.cancel(subscription.stripe_subscription_id)

    subscription.status = 'canceled'
    subscription.canceled_at = timezone.now()
    subscription.save()

    return subscription


def cancel_all_subscriptions(business):
    """Cancel every live subscription of a business (used on account deletion)"""
    canceled = 0
    for subscription in Subscription.objects.for_business(business).filter(status__in=LIVE_STATUSES + ('past_due',)):
        try:
            cancel_subscription_immediately(subscription)
            canceled += 1
        except stripe.StripeError:
            logger.exception(f"Failed to cancel subscription {subscription.stripe_subscription_id}")
    return canceled
