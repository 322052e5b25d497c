import logging

import stripe
from django.conf import settings
from django.http import JsonResponse, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from . import services

logger = logging.getLogger(__name__)


def subscription_payload(subscription):
    if subscription is None:
        return None
    return {
        'id': subscription.pk,
        'plan': subscription.plan.plan_type,
        'plan_name': subscription.plan.name,
        'status': subscription.status,
        'is_active': subscription.is_active,
        'current_period_end': subscription.current_period_end.isoformat() if subscription.current_period_end else None,
        'cancel_at_period_end': subscription.cancel_at_period_end,
        'max_widgets': subscription.plan.max_widgets,
    }


@require_POST
@csrf_exempt
def stripe_webhook(request):
    """Handle Stripe webhook events"""
    payload = request.body
    sig_header = request.META.get('HTTP_STRIPE_SIGNATURE')

    try:
        event = stripe.Webhook.construct_event(
            payload, sig_header, settings.STRIPE_WEBHOOK_SECRET
        )
    except ValueError as e:
        logger.error(f"Stripe webhook with invalid payload: {e}")
        return HttpResponse(status=400)
    except stripe.SignatureVerificationError as e:
        logger.error(f"Stripe webhook signature verification failed: {e}")
        return HttpResponse(status=400)

    logger.info(f"Stripe webhook {event.get('id', 'N/A')}: {event['type']}")

    try:
        services.handle_webhook_event(event)
    except Exception:
        # Still return 200 so Stripe does not retry a poison event forever
        logger.exception(f"Error processing Stripe event {event['type']}")

    return HttpResponse(status=200)


@require_GET
def checkout_success(request):
    """
    Approval callback Stripe redirects to after checkout.

    Activates the subscription without waiting for the webhook; whichever
    arrives second is a no-op.
    """
    session_id = request.GET.get('session_id')
    if not session_id:
        return JsonResponse({'error': 'Missing session_id'}, status=400)

    try:
        session = stripe.checkout.Session.retrieve(session_id)
        subscription = services.activate_from_session(session)
    except stripe.StripeError:
        logger.exception(f"Could not confirm checkout session {session_id}")
        return JsonResponse({'error': 'Could not confirm subscription'}, status=502)

    if subscription is None:
        return JsonResponse({'error': 'Subscription not found'}, status=404)

    return JsonResponse({
        'success': True,
        'subscription': subscription_payload(subscription),
    })
