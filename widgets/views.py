"""
Public endpoints called by the embedded widget from third-party sites.

These answer their own CORS preflights with a wildcard origin and attach the
same CORS headers to every response, success or failure.
"""
import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django_ratelimit.decorators import ratelimit

from . import services
from .exceptions import MethodNotAllowed, RateLimited, SubmissionError

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'Content-Type',
    'Access-Control-Allow-Methods': 'POST, OPTIONS',
}


def submit_rate(group, request):
    return settings.WIDGET_SUBMIT_RATE


def track_view_rate(group, request):
    return settings.WIDGET_TRACK_VIEW_RATE


def _cors_json(data, status=200):
    response = JsonResponse(data, status=status)
    for header, value in CORS_HEADERS.items():
        response[header] = value
    return response


def _error(exc):
    return _cors_json({'error': exc.message}, status=exc.status_code)


def _dispatch(request, handler):
    """Shared OPTIONS / method / rate limit handling for widget endpoints"""
    if request.method == 'OPTIONS':
        return _cors_json({'message': 'OK'})
    if request.method != 'POST':
        return _error(MethodNotAllowed())
    if getattr(request, 'limited', False):
        logger.warning(f"Rate limited widget request from {services.client_meta(request).ip_address}")
        return _error(RateLimited())

    try:
        return handler()
    except SubmissionError as e:
        return _error(e)
    except Exception:
        logger.exception(f"Unhandled error in widget endpoint {request.path}")
        return _error(SubmissionError())


@csrf_exempt
@ratelimit(key='ip', rate=submit_rate, method='POST', block=False)
def submit_review(request):
    """Accept a review posted by the widget"""
    def handle():
        review = services.handle_submission(request.body, services.client_meta(request))
        return _cors_json({
            'success': True,
            'message': 'Review submitted successfully',
            'reviewId': str(review.uuid),
        })

    return _dispatch(request, handle)


@csrf_exempt
@ratelimit(key='ip', rate=track_view_rate, method='POST', block=False)
def track_view(request):
    """Count an impression when the widget's call-to-action is shown"""
    def handle():
        services.track_view(request.body)
        return _cors_json({'success': True})

    return _dispatch(request, handle)
