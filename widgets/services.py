"""
Service functions behind the public widget endpoints and widget management.

The review submission runs as a short sequence of steps:
parse -> validate -> resolve widget -> persist review -> side effects.
The review insert is the only step that decides the outcome. The click
counter and the analytics event are best-effort: a failure is logged and
the visitor still gets their success response.
"""
import json
import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import DatabaseError, transaction
from django.db.models import F

from analytics.services import record_event
from reviews.models import Review
from .exceptions import (
    InvalidSubmission,
    SubmissionError,
    SubmissionFailed,
    WidgetLimitReached,
    WidgetNotFound,
)
from .models import Widget

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_NAME_LENGTH = Review._meta.get_field('customer_name').max_length
MAX_EMAIL_LENGTH = Review._meta.get_field('customer_email').max_length
MAX_IP_LENGTH = Review._meta.get_field('ip_address').max_length


@dataclass(frozen=True)
class ClientMeta:
    ip_address: str
    user_agent: str


@dataclass(frozen=True)
class ReviewSubmission:
    """A validated review posted by the widget"""
    name: str
    email: str
    rating: int
    review: str
    widget_code: str

    @classmethod
    def from_payload(cls, data):
        """
        Validate a decoded JSON body.

        Raises:
            InvalidSubmission: Missing fields, wrong types, over-long values or an out of range rating
        """
        if not isinstance(data, dict):
            raise InvalidSubmission()

        values = {
            'name': data.get('name'),
            'email': data.get('email'),
            'rating': data.get('rating'),
            'review': data.get('review'),
            'widgetId': data.get('widgetId'),
        }
        if any(_is_blank(value) for value in values.values()):
            raise InvalidSubmission()

        for field in ('name', 'email', 'review', 'widgetId'):
            if not isinstance(values[field], str):
                raise InvalidSubmission(f'Invalid value for {field}')

        rating = parse_rating(values['rating'])

        name = values['name'].strip()
        if len(name) > MAX_NAME_LENGTH:
            raise InvalidSubmission(f'Name must be at most {MAX_NAME_LENGTH} characters')

        email = values['email'].strip()
        if len(email) > MAX_EMAIL_LENGTH:
            raise InvalidSubmission(f'Email must be at most {MAX_EMAIL_LENGTH} characters')
        try:
            validate_email(email)
        except ValidationError:
            raise InvalidSubmission('Invalid email address')

        return cls(
            name=name,
            email=email,
            rating=rating,
            review=values['review'].strip(),
            widget_code=values['widgetId'].strip(),
        )


def _is_blank(value):
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_rating(value):
    """
    Coerce a rating to an int in [1, 5].

    Accepts ints, integral floats (5.0) and digit strings ("5").
    Booleans, fractions and words are rejected.
    """
    out_of_range = InvalidSubmission(f'Rating must be between {MIN_RATING} and {MAX_RATING}')

    if isinstance(value, bool):
        raise out_of_range
    if isinstance(value, float):
        if not value.is_integer():
            raise out_of_range
        value = int(value)
    elif isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            raise out_of_range
        try:
            value = int(value)
        except ValueError:
            # Past the interpreter's digit limit
            raise out_of_range
    elif not isinstance(value, int):
        raise out_of_range

    if value < MIN_RATING or value > MAX_RATING:
        raise out_of_range
    return value


def parse_body(body):
    """
    Decode a JSON request body.

    Raises:
        SubmissionError: 500 with a generic message; the decoder error is logged only
    """
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError, RecursionError) as e:
        logger.warning(f"Rejected malformed widget payload: {type(e).__name__}")
        raise SubmissionError()


def client_meta(request):
    """Best-effort client IP and user agent, 'unknown' when absent"""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    ip_address = forwarded.split(',')[0].strip() if forwarded else ''
    if not ip_address:
        ip_address = request.META.get('HTTP_X_REAL_IP', '').strip()
    user_agent = request.META.get('HTTP_USER_AGENT', '').strip()
    return ClientMeta(
        ip_address=ip_address[:MAX_IP_LENGTH] or 'unknown',
        user_agent=user_agent or 'unknown',
    )


def resolve_widget(widget_code):
    """
    Look up an active widget by its public code.

    Raises:
        WidgetNotFound: Unknown or inactive widget
        SubmissionFailed: Database error or timeout
    """
    try:
        return Widget.objects.select_related('business').get(
            widget_code=widget_code, is_active=True
        )
    except Widget.DoesNotExist:
        raise WidgetNotFound()
    except DatabaseError:
        logger.exception(f"Widget lookup failed for {widget_code}")
        raise SubmissionFailed()


def create_review(submission, widget, client):
    """
    Insert the review for a submission.

    Raises:
        SubmissionFailed: Insert failed; detail is logged, never returned
    """
    try:
        with transaction.atomic():
            return Review.objects.create(
                business=widget.business,
                widget=widget,
                title=Review.title_for(submission.rating, submission.name),
                content=submission.review,
                rating=submission.rating,
                customer_name=submission.name,
                customer_email=submission.email,
                status='published',
                source='widget',
                ip_address=client.ip_address,
                user_agent=client.user_agent,
            )
    except DatabaseError:
        logger.exception(f"Review insert failed for widget {widget.widget_code}")
        raise SubmissionFailed()


def increment_click_count(widget):
    Widget.objects.filter(pk=widget.pk).update(clicks=F('clicks') + 1)


def increment_view_count(widget):
    Widget.objects.filter(pk=widget.pk).update(views=F('views') + 1)


def record_submission_event(review, widget):
    return record_event(
        business=widget.business,
        widget=widget,
        event_type='review_submitted',
        event_data={
            'rating': review.rating,
            'widget_name': widget.name,
            'customer_name': review.customer_name,
        },
        clicks=1,
        conversions=1,
    )


def _best_effort(description, func, *args):
    """Run a side effect in its own savepoint; log and carry on if it fails"""
    try:
        with transaction.atomic():
            func(*args)
    except Exception:
        logger.exception(f"{description} failed")
        return False
    return True


def handle_submission(body, client):
    """
    Turn a widget POST body into a persisted review.

    Args:
        body: Raw request body (bytes or str)
        client: ClientMeta for the request

    Returns:
        Review: The created review

    Raises:
        SubmissionError: Any failure, carrying the status and public message
    """
    submission = ReviewSubmission.from_payload(parse_body(body))
    widget = resolve_widget(submission.widget_code)
    review = create_review(submission, widget, client)

    _best_effort(f"Click count for widget {widget.widget_code}", increment_click_count, widget)
    _best_effort(f"Analytics event for review {review.uuid}", record_submission_event, review, widget)

    logger.info(f"Review {review.uuid} submitted via widget {widget.widget_code} ({review.rating} stars)")
    return review


def track_view(body):
    """
    Count one impression of a widget's call-to-action.

    Returns:
        Widget: The widget that was viewed

    Raises:
        SubmissionError: Bad payload, unknown widget or database failure
    """
    data = parse_body(body)
    widget_code = data.get('widgetId') if isinstance(data, dict) else None
    if _is_blank(widget_code) or not isinstance(widget_code, str):
        raise InvalidSubmission('Missing required fields: widgetId')

    widget = resolve_widget(widget_code.strip())
    try:
        with transaction.atomic():
            increment_view_count(widget)
            record_event(
                business=widget.business,
                widget=widget,
                event_type='widget_viewed',
                event_data={'widget_name': widget.name},
                views=1,
            )
    except DatabaseError:
        logger.exception(f"View tracking failed for widget {widget.widget_code}")
        raise SubmissionFailed('Failed to record view')
    return widget


def check_widget_limit(business):
    """
    Raises:
        WidgetLimitReached: The business already has as many active widgets as its plan allows
    """
    from subscriptions.services import get_widget_limit

    limit = get_widget_limit(business)
    if limit is not None and Widget.objects.for_business(business).active().count() >= limit:
        raise WidgetLimitReached(limit)


def create_widget(business, **fields):
    """
    Create a widget for a business, respecting its plan's widget limit.

    Raises:
        WidgetLimitReached: The business is already at its plan's limit
    """
    if fields.get('is_active', True):
        check_widget_limit(business)

    widget = Widget.objects.create(business=business, **fields)
    logger.info(f"Created widget {widget.widget_code} for business {business.pk}")
    return widget


def deactivate_widget(widget):
    """Soft-disable a widget; reviews keep pointing at it"""
    widget.is_active = False
    widget.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Deactivated widget {widget.widget_code}")
    return widget
