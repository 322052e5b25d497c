"""
Errors raised on the public widget endpoints.

Each carries the HTTP status and the message that is safe to show to the
visitor; internal detail goes to the log only.
"""

REQUIRED_FIELDS = ('name', 'email', 'rating', 'review', 'widgetId')


class SubmissionError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidSubmission(SubmissionError):
    status_code = 400
    default_message = f"Missing required fields: {', '.join(REQUIRED_FIELDS)}"


class WidgetNotFound(SubmissionError):
    status_code = 404
    default_message = 'Widget not found'


class MethodNotAllowed(SubmissionError):
    status_code = 405
    default_message = 'Method not allowed'


class RateLimited(SubmissionError):
    status_code = 429
    default_message = 'Too many requests. Please try again later.'


class SubmissionFailed(SubmissionError):
    status_code = 500
    default_message = 'Failed to submit review'


class WidgetLimitReached(Exception):
    """The business already has as many active widgets as its plan allows"""

    def __init__(self, limit):
        self.limit = limit
        super().__init__(f'Your plan allows {limit} active widget{"s" if limit != 1 else ""}')
