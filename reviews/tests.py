from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db.models import RestrictedError
from django.test import TestCase

from core.factories import BusinessFactory, UserFactory
from widgets.factories import WidgetFactory
from .factories import ReviewFactory
from .models import Review


class ReviewModelTestCase(TestCase):

    def test_title_for(self):
        self.assertEqual(Review.title_for(4, 'Amy'), '4 star review from Amy')

    def test_defaults(self):
        review = ReviewFactory()
        self.assertEqual(review.ip_address, 'unknown')
        self.assertEqual(review.user_agent, 'unknown')
        self.assertIsNotNone(review.uuid)

    def test_widget_with_reviews_cannot_be_deleted(self):
        review = ReviewFactory()
        with self.assertRaises(RestrictedError):
            review.widget.delete()

    def test_business_deletion_removes_widgets_and_reviews(self):
        review = ReviewFactory()
        review.business.delete()
        self.assertFalse(Review.objects.exists())


class GenerateDemoReviewsTestCase(TestCase):

    def test_creates_reviews(self):
        widget = WidgetFactory()
        out = StringIO()

        call_command('generate_demo_reviews', widget.business.owner.email, '--count', '8', '--seed', '1', stdout=out)

        reviews = Review.objects.for_business(widget.business)
        self.assertEqual(reviews.count(), 8)
        self.assertTrue(all(r.source == 'import' and r.widget == widget for r in reviews))
        self.assertIn('Created 8 demo reviews', out.getvalue())

    def test_seed_is_repeatable(self):
        first = BusinessFactory()
        second = BusinessFactory()
        call_command('generate_demo_reviews', first.owner.email, '--seed', '7', stdout=StringIO())
        call_command('generate_demo_reviews', second.owner.email, '--seed', '7', stdout=StringIO())

        def statuses(business):
            return list(Review.objects.for_business(business).order_by('id').values_list('status', flat=True))

        self.assertEqual(statuses(first), statuses(second))

    def test_unknown_user(self):
        with self.assertRaises(CommandError):
            call_command('generate_demo_reviews', 'nobody@example.com', stdout=StringIO())

    def test_user_without_business(self):
        user = UserFactory()
        with self.assertRaises(CommandError):
            call_command('generate_demo_reviews', user.email, stdout=StringIO())
