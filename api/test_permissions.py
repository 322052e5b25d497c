"""
Tests for API permissions.
"""
from django.test import TestCase
from rest_framework.test import APIClient

from accounts.factories import AccessTokenFactory
from core.factories import BusinessFactory
from reviews.factories import ReviewFactory
from reviews.models import Review
from widgets.factories import WidgetFactory


class IsBusinessMemberPermissionTest(TestCase):
    """Test IsBusinessMember permission."""

    def setUp(self):
        """Set up test data."""
        # Create two businesses
        self.business1 = BusinessFactory(name='Business 1')
        self.business2 = BusinessFactory(name='Business 2')

        self.widget1 = WidgetFactory(business=self.business1)
        self.widget2 = WidgetFactory(business=self.business2)
        self.review2 = ReviewFactory(widget=self.widget2)

        # Create tokens
        self.token1 = AccessTokenFactory(user=self.business1.owner)
        self.token2 = AccessTokenFactory(user=self.business2.owner)

        self.client = APIClient()
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.token1.token}')

    def test_unauthenticated_denied(self):
        client = APIClient()
        for url in ('/api/v1/widgets/', '/api/v1/reviews/', '/api/v1/analytics/summary/', '/api/v1/business/'):
            with self.subTest(url=url):
                self.assertEqual(client.get(url).status_code, 401)

    def test_list_only_own_widgets(self):
        response = self.client.get('/api/v1/widgets/')
        codes = [w['widget_code'] for w in response.data['results']]
        self.assertEqual(codes, [self.widget1.widget_code])

    def test_cannot_read_other_business_widget(self):
        response = self.client.get(f'/api/v1/widgets/{self.widget2.widget_code}/')
        self.assertEqual(response.status_code, 404)

    def test_cannot_embed_other_business_widget(self):
        response = self.client.get(f'/api/v1/widgets/{self.widget2.widget_code}/embed/')
        self.assertEqual(response.status_code, 404)

    def test_cannot_edit_other_business_review(self):
        response = self.client.patch(f'/api/v1/reviews/{self.review2.uuid}/', {'status': 'hidden'}, format='json')
        self.assertEqual(response.status_code, 404)
        self.review2.refresh_from_db()
        self.assertEqual(self.review2.status, 'published')

    def test_cannot_delete_other_business_review(self):
        response = self.client.delete(f'/api/v1/reviews/{self.review2.uuid}/')
        self.assertEqual(response.status_code, 404)
        self.assertTrue(Review.objects.filter(pk=self.review2.pk).exists())

    def test_inactive_business_denied(self):
        self.business1.is_active = False
        self.business1.save()
        response = self.client.get('/api/v1/widgets/')
        self.assertEqual(response.status_code, 403)

    def test_session_auth_works(self):
        client = APIClient()
        client.force_login(self.business2.owner)
        response = client.get('/api/v1/reviews/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)
