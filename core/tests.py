from django.test import TestCase, RequestFactory
from django.contrib.auth.models import AnonymousUser

from .factories import BusinessFactory, UserFactory
from .middleware import BusinessMiddleware
from widgets.factories import WidgetFactory
from widgets.models import Widget


class HealthCheckTestCase(TestCase):

    def test_health(self):
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'healthy')
        self.assertEqual(response.json()['service'], 'smartreview')

    def test_unknown_url_is_json_404(self):
        with self.settings(DEBUG=False):
            response = self.client.get('/no-such-page/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'error': 'Not found'})


class BusinessMiddlewareTestCase(TestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = BusinessMiddleware(lambda request: request)

    def test_owner_gets_business(self):
        business = BusinessFactory()
        request = self.factory.get('/api/v1/widgets/')
        request.user = business.owner
        self.assertEqual(self.middleware(request).business, business)

    def test_user_without_business(self):
        request = self.factory.get('/api/v1/widgets/')
        request.user = UserFactory()
        self.assertIsNone(self.middleware(request).business)

    def test_anonymous(self):
        request = self.factory.get('/api/v1/widgets/')
        request.user = AnonymousUser()
        self.assertIsNone(self.middleware(request).business)

    def test_public_widget_paths_skipped(self):
        business = BusinessFactory()
        request = self.factory.post('/api/widgets/submit-review/')
        request.user = business.owner
        self.assertIsNone(self.middleware(request).business)


class BusinessManagerTestCase(TestCase):

    def test_for_business(self):
        mine = WidgetFactory()
        WidgetFactory()
        self.assertEqual(list(Widget.objects.for_business(mine.business)), [mine])

    def test_for_none_is_empty(self):
        WidgetFactory()
        self.assertEqual(Widget.objects.for_business(None).count(), 0)

    def test_active(self):
        business = BusinessFactory()
        live = WidgetFactory(business=business)
        WidgetFactory(business=business, is_active=False)
        self.assertEqual(list(Widget.objects.for_business(business).active()), [live])
