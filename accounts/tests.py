from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth.models import User
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from core.factories import BusinessFactory, UserFactory
from core.models import Business
from reviews.factories import ReviewFactory
from widgets.factories import WidgetFactory
from widgets.models import Widget
from reviews.models import Review
from .factories import AccessTokenFactory
from .models import AccessToken, UserProfile

PASSWORD = 'correct-horse-battery-42'


class SignUpTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_sign_up_creates_user_business_and_token(self):
        response = self.client.post('/api/v1/auth/sign-up/', {
            'email': 'Owner@Example.com',
            'password': PASSWORD,
            'business_name': 'Corner Coffee',
            'first_name': 'Ada',
            'metadata': {'referrer': 'newsletter'},
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['user']['email'], 'owner@example.com')
        self.assertEqual(response.data['user']['first_name'], 'Ada')
        self.assertEqual(response.data['business']['name'], 'Corner Coffee')
        self.assertEqual(response.data['session']['token_type'], 'bearer')

        user = User.objects.get(username='owner@example.com')
        self.assertEqual(user.business.name, 'Corner Coffee')
        self.assertEqual(user.profile.metadata, {'referrer': 'newsletter', 'first_name': 'Ada'})
        self.assertTrue(AccessToken.objects.filter(
            user=user, token=response.data['session']['access_token']
        ).exists())

    def test_default_business_name(self):
        response = self.client.post('/api/v1/auth/sign-up/', {
            'email': 'jo@bakery.test',
            'password': PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['business']['name'], 'jo Business')

    def test_duplicate_email(self):
        UserFactory(username='taken@example.com')
        response = self.client.post('/api/v1/auth/sign-up/', {
            'email': 'taken@example.com',
            'password': PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'An account with this email already exists')

    def test_weak_password(self):
        response = self.client.post('/api/v1/auth/sign-up/', {
            'email': 'weak@example.com',
            'password': '123',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('password', response.data)
        self.assertEqual(response.data['error_code'], 'validation_error')
        self.assertFalse(User.objects.filter(username='weak@example.com').exists())

    def test_invalid_email(self):
        response = self.client.post('/api/v1/auth/sign-up/', {
            'email': 'not-an-email',
            'password': PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('email', response.data)


class SignInTestCase(TestCase):

    def setUp(self):
        self.user = UserFactory(username='owner@example.com', password=PASSWORD)
        self.client = APIClient()

    def test_sign_in_issues_token(self):
        response = self.client.post('/api/v1/auth/sign-in/', {
            'email': 'owner@example.com',
            'password': PASSWORD,
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['user']['id'], self.user.pk)
        token = AccessToken.objects.get(user=self.user)
        self.assertEqual(response.data['session']['access_token'], token.token)
        self.assertGreater(token.expires_at, timezone.now())

    def test_sign_in_creates_missing_business(self):
        self.assertFalse(Business.objects.filter(owner=self.user).exists())
        response = self.client.post('/api/v1/auth/sign-in/', {
            'email': 'owner@example.com',
            'password': PASSWORD,
        }, format='json')
        self.assertEqual(response.data['business']['name'], 'owner Business')

    def test_wrong_password(self):
        response = self.client.post('/api/v1/auth/sign-in/', {
            'email': 'owner@example.com',
            'password': 'wrong',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {'error': 'Invalid email or password'})
        self.assertFalse(AccessToken.objects.exists())


class TokenAuthenticationTestCase(TestCase):

    def setUp(self):
        self.business = BusinessFactory()
        self.user = self.business.owner
        self.client = APIClient()

    def test_missing_credentials(self):
        response = self.client.get('/api/v1/auth/user/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['error_code'], 'not_authenticated')

    def test_unknown_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-token')
        response = self.client.get('/api/v1/auth/user/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['detail'], 'Invalid or inactive token')

    def test_expired_token(self):
        token = AccessTokenFactory(user=self.user, expires_at=timezone.now() - timedelta(minutes=1))
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.token}')
        response = self.client.get('/api/v1/auth/user/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['detail'], 'Token has expired')

    def test_inactive_user(self):
        token = AccessTokenFactory(user=self.user)
        self.user.is_active = False
        self.user.save()
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.token}')
        response = self.client.get('/api/v1/auth/user/')
        self.assertEqual(response.status_code, 401)

    def test_valid_token_updates_last_used(self):
        token = AccessTokenFactory(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.token}')

        response = self.client.get('/api/v1/auth/user/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['user']['email'], self.user.email)
        self.assertEqual(response.data['business']['id'], self.business.pk)
        token.refresh_from_db()
        self.assertIsNotNone(token.last_used_at)


class AccountManagementTestCase(TestCase):

    def setUp(self):
        self.business = BusinessFactory()
        self.user = self.business.owner
        self.token = AccessTokenFactory(user=self.user)
        self.other_token = AccessTokenFactory(user=self.user)
        self.client = APIClient()
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.token.token}')

    def test_sign_out_revokes_current_token_only(self):
        response = self.client.post('/api/v1/auth/sign-out/')
        self.assertEqual(response.status_code, 204)

        self.token.refresh_from_db()
        self.other_token.refresh_from_db()
        self.assertFalse(self.token.is_active)
        self.assertTrue(self.other_token.is_active)

        self.assertEqual(self.client.get('/api/v1/auth/user/').status_code, 401)

    def test_session_sign_out_revokes_all_tokens(self):
        client = APIClient()
        client.force_login(self.user)
        self.assertEqual(client.post('/api/v1/auth/sign-out/').status_code, 204)
        self.assertFalse(AccessToken.objects.filter(user=self.user, is_active=True).exists())

    def test_update_profile_merges_metadata(self):
        UserProfile.objects.filter(user=self.user).update(metadata={'plan_hint': 'starter'})

        response = self.client.patch('/api/v1/auth/profile/', {
            'first_name': 'Grace',
            'metadata': {'timezone': 'Europe/Amsterdam'},
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['first_name'], 'Grace')
        self.assertEqual(response.data['metadata'], {'plan_hint': 'starter', 'timezone': 'Europe/Amsterdam'})

    def test_update_password_revokes_other_tokens(self):
        response = self.client.post('/api/v1/auth/password/', {'password': 'another-long-passphrase-7'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('another-long-passphrase-7'))
        self.other_token.refresh_from_db()
        self.token.refresh_from_db()
        self.assertFalse(self.other_token.is_active)
        self.assertTrue(self.token.is_active)

    def test_update_password_rejects_weak_password(self):
        response = self.client.post('/api/v1/auth/password/', {'password': 'abc'}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('password', response.data)

    @patch('subscriptions.services.cancel_all_subscriptions')
    def test_delete_account_removes_everything(self, mock_cancel):
        widget = WidgetFactory(business=self.business)
        ReviewFactory(widget=widget)
        # The business pk is cleared once it is deleted, so record it at call time
        cancelled = []
        mock_cancel.side_effect = lambda business: cancelled.append(business.pk)

        response = self.client.delete('/api/v1/auth/account/')

        self.assertEqual(response.status_code, 204)
        self.assertEqual(cancelled, [self.business.pk])
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())
        self.assertFalse(Business.objects.filter(pk=self.business.pk).exists())
        self.assertFalse(Widget.objects.exists())
        self.assertFalse(Review.objects.exists())
        self.assertFalse(AccessToken.objects.exists())

    def test_user_profile_created_on_user_creation(self):
        user = UserFactory()
        self.assertTrue(UserProfile.objects.filter(user=user).exists())
