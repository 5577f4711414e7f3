from django.test import TestCase, Client
from django.urls import reverse
from authentication.models import User
from django.contrib.auth.hashers import make_password
import json


class AuthenticatedUserMiddlewareTests(TestCase):
    """Middleware behaviour once a user has logged in."""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create(
            username='testuser',
            password=make_password('Testpass123'),
            email='testuser@example.com',
            is_verified=True
        )
        login_response = self.client.post(
            reverse("authentication:login"),
            data=json.dumps({'username': 'testuser', 'password': 'Testpass123'}),
            content_type='application/json'
        )
        self.assertEqual(login_response.status_code, 200, f"Login failed: {login_response.content}")

    def test_me_returns_identity(self):
        response = self.client.get(reverse("authentication:me"))
        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(response.json()["user_id"], str(self.user.user_id))

    def test_deactivated_user_is_treated_as_anonymous(self):
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])
        response = self.client.get(reverse("authentication:me"))
        self.assertEqual(response.status_code, 401)


class UnauthenticatedUserMiddlewareTests(TestCase):
    """Middleware behaviour without a usable session."""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create(
            username='testuser',
            password=make_password('Testpass123'),
            email='testuser@example.com',
            is_verified=True
        )

    def test_no_session_denied(self):
        response = self.client.get(reverse("authentication:me"))
        self.assertEqual(response.status_code, 401)

    def test_mismatched_username_denied(self):
        session = self.client.session
        session["user_id"] = str(self.user.user_id)
        session["username"] = "someone-else"
        session.save()
        response = self.client.get(reverse("authentication:me"))
        self.assertEqual(response.status_code, 401)

    def test_malformed_user_id_denied(self):
        session = self.client.session
        session["user_id"] = "not-a-uuid"
        session["username"] = "testuser"
        session.save()
        response = self.client.get(reverse("authentication:me"))
        self.assertEqual(response.status_code, 401)
