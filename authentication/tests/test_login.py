from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth.hashers import make_password
from authentication.models import User, MAX_FAILED_LOGINS
import json
import uuid


class LoginEndpointTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.login_url_name = "authentication:login"
        self.logout_url_name = "authentication:logout"
        self.username = f"user_{uuid.uuid4().hex[:6]}"
        self.password = "ChatPass2025"

        self.user = User.objects.create(
            username=self.username,
            password=make_password(self.password),
            email=f"{self.username}@example.com",
            is_verified=True
        )

    def _post_json(self, url, payload: dict):
        return self.client.post(
            url,
            data=json.dumps(payload),
            content_type="application/json",
        )

    def test_login_success_sets_session_identity(self):
        url = reverse(self.login_url_name)
        response = self._post_json(url, {"username": self.username, "password": self.password})

        self.assertEqual(response.status_code, 200, response.content)
        data = response.json()
        self.assertEqual(data["message"].lower(), "login successful")
        self.assertEqual(data["user_id"], str(self.user.user_id))

        session = self.client.session
        self.assertEqual(session.get("user_id"), str(self.user.user_id))
        self.assertEqual(session.get("username"), self.username)

    def test_login_success_and_logout_flow(self):
        login_response = self._post_json(
            reverse(self.login_url_name),
            {"username": self.username, "password": self.password},
        )
        self.assertEqual(login_response.status_code, 200)

        logout_response = self.client.post(reverse(self.logout_url_name), content_type="application/json")
        self.assertEqual(logout_response.status_code, 200)
        self.assertEqual(logout_response.json()["message"], "Logged out")
        self.assertIsNone(self.client.session.get("user_id"))

    def test_login_invalid_json_returns_400(self):
        response = self.client.post(
            reverse(self.login_url_name),
            data="not-a-json{",
            content_type="application/json"
        )
        self.assertEqual(response.status_code, 400, response.content)
        self.assertEqual(response.json()["error"], "invalid payload")

    def test_login_missing_fields_returns_400(self):
        response = self._post_json(reverse(self.login_url_name), {"username": self.username})
        self.assertEqual(response.status_code, 400)
        self.assertIn("password", response.json()["errors"])

    def test_login_nonexistent_credentials(self):
        response = self._post_json(
            reverse(self.login_url_name),
            {"username": "doesnotexist", "password": "Password123"},
        )
        self.assertEqual(response.status_code, 401, response.content)

    def test_login_wrong_password_counts_failures(self):
        response = self._post_json(
            reverse(self.login_url_name),
            {"username": self.username, "password": "WrongPass999"},
        )
        self.assertEqual(response.status_code, 401)
        self.user.refresh_from_db()
        self.assertEqual(self.user.failed_login_attempts, 1)

    def test_account_locks_after_repeated_failures(self):
        url = reverse(self.login_url_name)
        statuses = [
            self._post_json(url, {"username": self.username, "password": "WrongPass999"}).status_code
            for _ in range(MAX_FAILED_LOGINS)
        ]
        self.assertEqual(statuses[-1], 423)

        # correct password is refused while locked
        response = self._post_json(url, {"username": self.username, "password": self.password})
        self.assertEqual(response.status_code, 423)

    def test_unverified_user_cannot_log_in(self):
        self.user.is_verified = False
        self.user.save(update_fields=["is_verified"])
        response = self._post_json(
            reverse(self.login_url_name),
            {"username": self.username, "password": self.password},
        )
        self.assertEqual(response.status_code, 403)

    def test_login_requires_post(self):
        response = self.client.get(reverse(self.login_url_name))
        self.assertEqual(response.status_code, 405)
