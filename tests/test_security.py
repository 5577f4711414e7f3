"""
Security tests: oversized payloads and cross-user access.
"""
from django.test import TestCase, Client, RequestFactory, override_settings
from django.urls import reverse
from django.http import HttpResponse
from django.contrib.auth.hashers import make_password
from authentication.models import User
from chat.models import ChatSession, ChatMessage
from chatbot_be.middleware.security import RequestSizeLimitMiddleware
import json


class RequestSizeLimitTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    @override_settings(MAX_REQUEST_BYTES=100)
    def test_oversized_post_rejected(self):
        middleware = RequestSizeLimitMiddleware(lambda r: HttpResponse("ok"))
        request = self.factory.post("/api/chat/sessions/", data="x" * 500, content_type="application/json")
        response = middleware(request)
        self.assertEqual(response.status_code, 413)
        self.assertEqual(json.loads(response.content)["error"], "Request too large")

    @override_settings(MAX_REQUEST_BYTES=100)
    def test_small_post_passes(self):
        middleware = RequestSizeLimitMiddleware(lambda r: HttpResponse("ok"))
        request = self.factory.post("/api/chat/sessions/", data="{}", content_type="application/json")
        self.assertEqual(middleware(request).status_code, 200)

    @override_settings(MAX_REQUEST_BYTES=100)
    def test_get_is_not_checked(self):
        middleware = RequestSizeLimitMiddleware(lambda r: HttpResponse("ok"))
        request = self.factory.get("/api/chat/sessions/")
        request.META["CONTENT_LENGTH"] = "5000"
        self.assertEqual(middleware(request).status_code, 200)

    def test_malformed_content_length_passes_through(self):
        middleware = RequestSizeLimitMiddleware(lambda r: HttpResponse("ok"))
        request = self.factory.post("/api/chat/sessions/", data="{}", content_type="application/json")
        request.META["CONTENT_LENGTH"] = "abc"
        self.assertEqual(middleware(request).status_code, 200)


class CrossUserAccessTests(TestCase):
    """A session id from another user behaves exactly like a missing one."""

    def setUp(self):
        self.client = Client()
        self.owner = User.objects.create(
            username="owner", password=make_password("pw"), email="owner@example.com", is_verified=True
        )
        self.intruder = User.objects.create(
            username="intruder", password=make_password("pw"), email="intruder@example.com", is_verified=True
        )
        self.sess = ChatSession.objects.create(user_id=self.owner.user_id)
        ChatMessage.objects.create(session=self.sess, role="user", content="private")

        session = self.client.session
        session["user_id"] = str(self.intruder.user_id)
        session["username"] = self.intruder.username
        session.save()

    def test_fetch_patch_delete_all_not_found(self):
        url = reverse("chat:session_detail", args=[str(self.sess.id)])
        self.assertEqual(self.client.get(url).status_code, 404)
        self.assertEqual(
            self.client.patch(url, data=json.dumps({"message": "x"}), content_type="application/json").status_code,
            404,
        )
        self.assertEqual(self.client.delete(url).status_code, 404)
        self.assertEqual(ChatMessage.objects.filter(session=self.sess).count(), 1)
        self.assertTrue(ChatSession.objects.filter(pk=self.sess.id).exists())
