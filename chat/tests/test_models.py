import uuid

from django.test import SimpleTestCase, TestCase

from chat.models import ChatMessage, ChatSession, DEFAULT_TITLE, derive_title


class DeriveTitleTests(SimpleTestCase):
    def test_long_message_is_truncated_with_ellipsis(self):
        text = "Explain quantum computing in simple terms and also more"
        self.assertEqual(derive_title(text), text[:30] + "...")
        self.assertEqual(len(derive_title(text)), 33)

    def test_short_message_kept(self):
        self.assertEqual(derive_title("Hello there"), "Hello there")

    def test_exactly_thirty_chars_kept(self):
        text = "x" * 30
        self.assertEqual(derive_title(text), text)


class ChatSessionTitleTests(TestCase):
    def setUp(self):
        self.user_id = uuid.uuid4()

    def test_new_session_keeps_default_title(self):
        sess = ChatSession.objects.create(user_id=self.user_id)
        self.assertEqual(sess.title, DEFAULT_TITLE)

    def test_save_after_first_user_message_retitles(self):
        sess = ChatSession.objects.create(user_id=self.user_id)
        ChatMessage.objects.create(session=sess, role="user", content="What is a monad?")
        sess.save()
        sess.refresh_from_db()
        self.assertEqual(sess.title, "What is a monad?")

    def test_retitle_uses_first_user_message_only(self):
        sess = ChatSession.objects.create(user_id=self.user_id)
        ChatMessage.objects.create(session=sess, role="user", content="first question")
        ChatMessage.objects.create(session=sess, role="user", content="second question")
        sess.save(update_fields=["updated_at"])
        sess.refresh_from_db()
        self.assertEqual(sess.title, "first question")

    def test_custom_title_not_overwritten(self):
        sess = ChatSession.objects.create(user_id=self.user_id, title="Mine")
        ChatMessage.objects.create(session=sess, role="user", content="anything")
        sess.save()
        sess.refresh_from_db()
        self.assertEqual(sess.title, "Mine")

    def test_messages_keep_insertion_order(self):
        sess = ChatSession.objects.create(user_id=self.user_id)
        for i in range(5):
            ChatMessage.objects.create(session=sess, role="user" if i % 2 == 0 else "assistant", content=str(i))
        self.assertEqual([m.content for m in sess.ordered_messages()], ["0", "1", "2", "3", "4"])
