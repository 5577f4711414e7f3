from django.db import models
import uuid

DEFAULT_TITLE = "New Chat"
TITLE_MAX_CHARS = 30


def derive_title(text: str) -> str:
    """First 30 characters of the message, with an ellipsis if it was cut."""
    text = text or ""
    title = text[:TITLE_MAX_CHARS]
    if len(text) > TITLE_MAX_CHARS:
        title += "..."
    return title


class ChatSession(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.UUIDField(db_index=True)
    title = models.CharField(max_length=120, default=DEFAULT_TITLE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        indexes = [models.Index(fields=["user_id", "-updated_at"])]

    def __str__(self):
        return f"{self.title} ({self.id})"

    def ordered_messages(self):
        return self.messages.order_by("created_at", "id")

    def save(self, *args, **kwargs):
        # retitle from the first user message while the default title stands
        if self.title == DEFAULT_TITLE and not self._state.adding:
            first = self.messages.filter(role=ChatMessage.ROLE_USER).order_by("created_at", "id").first()
            if first is not None:
                self.title = derive_title(first.content)
                update_fields = kwargs.get("update_fields")
                if update_fields is not None and "title" not in update_fields:
                    kwargs["update_fields"] = list(update_fields) + ["title"]
        super().save(*args, **kwargs)


class ChatMessage(models.Model):
    ROLE_USER = "user"
    ROLE_ASSISTANT = "assistant"
    ROLE_CHOICES = [(ROLE_USER, "user"), (ROLE_ASSISTANT, "assistant")]

    session = models.ForeignKey(ChatSession, on_delete=models.CASCADE, related_name="messages")
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.role}: {self.content[:40]}"
