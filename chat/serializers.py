# chat/serializers.py
from rest_framework import serializers
from .models import ChatSession, ChatMessage


class ChatMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ChatMessage
        fields = ["role", "content", "created_at"]


class ChatSessionSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = ChatSession
        fields = ["id", "title", "updated_at"]


class ChatSessionSerializer(serializers.ModelSerializer):
    messages = serializers.SerializerMethodField()

    class Meta:
        model = ChatSession
        fields = ["id", "title", "messages", "created_at", "updated_at"]

    def get_messages(self, obj):
        return ChatMessageSerializer(obj.ordered_messages(), many=True).data
