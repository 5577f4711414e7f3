from django.urls import path
from . import views

app_name = "chat"

urlpatterns = [
    # Sessions
    path("sessions/", views.sessions, name="sessions"),

    # Session detail: fetch / append (PATCH) / delete
    path("sessions/<str:sid>/", views.session_detail, name="session_detail"),

    # Messages
    path("sessions/<str:sid>/messages/", views.post_message, name="post_message"),

    # Reply generation
    path("sessions/<str:sid>/reply/", views.reply, name="reply"),
]
