from django.urls import path, include

urlpatterns = [
    path("api/chat/", include("chat.urls")),
    path("auth/", include("authentication.urls")),
    path("", include("django_prometheus.urls")),
]
