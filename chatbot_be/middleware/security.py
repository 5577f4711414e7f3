"""
Security middleware for request size limiting.
"""
import logging

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUEST_BYTES = 1024 * 1024


class RequestSizeLimitMiddleware:
    """
    Rejects write requests whose declared body is larger than
    settings.MAX_REQUEST_BYTES with a 413 before any view runs.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.max_size = getattr(settings, "MAX_REQUEST_BYTES", DEFAULT_MAX_REQUEST_BYTES)

    def __call__(self, request):
        if request.method in ["POST", "PUT", "PATCH"]:
            content_length = request.META.get("CONTENT_LENGTH")

            if content_length:
                try:
                    content_length = int(content_length)
                except (ValueError, TypeError):
                    # let the view deal with a malformed header
                    content_length = 0
                if content_length > self.max_size:
                    logger.warning(
                        "Request size limit exceeded: %s bytes on %s from IP %s",
                        content_length,
                        request.path,
                        request.META.get("REMOTE_ADDR"),
                    )
                    return JsonResponse({
                        "error": "Request too large",
                        "max_size_bytes": self.max_size,
                    }, status=413)

        return self.get_response(request)
