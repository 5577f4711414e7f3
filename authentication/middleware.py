from django.utils.deprecation import MiddlewareMixin
from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError

from authentication.models import User


class SessionAuthenticationMiddleware(MiddlewareMixin):
    """
    Middleware to set request.user based on session data.
    DRF's SessionAuthentication then picks the user up from the wrapped request.
    """
    def process_request(self, request):
        user_id = request.session.get('user_id')
        username = request.session.get('username')

        if user_id and username:
            try:
                user = User.objects.get(user_id=user_id, username=username)
                if user.is_authenticated:
                    request.user = user
                else:
                    request.user = AnonymousUser()
            except (User.DoesNotExist, ValidationError):
                request.user = AnonymousUser()
        else:
            request.user = AnonymousUser()
