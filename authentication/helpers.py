import json
from django.http import JsonResponse
from authentication.models import User

INVALID_PAYLOAD_MSG = "invalid payload"


def parse_json_body(request):
    """Return (data, None) for a JSON object body, or (None, error_response)."""
    raw = request.body or b''
    if not raw.strip():
        return {}, None
    try:
        data = json.loads(raw.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None, JsonResponse({"error": INVALID_PAYLOAD_MSG}, status=400)
    if not isinstance(data, dict):
        return None, JsonResponse({"error": INVALID_PAYLOAD_MSG}, status=400)
    return data, None


def get_user_or_none(username):
    try:
        return User.objects.get(username=username)
    except User.DoesNotExist:
        return None


def handle_failed_login(user):
    account_locked = user.increment_failed_login()
    if account_locked:
        return JsonResponse({
            "error": "Account temporarily locked. Please try again later."
        }, status=423)
    return JsonResponse({"error": "Invalid credentials"}, status=401)


def set_user_session(request, user):
    request.session['user_id'] = str(user.user_id)
    request.session['username'] = user.username


def build_success_response(user):
    return {
        "user_id": str(user.user_id),
        "username": user.username,
        "display_name": user.display_name,
        "email": user.email,
        "message": "Login successful"
    }
