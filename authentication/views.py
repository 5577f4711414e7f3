from django.http import JsonResponse
from django.views.decorators.http import require_POST, require_GET
from django.views.decorators.csrf import csrf_exempt
from django.middleware.csrf import get_token

from .forms import LoginForm
from authentication.helpers import (
    INVALID_PAYLOAD_MSG,
    parse_json_body,
    get_user_or_none,
    handle_failed_login,
    set_user_session,
    build_success_response,
)

import logging

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def login(request):
    data, error = parse_json_body(request)
    if error:
        return error

    form = LoginForm(data)
    if not form.is_valid():
        errors = {field: error_list[0] for field, error_list in form.errors.items()}
        return JsonResponse({"error": INVALID_PAYLOAD_MSG, "errors": errors}, status=400)

    user = get_user_or_none(form.cleaned_data['username'])
    if user is None:
        return JsonResponse({"error": "Invalid credentials"}, status=401)

    if user.is_account_locked():
        return JsonResponse({
            "error": "Account temporarily locked. Please try again later."
        }, status=423)

    if not form.credentials_match(user):
        logger.info("Failed login for username=%s", user.username)
        return handle_failed_login(user)

    if not user.is_verified:
        return JsonResponse({"error": "Email not verified"}, status=403)

    if not user.is_active:
        return JsonResponse({"error": "Account disabled"}, status=403)

    user.reset_failed_login_attempts()
    request.session.cycle_key()
    set_user_session(request, user)
    logger.info("User logged in user_id=%s", user.user_id)
    return JsonResponse(build_success_response(user), status=200)


@csrf_exempt
@require_POST
def logout(request):
    request.session.flush()
    return JsonResponse({'message': 'Logged out'}, status=200)


@require_GET
def me(request):
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return JsonResponse({"error": "Unauthorized"}, status=401)

    return JsonResponse({
        "ok": True,
        "user_id": str(user.user_id),
        "username": user.username,
        "display_name": user.display_name,
    }, status=200)


@require_GET
def csrf(request):
    # sets the 'csrftoken' cookie and also returns it in JSON
    return JsonResponse({"csrfToken": get_token(request)})
