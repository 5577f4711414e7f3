from django import forms
import re


def validate_username(username: str):
    if not username or not username.strip():
        raise forms.ValidationError("Username cannot be empty.")

    username = username.strip()
    if len(username) < 3:
        raise forms.ValidationError("Username must be at least 3 characters long.")
    if not re.match(r'^[a-zA-Z0-9_.-]+$', username):
        raise forms.ValidationError("Username can only contain letters, numbers, dots, hyphens, and underscores.")

    return username
