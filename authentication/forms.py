# authentication/forms.py
from django import forms
from django.contrib.auth.hashers import check_password
from authentication.models import User
from authentication.validators import validate_username


class LoginForm(forms.Form):
    username = forms.CharField(
        max_length=150,
        strip=True,
        required=True,
        error_messages={
            'required': 'Username is required.',
            'max_length': 'Username must be 150 characters or less.'
        }
    )
    password = forms.CharField(
        max_length=255,
        strip=True,
        required=True,
        error_messages={
            'required': 'Password is required.',
            'max_length': 'Password must be 255 characters or less.'
        }
    )

    def clean_username(self):
        return validate_username(self.cleaned_data.get('username'))

    def credentials_match(self, user):
        """Compare the submitted password against the stored hash."""
        return check_password(self.cleaned_data['password'], user.password)
