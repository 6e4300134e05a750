from functools import wraps

from flask import abort
from flask_login import current_user, login_required


def request_user():
    """The authenticated user for this request, or None for a guest"""
    if current_user and current_user.is_authenticated:
        return current_user._get_current_object()
    return None


def first_error_message(messages, default="Please check the submitted details."):
    """
    Flatten marshmallow's nested error messages into the first readable
    sentence, suitable for showing to a customer.
    """
    if isinstance(messages, str):
        return messages
    if isinstance(messages, (list, tuple)):
        for message in messages:
            found = first_error_message(messages=message, default=None)
            if found:
                return found
        return default
    if isinstance(messages, dict):
        for field, message in messages.items():
            found = first_error_message(message, default=None)
            if found:
                if field == '_schema' or not isinstance(message, list):
                    return found
                return f"{field}: {found}"
        return default
    return default


def permission_required(permission):
    """Restrict a view to logged-in users whose role grants ``permission``"""
    def decorator(view):
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if not current_user.has_permission(permission):
                abort(403)
            return view(*args, **kwargs)
        return wrapped
    return decorator


# Staff review and price quotes
staff_required = permission_required('manage_quotes')
