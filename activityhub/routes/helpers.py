from functools import wraps

from flask import request
from flask_login import login_required, current_user

from activityhub.errors import InvalidArgument, PermissionDenied


# --- Auth Helpers ---
def role_required(*roles):
    def decorator(f):
        @wraps(f)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.role.value not in roles:
                raise PermissionDenied(f"Requires role: {', '.join(roles)}")
            return f(*args, **kwargs)
        return wrapped
    return decorator


def get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgument("Request body must be a JSON object")
    return data


def get_scope_filters():
    return {
        "start_date": request.args.get('start_date'),
        "end_date": request.args.get('end_date'),
    }
