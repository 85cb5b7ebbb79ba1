from functools import wraps

from flask import jsonify
from flask_jwt_extended import verify_jwt_in_request, get_jwt


def current_user_type():
    return get_jwt().get('userType')


def role_required(*user_types):
    """Require a valid access token whose userType is one of user_types."""
    def wrapper(fn):
        @wraps(fn)
        def decorator(*args, **kwargs):
            verify_jwt_in_request()
            if current_user_type() not in user_types:
                return jsonify({'error': 'Unauthorized'}), 403
            return fn(*args, **kwargs)
        return decorator
    return wrapper


officer_required = role_required('officer')
farmer_required = role_required('farmer')
buyer_required = role_required('buyer')


def super_admin_required(fn):
    @wraps(fn)
    def decorator(*args, **kwargs):
        verify_jwt_in_request()
        claims = get_jwt()
        if claims.get('userType') != 'officer' or not claims.get('isSuperAdmin'):
            return jsonify({'error': 'Unauthorized: Super admin privileges required'}), 403
        return fn(*args, **kwargs)
    return decorator
