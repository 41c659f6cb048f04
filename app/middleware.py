"""Middleware for the current user and access control."""
from functools import wraps
from flask import session, g, jsonify, current_app
from app.database import get_session
from app.models import AppUser
from app.exceptions import AuthenticationRequiredError, UnauthorizedError


def load_user():
    """
    Load the current user into g (Flask's per-request global).

    Called before each request. Login itself is handled by the identity
    service, which stores the user id in the session. Blocked or inactive
    users are treated as anonymous.
    """
    g.user = None
    g.user_id = None

    try:
        user_id = session.get('user_id')
        if user_id:
            db_session = get_session()
            if not db_session:
                return

            user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
            if user and not user.is_blocked:
                g.user = user
                g.user_id = user.id
    except Exception as e:
        # A broken identity lookup must not take the whole site down
        current_app.logger.error(f"Error in load_user: {e}")


def current_user():
    return g.get('user')


def _error(error):
    return jsonify(error.to_dict()), error.status_code


def require_login(f):
    """Decorator: Require user to be logged in (401 JSON otherwise)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return _error(AuthenticationRequiredError())
        return f(*args, **kwargs)
    return decorated_function


def require_approved(f):
    """
    Decorator: Require an approved customer account (or admin).

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = g.get('user')
        if user is None:
            return _error(AuthenticationRequiredError())
        if not user.can_request_quotes:
            return _error(UnauthorizedError('Ihr Konto ist noch nicht freigeschaltet.'))
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """Decorator: Require a back-office user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = g.get('user')
        if user is None:
            return _error(AuthenticationRequiredError())
        if not user.is_admin:
            return _error(UnauthorizedError())
        return f(*args, **kwargs)
    return decorated_function
