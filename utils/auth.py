from collections import namedtuple
from functools import wraps

from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_jwt,
    get_jwt_identity,
    jwt_required,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import PyJWTError

from utils.permissions import Action, is_allowed, to_role

Identity = namedtuple("Identity", ["id", "role"])


class AuthenticationError(Exception):
    pass


def issue_tokens(user):
    """Return an access/refresh pair carrying the user id and role."""
    claims = {"role": user.get_role_name()}
    return {
        "access_token": create_access_token(identity=str(user.id), additional_claims=claims),
        "refresh_token": create_refresh_token(identity=str(user.id), additional_claims=claims),
    }


def _identity_from_claims(subject, claims):
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token subject")

    role = to_role(claims.get("role"))
    if role is None:
        raise AuthenticationError("Invalid role claim")
    return Identity(id=user_id, role=role)


def verify_token(encoded_token, expected_type="access"):
    """Verify signature and expiry of ``encoded_token`` and decode its identity.

    Stateless: nothing is looked up server side.
    """
    try:
        claims = decode_token(encoded_token)
    except (JWTExtendedException, PyJWTError) as exc:
        raise AuthenticationError(str(exc)) from exc

    if claims.get("type") != expected_type:
        raise AuthenticationError("Invalid token type")
    return _identity_from_claims(claims.get("sub"), claims)


def current_identity():
    """Identity of the caller. Must be called within a JWT protected context."""
    return _identity_from_claims(get_jwt_identity(), get_jwt())


def _authenticated(f, action=None, refresh=False):
    @wraps(f)
    @jwt_required(refresh=refresh)
    def decorated_function(*args, **kwargs):
        try:
            identity = current_identity()
        except AuthenticationError as exc:
            return {"error": str(exc)}, 422

        if action is not None and not is_allowed(identity.role, action):
            return {
                "error": "Insufficient permissions",
                "required_action": action.value,
                "current_role": identity.role.value,
            }, 403

        kwargs["current_user"] = identity
        return f(*args, **kwargs)

    return decorated_function


def permission_required(action: Action):
    """
    Decorator to require a policy action for endpoint access.
    Usage: @permission_required(Action.MODERATE_REQUEST)
    """
    def decorator(f):
        return _authenticated(f, action=action)
    return decorator


def any_authenticated_user(f):
    """Decorator to require any valid access token."""
    return _authenticated(f)


def refresh_token_required(f):
    return _authenticated(f, refresh=True)


def moderator_required(f):
    """Decorator to require manager or admin role."""
    return permission_required(Action.MODERATE_REQUEST)(f)
