# auth.py - Bearer JWT check for the validator routes

import functools
import logging

from flask import current_app, jsonify, request
from jose import JWTError, jwt

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


def issuer_config(settings):
    """Issuer -> (verification key, algorithm, audience)."""
    return {
        settings.jwt_issuer: (
            settings.jwt_verification_key,
            settings.jwt_algorithm,
            settings.jwt_audience,
        ),
    }


def verify_bearer_token(auth_header, settings):
    if not auth_header:
        raise AuthError("Missing Authorization header")
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise AuthError("Invalid Authorization header format")
    token = parts[1]

    try:
        issuer = jwt.get_unverified_claims(token).get("iss")
    except JWTError:
        raise AuthError("Invalid or expired token") from None
    providers = issuer_config(settings)
    if not issuer or issuer not in providers:
        raise AuthError("Invalid or expired token")

    key, algorithm, audience = providers[issuer]
    if not key:
        raise AuthError("Invalid or expired token")
    try:
        return jwt.decode(
            token,
            key,
            algorithms=[algorithm],
            audience=audience or None,
            issuer=issuer,
            options={"verify_aud": bool(audience)},
        )
    except JWTError:
        raise AuthError("Invalid or expired token") from None


def require_auth(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        settings = current_app.config["SETTINGS"]
        if settings.disable_jwt_auth:
            return view(*args, **kwargs)
        try:
            verify_bearer_token(request.headers.get("Authorization"), settings)
        except AuthError as e:
            logger.info("Rejected request to %s: %s", request.path, e)
            return jsonify({"error": str(e)}), 401
        return view(*args, **kwargs)
    return wrapper
