# jwt_auth.py
from functools import wraps
from typing import Callable, List, Optional

import jwt
from flask import current_app, g, jsonify, request

from resume_analyzer.extensions import db
from resume_analyzer.models import UserProfile

ALGORITHMS = ["HS256"]


def _token_subject(payload: dict) -> Optional[str]:
    """The user id carried by the token: ``id`` first, then the standard ``sub``."""
    subject = payload.get("id") or payload.get("sub")
    return str(subject) if subject is not None else None


def _load_user_profile(user_id: str) -> Optional[UserProfile]:
    """Load the profile the token refers to.

    Args:
        user_id (str): The token subject.

    Returns:
        Optional[UserProfile]: The user profile, or None when it does not exist.
    """
    return db.session.get(UserProfile, user_id)


def require_jwt(
    required_claims: Optional[List[str]] = None,
    hydrate: bool = True,
) -> Callable:
    """Require an HS256 Bearer token signed with ``JWT_SECRET``.

    Args:
        required_claims (Optional[List[str]], optional): Extra claims that must be
            present in the token. Defaults to None.
        hydrate (bool, optional): Whether to load the ``UserProfile`` into
            ``g.user_profile``; an unknown user then yields 404. Defaults to True.

    Returns:
        Callable: The decorator.
    """

    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        def wrapped(*args, **kwargs):
            secret = current_app.config.get("JWT_SECRET")
            if not secret:
                current_app.logger.error("JWT_SECRET is not configured")
                return jsonify({"error": "auth_not_configured"}), 500

            auth_header = request.headers.get("Authorization", "")
            if not auth_header.startswith("Bearer "):
                return jsonify({"error": "missing_or_invalid_authorization"}), 401

            token = auth_header.split(" ", 1)[1].strip()
            try:
                payload = jwt.decode(
                    token,
                    secret,
                    algorithms=ALGORITHMS,
                    options={"require": list(required_claims or [])},
                    leeway=60,
                )
            except jwt.ExpiredSignatureError:
                return jsonify({"error": "token_expired"}), 401
            except jwt.InvalidTokenError as e:
                return jsonify({"error": "invalid_token", "detail": str(e)}), 401

            user_id = _token_subject(payload)
            if not user_id:
                return jsonify({"error": "invalid_token", "detail": "no user id claim"}), 401

            g.jwt_payload = payload
            g.user_sub = user_id

            if hydrate:
                profile = _load_user_profile(user_id)
                if profile is None:
                    return jsonify({"error": "user_not_found"}), 404
                g.user_profile = profile

            return fn(*args, **kwargs)

        return wrapped

    return decorator
