"""Bearer-token authentication for the triage API.

Tokens come from the hosted auth provider, signed HS256 with the shared
secret. Browsers send them in the ``access_token`` cookie, other clients
in ``Authorization: Bearer``. Claims read: ``sub`` (user id), ``email``,
``role``, ``aud`` and ``user_metadata.full_name``.
"""

import logging
from typing import Optional, Dict, Any

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from healthcheck.config.settings import settings

logger = logging.getLogger(__name__)

_OPEN_PATHS = frozenset({"/", "/health", "/openapi.json"})
_OPEN_PREFIXES = ("/docs", "/redoc")


class AuthenticationFailed(Exception):
    def __init__(self, detail: str, error_code: str):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code


def requires_auth(request: Request) -> bool:
    if request.method == "OPTIONS":
        return False
    path = request.url.path
    return path not in _OPEN_PATHS and not path.startswith(_OPEN_PREFIXES)


def decode_jwt(token: str, secret: str) -> Dict[str, Any]:
    """Verify signature, expiry and audience. Raises PyJWT errors on failure."""
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        options={"verify_aud": settings.jwt_audience is not None, "require": ["sub"]},
    )


def extract_token(request: Request) -> Optional[str]:
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(settings.jwt_access_cookie_name) or None


def _authenticate(request: Request) -> Dict[str, Any]:
    token = extract_token(request)
    if token is None:
        raise AuthenticationFailed(
            "Authentication required. Provide a bearer token or access_token cookie.",
            "UNAUTHORIZED",
        )
    try:
        claims = decode_jwt(token, settings.jwt_secret)
    except ExpiredSignatureError:
        raise AuthenticationFailed("Token has expired.", "TOKEN_EXPIRED")
    except InvalidTokenError as exc:
        logger.debug(f"Rejected token: {exc}")
        raise AuthenticationFailed("Invalid token.", "INVALID_TOKEN")

    metadata = claims.get("user_metadata") or {}
    return {
        "user_id": claims["sub"],
        "email": claims.get("email", ""),
        "full_name": metadata.get("full_name", ""),
        "role": claims.get("role", ""),
    }


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """Attaches the caller to ``request.state.user`` or answers 401."""

    async def dispatch(self, request: Request, call_next):
        if not requires_auth(request):
            return await call_next(request)

        try:
            request.state.user = _authenticate(request)
        except AuthenticationFailed as failure:
            logger.warning(
                f"{request.method} {request.url.path} unauthenticated: {failure.error_code}"
            )
            return JSONResponse(
                status_code=401,
                content={"detail": failure.detail, "error": failure.error_code},
                headers={"WWW-Authenticate": "Bearer"},
            )

        return await call_next(request)
