"""Authentication middleware: bearer JWT on every ``/api/`` path.

Rules:
1. Public paths skip auth entirely: /health, /docs, /openapi.json, /redoc
2. ``/api/*`` requires ``Authorization: Bearer <jwt>``
3. With ``JWT_SECRET`` set, the signature and expiry are verified
4. Without it, the token is decoded unverified (local development only)
5. On success: attach user_id, org_id and auth_type to request.state
"""

import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from devinsights.config import get_settings
from devinsights.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

PUBLIC_PATH_PREFIXES = (
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
)

PROTECTED_PATH_PREFIX = "/api/"


def verify_token(token: str, secret: Optional[str], algorithm: str = "HS256") -> Dict[str, Any]:
    """Resolve a bearer token to its claims.

    Raises:
        AuthenticationError: If the token is malformed, expired, badly
            signed, or has no subject.
    """
    try:
        if secret:
            claims = jwt.decode(token, secret, algorithms=[algorithm], options={"verify_aud": False})
        else:
            logger.warning("JWT_SECRET not configured, skipping JWT signature verification")
            claims = jwt.decode(token, options={"verify_signature": False}, algorithms=[algorithm])
    except jwt.PyJWTError as e:
        raise AuthenticationError(str(e)) from e

    if not claims.get("sub"):
        raise AuthenticationError("Token missing subject")
    return claims


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticate ``/api/`` requests via bearer JWT."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if any(path.startswith(p) for p in PUBLIC_PATH_PREFIXES):
            return await call_next(request)
        if not path.startswith(PROTECTED_PATH_PREFIX):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            return JSONResponse(
                {"error": {"code": "auth_required", "message": "Authentication required"}},
                status_code=401,
            )
        if not auth_header.startswith("Bearer "):
            return JSONResponse(
                {"error": {"code": "invalid_auth", "message": "Invalid authorization header"}},
                status_code=401,
            )

        settings = get_settings()
        try:
            claims = verify_token(
                auth_header.removeprefix("Bearer "),
                settings.jwt_secret,
                settings.jwt_algorithm,
            )
        except AuthenticationError as e:
            logger.warning("JWT verification failed: %s", e)
            return JSONResponse(
                {"error": {"code": "invalid_token", "message": "Invalid or expired token"}},
                status_code=401,
            )

        request.state.user_id = claims["sub"]
        request.state.org_id = claims.get("org_id")
        request.state.auth_type = "jwt"
        return await call_next(request)
