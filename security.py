import logging
from typing import Iterable, Optional

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.middleware.base import BaseHTTPMiddleware

from errors import TokenError, Unauthenticated
from schemas import SessionIdentity
from tokens import SESSION

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def require_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionIdentity:
    """Verify the bearer session token and attach the identity to the request."""
    if credentials is None or not credentials.credentials:
        logger.warning("Missing bearer token on %s %s", request.method, request.url.path)
        raise Unauthenticated("Token de acceso requerido")

    try:
        claims = request.app.state.tokens.verify(credentials.credentials, kind=SESSION)
    except TokenError as e:
        logger.warning("Rejected bearer token: %s", e)
        raise Unauthenticated("Token inválido")

    identity = SessionIdentity(user_id=claims["userId"], email=claims.get("email"))
    request.state.user = identity
    return identity


class OriginGuard(BaseHTTPMiddleware):
    """Reject cross-origin requests from origins outside the allow-list.

    Requests without an Origin header (server-to-server) pass through.
    """

    def __init__(self, app, allowed_origins: Iterable[str]):
        super().__init__(app)
        self.allowed_origins = set(allowed_origins)

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")
        if origin and origin not in self.allowed_origins:
            logger.warning("Origin not allowed: %s", origin)
            return JSONResponse({"error": "Origen no permitido"}, status_code=403)
        return await call_next(request)
