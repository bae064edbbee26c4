"""
Error taxonomy

Adapters raise collaborator errors (tokens, identity, profiles, notifications).
The auth gateway translates them into ServiceError subclasses, each carrying
the HTTP status and the short message returned to the client.
"""

from typing import Any, Optional


# ---------------------- Collaborator errors ----------------------

class TokenError(Exception):
    pass


class TokenExpired(TokenError):
    pass


class TokenMalformed(TokenError):
    pass


class TokenBadSignature(TokenError):
    pass


class IdentityError(Exception):
    pass


class DuplicateEmail(IdentityError):
    pass


class InvalidIdentityInput(IdentityError):
    pass


class IdentityNotFound(IdentityError):
    pass


class CredentialsRejected(IdentityError):
    """The provider refused the credentials for a reason we do not map."""

    def __init__(self, code: str = "AUTH_ERROR"):
        super().__init__(code)
        self.code = code


class BadCredentials(CredentialsRejected):
    pass


class MethodDisabled(IdentityError):
    pass


class AccountDisabled(IdentityError):
    pass


class InvalidExternalToken(IdentityError):
    pass


class ProfileNotFound(Exception):
    pass


class DeliveryFailed(Exception):
    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body


# ---------------------- Service errors ----------------------

class ServiceError(Exception):
    status_code = 500
    default_message = "Error interno del servidor"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(ServiceError):
    status_code = 400
    default_message = "Solicitud inválida"


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "Usuario no autenticado"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Acceso denegado"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Usuario no encontrado"


class Conflict(ServiceError):
    status_code = 409
    default_message = "El correo ya está registrado"


class Unexpected(ServiceError):
    status_code = 500
