"""
Auth gateway: register, login, social login, profile read/update/delete and
password recovery over the identity, profile, notification and token
collaborators.

Each operation returns the JSON body of its success response or raises a
ServiceError. Anything else escaping a collaborator is logged and surfaced
as Unexpected, so no exception crosses the request boundary unmapped.
"""

import functools
import logging
from typing import Any, Optional, Tuple

from pydantic import EmailStr, TypeAdapter, ValidationError

from config import LOGIN_SESSION_TTL, REGISTER_SESSION_TTL, RESET_TOKEN_TTL
from errors import (
    AccountDisabled,
    BadCredentials,
    Conflict,
    CredentialsRejected,
    DuplicateEmail,
    Forbidden,
    IdentityNotFound,
    InvalidExternalToken,
    InvalidIdentityInput,
    InvalidInput,
    MethodDisabled,
    NotFound,
    ProfileNotFound,
    ServiceError,
    TokenError,
    Unauthenticated,
    Unexpected,
)
from identity import IdentityGateway
from notifications import Notifier
from profiles import ProfileStore
from schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    Profile,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionIdentity,
    SocialLoginRequest,
)
from tokens import RESET, TokenService

logger = logging.getLogger(__name__)

MIN_AGE = 18
DEFAULT_AGE = 25
DEFAULT_NAME = "Usuario"

_email_adapter = TypeAdapter(EmailStr)


def normalize_email(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    return raw.strip().lower() or None


def coerce_age(raw: Any) -> Optional[int]:
    """Accept an int or a numeric string; anything else is None."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip(), 10)
        except ValueError:
            return None
    return None


def _validate_email(email: str) -> None:
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        raise InvalidInput("Email inválido")


def _names_from(display_name: Optional[str], family_name: Optional[str] = None) -> Tuple[str, str]:
    display_name = (display_name or "").strip()
    if family_name and display_name.endswith(family_name):
        given = display_name[: -len(family_name)].strip()
        return given or DEFAULT_NAME, family_name
    parts = display_name.split()
    name = parts[0] if parts else DEFAULT_NAME
    return name, family_name or " ".join(parts[1:])


def operation(tag: str):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ServiceError as e:
                logger.warning("[%s] %s (%s)", tag, e.message, e.status_code)
                raise
            except Exception as e:
                logger.exception("[%s] Error interno", tag)
                raise Unexpected() from e
        return wrapper
    return decorator


class AuthGateway:
    def __init__(self, identity: IdentityGateway, profiles: ProfileStore,
                 notifier: Notifier, tokens: TokenService):
        self.identity = identity
        self.profiles = profiles
        self.notifier = notifier
        self.tokens = tokens

    def _claim_profile(self, identity_id: str, email: str, display_name: Optional[str],
                       provider: str, family_name: Optional[str] = None) -> Profile:
        """Return the profile for ``identity_id``, creating it on first sign-in."""
        profile = self.profiles.get_by_id(identity_id)
        if profile is not None:
            return profile
        name, lastname = _names_from(display_name, family_name)
        logger.info("No profile for %s yet, creating one (%s)", identity_id, provider)
        return self.profiles.create(Profile(
            id=identity_id,
            name=name,
            lastname=lastname,
            email=email,
            age=DEFAULT_AGE,
            provider=provider,
        ))

    @operation("REGISTER")
    def register(self, payload: RegisterRequest) -> dict:
        email = normalize_email(payload.email)
        if not (payload.name and payload.lastname and email
                and payload.password and payload.confirmPassword) or payload.age is None:
            raise InvalidInput("Todos los campos son requeridos")
        _validate_email(email)
        if payload.password != payload.confirmPassword:
            raise InvalidInput("Las contraseñas no coinciden")
        age = coerce_age(payload.age)
        if age is None or age < MIN_AGE:
            raise InvalidInput("Debes tener al menos 18 años")

        try:
            uid = self.identity.create_account(
                email, payload.password, f"{payload.name} {payload.lastname}"
            )
        except DuplicateEmail:
            raise Conflict("El correo ya está registrado")
        except InvalidIdentityInput as e:
            logger.info("[REGISTER] Provider rejected input: %s", e)
            raise InvalidInput("Datos de registro inválidos")

        profile = self.profiles.create(Profile(
            id=uid,
            name=payload.name,
            lastname=payload.lastname,
            email=email,
            age=age,
            provider="email",
        ))
        token = self.tokens.issue_session(uid, email, ttl=REGISTER_SESSION_TTL)
        logger.info("[REGISTER] Account %s registered", uid)
        return {"message": "Usuario registrado exitosamente", "user": profile.to_public(), "token": token}

    @operation("LOGIN")
    def login(self, payload: LoginRequest) -> dict:
        email = normalize_email(payload.email)
        if not email or not payload.password:
            raise InvalidInput("Email y contraseña son requeridos")

        try:
            record = self.identity.verify_password(email, payload.password)
        except (IdentityNotFound, BadCredentials):
            raise Unauthenticated("Email o contraseña incorrectos")
        except MethodDisabled:
            raise Forbidden("Inicio de sesión por email/contraseña deshabilitado")
        except AccountDisabled:
            raise Forbidden("Cuenta deshabilitada")
        except CredentialsRejected:
            raise Unauthenticated("Credenciales inválidas")
        if record.disabled:
            raise Forbidden("Cuenta deshabilitada")

        token = self.tokens.issue_session(record.id, email, ttl=LOGIN_SESSION_TTL)
        profile = self._claim_profile(
            record.id, normalize_email(record.email) or email, record.display_name, "email"
        )
        logger.info("[LOGIN] Account %s signed in", record.id)
        return {"message": "Inicio de sesión exitoso", "token": token, "user": profile.to_public()}

    @operation("LOGIN_SOCIAL")
    def login_social(self, payload: SocialLoginRequest) -> dict:
        provider = (payload.provider or "").strip().lower()
        if not payload.idToken or not provider:
            raise InvalidInput("ID Token y proveedor son requeridos")

        try:
            external = self.identity.verify_external_token(payload.idToken)
        except InvalidExternalToken as e:
            logger.info("[LOGIN_SOCIAL] Rejected ID token: %s", e)
            raise Unauthenticated("Token de identidad inválido")

        email = normalize_email(external.email)
        profile = self._claim_profile(
            external.id,
            email or "",
            external.display_name,
            provider,
            family_name=external.family_name,
        )
        token = self.tokens.issue_session(external.id, email, ttl=LOGIN_SESSION_TTL)
        logger.info("[LOGIN_SOCIAL] Account %s signed in with %s", external.id, profile.provider)
        return {"message": "Inicio de sesión exitoso", "token": token, "user": profile.to_public()}

    @operation("PROFILE")
    def get_profile(self, session: SessionIdentity) -> dict:
        profile = self.profiles.get_by_id(session.user_id)
        if profile is None:
            raise NotFound("Usuario no encontrado")
        return {"user": profile.to_public()}

    @operation("UPDATE")
    def update_profile(self, session: SessionIdentity, payload: ProfileUpdateRequest) -> dict:
        changes = {}
        for field in ("name", "lastname"):
            value = getattr(payload, field)
            if value and value.strip():
                changes[field] = value.strip()

        email = normalize_email(payload.email)
        if email:
            _validate_email(email)
            changes["email"] = email

        if payload.age is not None and str(payload.age).strip():
            age = coerce_age(payload.age)
            if age is None or age < MIN_AGE:
                raise InvalidInput("Debes tener al menos 18 años")
            changes["age"] = age

        try:
            profile = self.profiles.update(session.user_id, changes)
        except ProfileNotFound:
            raise NotFound("Usuario no encontrado")
        return {"message": "Perfil actualizado exitosamente", "user": profile.to_public()}

    @operation("DELETE")
    def delete_me(self, session: SessionIdentity) -> dict:
        self.identity.set_disabled(session.user_id, True)
        self.profiles.delete(session.user_id)
        logger.info("[DELETE] Account %s disabled", session.user_id)
        return {"message": "Cuenta desactivada. Puedes crear una nueva."}

    @operation("FORGOT")
    def forgot_password(self, payload: ForgotPasswordRequest) -> dict:
        email = normalize_email(payload.email)
        if not email:
            raise InvalidInput("Email es requerido")

        reset_token = self.tokens.issue_reset_token(email, ttl=RESET_TOKEN_TTL)
        self.notifier.send_recovery(email, reset_token)
        return {"message": "Se ha enviado un email con instrucciones para restablecer tu contraseña"}

    @operation("RESET")
    def reset_password(self, payload: ResetPasswordRequest) -> dict:
        if not payload.token or not payload.newPassword:
            raise InvalidInput("Token y nueva contraseña son requeridos")

        try:
            claims = self.tokens.verify(payload.token, kind=RESET)
        except TokenError as e:
            logger.info("[RESET] Rejected reset token: %s", e)
            raise InvalidInput("Token inválido o expirado")

        try:
            record = self.identity.get_by_email(claims["email"])
        except IdentityNotFound:
            raise NotFound("Usuario no encontrado")

        try:
            self.identity.set_password(record.id, payload.newPassword)
        except InvalidIdentityInput:
            raise InvalidInput("La nueva contraseña no es válida")
        logger.info("[RESET] Password reset for %s", record.id)
        return {"message": "Contraseña restablecida exitosamente"}
