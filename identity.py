"""
Identity provider gateway.

Two trust boundaries live here: password checks are a network round trip to
the provider's REST endpoint (the provider owns the credential), while social
sign-in verifies an ID token the provider already signed, locally through the
admin SDK.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import firebase_admin
import requests
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from config import Settings
from errors import (
    AccountDisabled,
    BadCredentials,
    CredentialsRejected,
    DuplicateEmail,
    IdentityNotFound,
    InvalidExternalToken,
    InvalidIdentityInput,
    MethodDisabled,
)

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"


@dataclass
class IdentityRecord:
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    disabled: bool = False


@dataclass
class ExternalIdentity:
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    family_name: Optional[str] = None


class IdentityGateway(ABC):
    @abstractmethod
    def create_account(self, email: str, password: str, display_name: str) -> str:
        """Create an account and return its id."""

    @abstractmethod
    def verify_password(self, email: str, password: str) -> IdentityRecord: ...

    @abstractmethod
    def verify_external_token(self, token: str) -> ExternalIdentity: ...

    @abstractmethod
    def get_by_email(self, email: str) -> IdentityRecord: ...

    @abstractmethod
    def set_disabled(self, identity_id: str, disabled: bool = True) -> None: ...

    @abstractmethod
    def set_password(self, identity_id: str, new_password: str) -> None: ...


# Error codes returned by accounts:signInWithPassword
_SIGN_IN_ERRORS = {
    "EMAIL_NOT_FOUND": IdentityNotFound,
    "INVALID_PASSWORD": BadCredentials,
    "INVALID_LOGIN_CREDENTIALS": BadCredentials,
    "OPERATION_NOT_ALLOWED": MethodDisabled,
    "USER_DISABLED": AccountDisabled,
}


def _sign_in_error_code(response: requests.Response) -> str:
    try:
        message = response.json().get("error", {}).get("message") or "AUTH_ERROR"
    except ValueError:
        return "AUTH_ERROR"
    # e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account ..."
    return message.split(" : ")[0].strip()


def _to_record(user) -> IdentityRecord:
    return IdentityRecord(
        id=user.uid,
        email=user.email,
        display_name=user.display_name,
        disabled=bool(user.disabled),
    )


def build_firebase_app(settings: Settings) -> firebase_admin.App:
    if not settings.identity_configured:
        raise ValueError("FIREBASE_PROJECT_ID and FIREBASE_SERVICE_ACCOUNT_KEY are required")
    service_account = json.loads(settings.firebase_service_account_key)
    cred = credentials.Certificate(service_account)
    app = firebase_admin.initialize_app(
        cred, {"projectId": settings.firebase_project_id}, name="realtime-auth"
    )
    logger.info("Firebase app initialized for project %s", settings.firebase_project_id)
    return app


class FirebaseIdentityGateway(IdentityGateway):
    def __init__(self, app: firebase_admin.App, api_key: Optional[str],
                 session: Optional[requests.Session] = None, timeout: float = 10):
        self.app = app
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def create_account(self, email: str, password: str, display_name: str) -> str:
        try:
            user = firebase_auth.create_user(
                email=email, password=password, display_name=display_name, app=self.app
            )
        except firebase_auth.EmailAlreadyExistsError as e:
            raise DuplicateEmail(email) from e
        except ValueError as e:
            raise InvalidIdentityInput(str(e)) from e
        return user.uid

    def verify_password(self, email: str, password: str) -> IdentityRecord:
        if not self.api_key:
            raise RuntimeError("FIREBASE_API_KEY is not configured")
        res = self.session.post(
            SIGN_IN_URL,
            params={"key": self.api_key},
            json={"email": email, "password": password, "returnSecureToken": True},
            timeout=self.timeout,
        )
        if not res.ok:
            code = _sign_in_error_code(res)
            logger.warning("Password sign-in rejected by provider: %s", code)
            raise _SIGN_IN_ERRORS.get(code, CredentialsRejected)(code)

        uid = res.json()["localId"]
        return _to_record(firebase_auth.get_user(uid, app=self.app))

    def verify_external_token(self, token: str) -> ExternalIdentity:
        try:
            claims = firebase_auth.verify_id_token(token, app=self.app)
        except (firebase_auth.InvalidIdTokenError, ValueError) as e:
            raise InvalidExternalToken(str(e)) from e
        return ExternalIdentity(
            id=claims["uid"],
            email=claims.get("email"),
            display_name=claims.get("name"),
            family_name=claims.get("family_name"),
        )

    def get_by_email(self, email: str) -> IdentityRecord:
        try:
            user = firebase_auth.get_user_by_email(email, app=self.app)
        except firebase_auth.UserNotFoundError as e:
            raise IdentityNotFound(email) from e
        return _to_record(user)

    def set_disabled(self, identity_id: str, disabled: bool = True) -> None:
        try:
            firebase_auth.update_user(identity_id, disabled=disabled, app=self.app)
        except firebase_auth.UserNotFoundError as e:
            raise IdentityNotFound(identity_id) from e

    def set_password(self, identity_id: str, new_password: str) -> None:
        try:
            firebase_auth.update_user(identity_id, password=new_password, app=self.app)
        except firebase_auth.UserNotFoundError as e:
            raise IdentityNotFound(identity_id) from e
        except ValueError as e:
            raise InvalidIdentityInput(str(e)) from e
