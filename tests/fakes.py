"""In-memory stand-ins for the identity, profile and notification adapters."""

import itertools
from typing import Dict, List, Optional, Tuple

from errors import (
    AccountDisabled,
    BadCredentials,
    DeliveryFailed,
    DuplicateEmail,
    IdentityNotFound,
    InvalidExternalToken,
    InvalidIdentityInput,
    ProfileNotFound,
)
from identity import ExternalIdentity, IdentityGateway, IdentityRecord
from notifications import Notifier
from profiles import MUTABLE_FIELDS, ProfileStore
from schemas import Profile


class FakeIdentityGateway(IdentityGateway):
    def __init__(self):
        self.accounts: Dict[str, dict] = {}
        self.external_tokens: Dict[str, ExternalIdentity] = {}
        self._ids = itertools.count(1)

    def add_account(self, email, password, display_name="", disabled=False) -> str:
        uid = f"uid-{next(self._ids)}"
        self.accounts[uid] = {
            "email": email,
            "password": password,
            "display_name": display_name,
            "disabled": disabled,
        }
        return uid

    def _find(self, email) -> Optional[Tuple[str, dict]]:
        for uid, account in self.accounts.items():
            if account["email"] == email:
                return uid, account
        return None

    def create_account(self, email, password, display_name):
        if self._find(email):
            raise DuplicateEmail(email)
        if len(password) < 6:
            raise InvalidIdentityInput("password too short")
        return self.add_account(email, password, display_name)

    def verify_password(self, email, password):
        found = self._find(email)
        if not found:
            raise IdentityNotFound(email)
        uid, account = found
        if account["password"] != password:
            raise BadCredentials("INVALID_PASSWORD")
        if account["disabled"]:
            raise AccountDisabled("USER_DISABLED")
        return IdentityRecord(uid, account["email"], account["display_name"], account["disabled"])

    def verify_external_token(self, token):
        try:
            return self.external_tokens[token]
        except KeyError:
            raise InvalidExternalToken(token)

    def get_by_email(self, email):
        found = self._find(email)
        if not found:
            raise IdentityNotFound(email)
        uid, account = found
        return IdentityRecord(uid, account["email"], account["display_name"], account["disabled"])

    def set_disabled(self, identity_id, disabled=True):
        if identity_id not in self.accounts:
            raise IdentityNotFound(identity_id)
        self.accounts[identity_id]["disabled"] = disabled

    def set_password(self, identity_id, new_password):
        if len(new_password) < 6:
            raise InvalidIdentityInput("password too short")
        self.accounts[identity_id]["password"] = new_password


class InMemoryProfileStore(ProfileStore):
    def __init__(self):
        self.records: Dict[str, Profile] = {}

    def create(self, profile):
        return self.records.setdefault(profile.id, profile)

    def get_by_id(self, profile_id):
        return self.records.get(profile_id)

    def get_by_email(self, email):
        return next((p for p in self.records.values() if p.email == email), None)

    def update(self, profile_id, changes):
        if profile_id not in self.records:
            raise ProfileNotFound(profile_id)
        fields = {k: v for k, v in changes.items() if k in MUTABLE_FIELDS}
        self.records[profile_id] = self.records[profile_id].model_copy(update=fields)
        return self.records[profile_id]

    def delete(self, profile_id):
        self.records.pop(profile_id, None)


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.sent: List[Tuple[str, str]] = []
        self.fail = fail

    def send_recovery(self, email, reset_token):
        if self.fail:
            raise DeliveryFailed("Error al enviar email", status=401, body={"code": "unauthorized"})
        self.sent.append((email, reset_token))
