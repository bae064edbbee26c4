import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_documents
from errors import ProfileNotFound
from schemas import Profile

logger = logging.getLogger(__name__)

COLLECTION = "profile"
MUTABLE_FIELDS = ("name", "lastname", "email", "age")


class ProfileStore(ABC):
    """CRUD over Profile records keyed by identity id."""

    @abstractmethod
    def create(self, profile: Profile) -> Profile:
        """Store a new profile; if one already exists for the id, return it."""

    @abstractmethod
    def get_by_id(self, profile_id: str) -> Optional[Profile]: ...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Profile]: ...

    @abstractmethod
    def update(self, profile_id: str, changes: Dict[str, Any]) -> Profile:
        """Apply ``changes`` (a subset of MUTABLE_FIELDS); raises ProfileNotFound."""

    @abstractmethod
    def delete(self, profile_id: str) -> None: ...


def _from_document(doc: Dict[str, Any]) -> Profile:
    return Profile(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        lastname=doc.get("lastname", ""),
        email=doc.get("email", ""),
        age=doc.get("age", 0),
        provider=doc.get("provider", "email"),
    )


class MongoProfileStore(ProfileStore):
    def __init__(self, db: Database):
        self.db = db

    @property
    def collection(self):
        return self.db[COLLECTION]

    def create(self, profile: Profile) -> Profile:
        doc = profile.model_dump(exclude={"id"})
        doc["_id"] = profile.id
        try:
            create_document(self.db, COLLECTION, doc)
        except DuplicateKeyError:
            # a concurrent first sign-in claimed this id first
            existing = self.get_by_id(profile.id)
            if existing is None:
                raise
            logger.info("Profile %s already exists, keeping stored record", profile.id)
            return existing
        logger.info("Profile %s created", profile.id)
        return profile

    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        doc = self.collection.find_one({"_id": profile_id})
        return _from_document(doc) if doc else None

    def get_by_email(self, email: str) -> Optional[Profile]:
        docs = get_documents(self.db, COLLECTION, {"email": email}, limit=1)
        return _from_document(docs[0]) if docs else None

    def update(self, profile_id: str, changes: Dict[str, Any]) -> Profile:
        fields = {k: v for k, v in changes.items() if k in MUTABLE_FIELDS}
        if not fields:
            current = self.get_by_id(profile_id)
            if current is None:
                raise ProfileNotFound(profile_id)
            return current

        doc = self.collection.find_one_and_update(
            {"_id": profile_id},
            {"$set": dict(fields, updated_at=datetime.now(timezone.utc))},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise ProfileNotFound(profile_id)
        logger.info("Profile %s updated (%s)", profile_id, ", ".join(sorted(fields)))
        return _from_document(doc)

    def delete(self, profile_id: str) -> None:
        self.collection.delete_one({"_id": profile_id})
        logger.info("Profile %s deleted", profile_id)
