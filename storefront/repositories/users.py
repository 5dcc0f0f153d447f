"""Identity repositories.

Two adapters share one contract and both return ``Identity`` records:
``MongoUserRepository`` (primary) and ``FileUserRepository`` (local JSON
fallback). ``CredentialStore`` is what the rest of the app talks to; it
hashes passwords and routes every call through a ``BackendSelector``.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from storefront.core.errors import AuthError, ConnectivityError, NotFound, UpstreamUnavailable, UserExists
from storefront.core.security import hash_password, verify_password
from storefront.db.fallback import JsonDocumentStore
from storefront.db.mongo import guarded, id_filter, ping
from storefront.models.schemas import Identity
from storefront.repositories.selector import BackendSelector

logger = logging.getLogger(__name__)

DEMO_ACCOUNTS = [
    {"id": "m-admin", "name": "Admin User", "email": "admin@local.test", "password": "admin123", "role": "admin"},
    {"id": "m-demo", "name": "Demo Customer", "email": "demo@local.test", "password": "demo123", "role": "user"},
]

PROFILE_FIELDS = ("name", "email", "address", "phone")


class UserRepository(ABC):

    @abstractmethod
    def lookup_by_email(self, email: str, with_secret: bool = False) -> Optional[Identity]: ...

    @abstractmethod
    def lookup_by_id(self, user_id: str) -> Optional[Identity]: ...

    @abstractmethod
    def create(self, name: str, email: str, password_hash: str, role: str = "user") -> Identity: ...

    @abstractmethod
    def update_profile(self, user_id: str, fields: Dict[str, Any]) -> Identity: ...

    @abstractmethod
    def count(self) -> int: ...

    def ping(self) -> bool:
        return True


class MongoUserRepository(UserRepository):

    def __init__(self, db: Database):
        self.collection = db["users"]
        self._db = db

    @staticmethod
    def _to_identity(doc: Dict[str, Any], with_secret: bool = False) -> Identity:
        return Identity(
            id=str(doc["_id"]),
            name=doc.get("name", ""),
            email=doc["email"],
            role=doc.get("role", "user"),
            address=doc.get("address"),
            phone=doc.get("phone"),
            createdAt=doc.get("createdAt"),
            passwordHash=doc.get("password") if with_secret else None,
        )

    @guarded
    def lookup_by_email(self, email, with_secret=False):
        doc = self.collection.find_one({"email": email.lower()})
        return self._to_identity(doc, with_secret) if doc else None

    @guarded
    def lookup_by_id(self, user_id):
        doc = self.collection.find_one(id_filter(user_id))
        return self._to_identity(doc) if doc else None

    @guarded
    def create(self, name, email, password_hash, role="user"):
        email = email.lower()
        if self.collection.find_one({"email": email}):
            raise UserExists()
        doc = {
            "name": name,
            "email": email,
            "password": password_hash,
            "role": role,
            "createdAt": datetime.now(timezone.utc),
        }
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise UserExists()
        doc["_id"] = result.inserted_id
        return self._to_identity(doc)

    @guarded
    def update_profile(self, user_id, fields):
        key = id_filter(user_id)
        if "email" in fields:
            fields["email"] = fields["email"].lower()
            if self.collection.find_one({"email": fields["email"], "_id": {"$ne": key["_id"]}}):
                raise UserExists()
        doc = self.collection.find_one_and_update(
            key, {"$set": fields}, return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise NotFound("User not found")
        return self._to_identity(doc)

    @guarded
    def count(self):
        return self.collection.count_documents({})

    @guarded
    def ensure_indexes(self):
        self.collection.create_index("email", unique=True)

    def ping(self):
        return ping(self._db)


class FileUserRepository(UserRepository):
    """Fallback identities kept in a local JSON file: ``{"users": [...]}``."""

    def __init__(self, store: JsonDocumentStore):
        self.store = store

    @staticmethod
    def _to_identity(record: Dict[str, Any], with_secret: bool = False) -> Identity:
        return Identity(
            id=record["id"],
            name=record.get("name", ""),
            email=record["email"],
            role=record.get("role", "user"),
            address=record.get("address"),
            phone=record.get("phone"),
            createdAt=record.get("createdAt"),
            passwordHash=record.get("password") if with_secret else None,
        )

    @staticmethod
    def _find(users, email: str):
        email = email.lower()
        return next((u for u in users if u["email"].lower() == email), None)

    def lookup_by_email(self, email, with_secret=False):
        record = self._find(self.store.read()["users"], email)
        return self._to_identity(record, with_secret) if record else None

    def lookup_by_id(self, user_id):
        record = next((u for u in self.store.read()["users"] if u["id"] == user_id), None)
        return self._to_identity(record) if record else None

    def create(self, name, email, password_hash, role="user", user_id=None):
        def insert(document):
            if self._find(document["users"], email):
                raise UserExists()
            record = {
                "id": user_id or f"m{uuid.uuid4().hex[:16]}",
                "name": name,
                "email": email.lower(),
                "password": password_hash,
                "role": role,
                "createdAt": datetime.now(timezone.utc).isoformat(),
            }
            document["users"].append(record)
            return record

        return self._to_identity(self.store.update(insert))

    def update_profile(self, user_id, fields):
        def apply(document):
            users = document["users"]
            record = next((u for u in users if u["id"] == user_id), None)
            if record is None:
                raise NotFound("User not found")
            if "email" in fields:
                fields["email"] = fields["email"].lower()
                other = self._find(users, fields["email"])
                if other and other["id"] != user_id:
                    raise UserExists()
            record.update(fields)
            return record

        return self._to_identity(self.store.update(apply))

    def count(self):
        return len(self.store.read()["users"])

    def bootstrap_defaults(self) -> int:
        """Seeds the demo accounts into an empty store. Returns how many were added."""
        def seed(document):
            if document["users"]:
                return 0
            now = datetime.now(timezone.utc).isoformat()
            for account in DEMO_ACCOUNTS:
                document["users"].append({
                    "id": account["id"],
                    "name": account["name"],
                    "email": account["email"],
                    "password": hash_password(account["password"]),
                    "role": account["role"],
                    "createdAt": now,
                })
            return len(DEMO_ACCOUNTS)

        added = self.store.update(seed)
        if added:
            logger.info("Fallback user store initialized with %d demo accounts", added)
        return added


class CredentialStore:

    def __init__(self, selector: BackendSelector):
        self.selector = selector

    def lookup_by_email(self, email: str) -> Optional[Identity]:
        return self.selector.run("lookup_by_email", email)

    def lookup_by_id(self, user_id: str) -> Optional[Identity]:
        return self.selector.run("lookup_by_id", user_id)

    def lookup_with_secret(self, email: str) -> Optional[Identity]:
        return self.selector.run("lookup_by_email", email, with_secret=True)

    def create(self, name: str, email: str, password: str) -> Identity:
        return self.selector.run("create", name, email, hash_password(password))

    @staticmethod
    def verify_secret(plain: str, hashed: Optional[str]) -> bool:
        return verify_password(plain, hashed)

    def authenticate(self, email: str, password: str) -> Identity:
        user = self.lookup_with_secret(email)
        if user is None or not self.verify_secret(password, user.passwordHash):
            raise AuthError("Invalid credentials")
        return user

    def update_profile(self, user_id: str, **fields) -> Identity:
        changes = {k: v for k, v in fields.items() if k in PROFILE_FIELDS and v is not None}
        if not changes:
            user = self.lookup_by_id(user_id)
            if user is None:
                raise NotFound("User not found")
            return user
        return self.selector.run("update_profile", user_id, changes)

    def initialize(self):
        """Startup hook: demo accounts in the fallback, email index on the primary."""
        try:
            self.selector.fallback.bootstrap_defaults()
        except UpstreamUnavailable as e:
            logger.error("Skipping demo account bootstrap: %s", e.message)
        try:
            self.selector.primary.ensure_indexes()
        except ConnectivityError as e:
            logger.warning("Skipping user index setup, primary unreachable: %s", e)
