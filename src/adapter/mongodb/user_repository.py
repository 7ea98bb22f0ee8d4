"""MongoDB implementation of UserRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from adapter.mongodb import USERS_COLLECTION_NAME
from domain.model.user import AuthProvider, Preferences, User

logger = getLogger(__name__)

_PROFILE_FIELDS = {'name', 'email', 'avatar', 'date_of_birth'}


class MongoUserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(self.collection, [('email', 1)], 'idx_users_email', unique=True)
            create_index_safe(self.collection, [('google_id', 1)], 'idx_users_google_id', unique=True, sparse=True)
            create_index_safe(self.collection, [('reset_password_token', 1)], 'idx_users_reset_token', sparse=True)
            create_index_safe(self.collection, [('created_at', -1)], 'idx_users_created_at')
            return True
        except Exception as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            name=doc['name'],
            email=doc['email'],
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            provider=AuthProvider(doc.get('provider', 'local')),
            password_hash=doc.get('password_hash'),
            google_id=doc.get('google_id'),
            avatar=doc.get('avatar'),
            date_of_birth=doc.get('date_of_birth'),
            preferences=Preferences.from_dict(doc.get('preferences')),
            is_email_verified=doc.get('is_email_verified', False),
            reset_password_token=doc.get('reset_password_token'),
            reset_password_expire=doc.get('reset_password_expire'),
            last_login=doc.get('last_login'),
        )

    # ── write operations ─────────────────────────────────────

    def create(
        self,
        email: str,
        name: str,
        password_hash: str | None = None,
        provider: str = 'local',
        google_id: str | None = None,
        avatar: str | None = None,
        is_email_verified: bool = False,
    ) -> User | None:
        """Create a new user and return the User object."""
        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        user_doc = {
            '_id': user_id,
            'email': email,
            'name': name,
            'created_at': now,
            'updated_at': now,
            'provider': provider,
            'is_email_verified': is_email_verified,
            'preferences': Preferences().to_dict(),
        }
        # Absent rather than null so the sparse google_id index stays usable
        if password_hash is not None:
            user_doc['password_hash'] = password_hash
        if google_id is not None:
            user_doc['google_id'] = google_id
        if avatar is not None:
            user_doc['avatar'] = avatar

        try:
            self.collection.insert_one(user_doc)
        except DuplicateKeyError:
            logger.warning("User creation failed: email or Google id already exists", extra={"email": email})
            return None

        logger.info("User created", extra={"userId": user_id, "email": email, "provider": provider})
        return self._to_domain(user_doc)

    def update_last_login(self, user_id: str) -> bool:
        try:
            now = datetime.now(timezone.utc)
            result = self.collection.update_one(
                {'_id': user_id},
                {'$set': {'last_login': now, 'updated_at': now}}
            )
            return result.modified_count > 0
        except PyMongoError as e:
            logger.error("Failed to update last_login", extra={"userId": user_id, "error": str(e)})
            return False

    def set_password(self, user_id: str, password_hash: str) -> User | None:
        doc = self.collection.find_one_and_update(
            {'_id': user_id},
            {
                '$set': {'password_hash': password_hash, 'updated_at': datetime.now(timezone.utc)},
                '$unset': {'reset_password_token': '', 'reset_password_expire': ''},
            },
            return_document=ReturnDocument.AFTER,
        )
        return self._to_domain(doc) if doc else None

    def set_reset_token(self, user_id: str, token_hash: str, expires_at: datetime) -> bool:
        result = self.collection.update_one(
            {'_id': user_id},
            {'$set': {
                'reset_password_token': token_hash,
                'reset_password_expire': expires_at,
                'updated_at': datetime.now(timezone.utc),
            }}
        )
        return result.matched_count > 0

    def clear_reset_token(self, user_id: str) -> bool:
        result = self.collection.update_one(
            {'_id': user_id},
            {
                '$unset': {'reset_password_token': '', 'reset_password_expire': ''},
                '$set': {'updated_at': datetime.now(timezone.utc)},
            }
        )
        return result.matched_count > 0

    def consume_reset_token(self, token_hash: str, now: datetime, password_hash: str) -> User | None:
        # Match and clear in one update; a secret is consumed at most once
        doc = self.collection.find_one_and_update(
            {'reset_password_token': token_hash, 'reset_password_expire': {'$gt': now}},
            {
                '$set': {'password_hash': password_hash, 'updated_at': now},
                '$unset': {'reset_password_token': '', 'reset_password_expire': ''},
            },
            return_document=ReturnDocument.AFTER,
        )
        return self._to_domain(doc) if doc else None

    def update_google_identity(
        self,
        user_id: str,
        google_id: str,
        avatar: str | None,
        is_email_verified: bool = True,
    ) -> User | None:
        update: dict = {
            '$set': {
                'google_id': google_id,
                'is_email_verified': is_email_verified,
                'updated_at': datetime.now(timezone.utc),
            }
        }
        if avatar is None:
            update['$unset'] = {'avatar': ''}
        else:
            update['$set']['avatar'] = avatar

        doc = self.collection.find_one_and_update(
            {'_id': user_id}, update, return_document=ReturnDocument.AFTER,
        )
        return self._to_domain(doc) if doc else None

    def update_fields(self, user_id: str, fields: dict) -> User | None:
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported profile fields: {sorted(unknown)}")

        to_set = {k: v for k, v in fields.items() if v is not None}
        to_unset = {k: '' for k, v in fields.items() if v is None}
        to_set['updated_at'] = datetime.now(timezone.utc)
        update: dict = {'$set': to_set}
        if to_unset:
            update['$unset'] = to_unset

        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id}, update, return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            logger.warning("Profile update rejected: email already exists", extra={"userId": user_id})
            return None
        return self._to_domain(doc) if doc else None

    def update_preferences(self, user_id: str, preferences: Preferences) -> User | None:
        doc = self.collection.find_one_and_update(
            {'_id': user_id},
            {'$set': {'preferences': preferences.to_dict(), 'updated_at': datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_domain(doc) if doc else None

    def delete(self, user_id: str) -> bool:
        result = self.collection.delete_one({'_id': user_id})
        if result.deleted_count:
            logger.info("User deleted", extra={"userId": user_id})
        return result.deleted_count > 0

    # ── read operations ──────────────────────────────────────
    # Driver errors propagate; None always means "no such user"

    def get_by_email(self, email: str) -> User | None:
        """Find a user by email. Return User or None if not found."""
        doc = self.collection.find_one({'email': email})
        return self._to_domain(doc) if doc else None

    def get_by_id(self, user_id: str) -> User | None:
        doc = self.collection.find_one({'_id': user_id})
        return self._to_domain(doc) if doc else None

    def get_by_google_id(self, google_id: str) -> User | None:
        doc = self.collection.find_one({'google_id': google_id})
        return self._to_domain(doc) if doc else None
