"""User service: registration, profile changes and cached lookups."""

import logging
from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.models.user import User
from src.schemas.auth import UserRegister, UserResponse
from src.schemas.user import ChangePasswordRequest, UserSearchResult, UserUpdate
from src.services.auth import get_password_hash, verify_password
from src.services.cache import DynamoDBCacheService, user_by_email_key, user_by_id_key
from src.services.exceptions import NotFoundError, ValidationError, store_errors

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


class UserService:
    """Service for user accounts.

    Lookups are cached under two keys (by id and by email) that are always
    written and invalidated together.
    """

    def __init__(
        self,
        db: Session,
        cache: DynamoDBCacheService,
        settings: Settings | None = None,
    ):
        self.db = db
        self.cache = cache
        self.settings = settings or get_settings()
        self.user_ttl = timedelta(minutes=self.settings.user_cache_ttl_minutes)

    def register(self, data: UserRegister) -> UserResponse:
        email = data.email.strip().lower()
        with store_errors(self.db, "register user"):
            if self.db.query(User.id).filter(User.email == email).first() is not None:
                raise ValidationError("Email already registered")
            user = User(
                email=email,
                password_hash=get_password_hash(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            response = UserResponse.model_validate(user)

        self._cache_user(response)
        logger.info(f"Registered user {user.id}")
        return response

    def get_by_id(self, user_id: int) -> UserResponse:
        cached = self.cache.get(user_by_id_key(user_id), UserResponse)
        if cached is not None:
            return cached

        with store_errors(self.db, "load user"):
            user = self.db.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            response = UserResponse.model_validate(user)

        self._cache_user(response)
        return response

    def get_by_email(self, email: str) -> UserResponse:
        email = email.strip().lower()
        cached = self.cache.get(user_by_email_key(email), UserResponse)
        if cached is not None:
            return cached

        with store_errors(self.db, "load user"):
            user = self.db.query(User).filter(User.email == email).first()
            if user is None:
                raise NotFoundError("User not found")
            response = UserResponse.model_validate(user)

        self._cache_user(response)
        return response

    def update_profile(self, user_id: int, data: UserUpdate) -> UserResponse:
        with store_errors(self.db, "update profile"):
            user = self._get(user_id)
            user.first_name = data.first_name
            user.last_name = data.last_name
            self.db.commit()
            self.db.refresh(user)
            response = UserResponse.model_validate(user)

        self._invalidate(user_id, response.email)
        self._cache_user(response)
        logger.info(f"User {user_id} updated their profile")
        return response

    def change_password(self, user_id: int, data: ChangePasswordRequest) -> None:
        with store_errors(self.db, "change password"):
            user = self._get(user_id)
            if not verify_password(data.current_password, user.password_hash):
                raise ValidationError("Current password is incorrect")
            user.password_hash = get_password_hash(data.new_password)
            self.db.commit()
            email = user.email

        self._invalidate(user_id, email)
        logger.info(f"User {user_id} changed their password")

    def search(self, email: str, exclude_user_id: int | None = None) -> list[UserSearchResult]:
        """Find users whose email contains ``email`` (case-insensitive)."""
        term = email.strip().lower()
        if not term:
            raise ValidationError("Email search term is required")

        with store_errors(self.db, "search users"):
            query = self.db.query(User).filter(
                func.lower(User.email).contains(term, autoescape=True)
            )
            if exclude_user_id is not None:
                query = query.filter(User.id != exclude_user_id)
            users = query.order_by(User.email).limit(SEARCH_LIMIT).all()
            return [UserSearchResult.model_validate(user) for user in users]

    def _get(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _cache_user(self, user: UserResponse) -> None:
        self.cache.set(user_by_id_key(user.id), user, self.user_ttl)
        self.cache.set(user_by_email_key(user.email), user, self.user_ttl)

    def _invalidate(self, user_id: int, email: str) -> None:
        self.cache.delete(user_by_id_key(user_id))
        self.cache.delete(user_by_email_key(email))
