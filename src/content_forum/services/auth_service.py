"""
# Authentication Service

Local account authentication for authors, moderators and administrators.

## Tokens

- **Access token**: HS256 JWT signed with `SECRET_KEY`, carrying `sub` (user id), `email`
  and `role`, valid for `ACCESS_TOKEN_EXPIRE_MINUTES`.
- **Refresh token**: 128 hex characters from `secrets.token_hex(64)`, stored in
  `refresh_tokens` with a TTL on `expires_at`. Refreshing rotates it: the presented token is
  revoked and a new pair is issued.

## Passwords

Hashed with `bcrypt` using `BCRYPT_ROUNDS`. The hash never leaves this module.

A forgotten password is replaced with a reset token: 64 hex characters stored on the user
with an expiry of `PASSWORD_RESET_EXPIRE_MINUTES`. Resetting clears the token and revokes
every refresh token, the same as a password change.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt
from pymongo.errors import DuplicateKeyError

from content_forum.config import settings
from content_forum.database import db_manager
from content_forum.errors import ConflictError, UnauthorizedError, ValidationError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.user_models import (
    ActivityType,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserRole,
    UserStatus,
)
from content_forum.services.activity_service import ActivityService
from content_forum.utils.documents import clean_document
from content_forum.utils.identifiers import is_valid_id, new_id

logger = get_logger(prefix="[Auth Service]")

INVALID_CREDENTIALS = "Invalid credentials"
HIDDEN_FIELDS = ("hashed_password", "avatar_public_id", "reset_password_token", "reset_password_expires")


def hash_password(password: str) -> str:
    rounds = settings.BCRYPT_ROUNDS
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def _secret_key() -> str:
    return settings.SECRET_KEY.get_secret_value()


def create_access_token(user: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": user["user_id"],
        "email": user["email"],
        "role": user.get("role", UserRole.USER.value),
        "exp": expire,
    }
    return jwt.encode(payload, _secret_key(), algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify an access token.

    Raises:
        UnauthorizedError: If the signature, expiry or subject is invalid.
    """
    try:
        payload = jwt.decode(token, _secret_key(), algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise UnauthorizedError("Could not validate credentials") from e
    if not is_valid_id(payload.get("sub"), "user"):
        raise UnauthorizedError("Could not validate credentials")
    return payload


class AuthService:
    """Registration, login, token rotation, password changes and resets."""

    def __init__(self, db=None, activity_service: Optional[ActivityService] = None):
        self.db = db if db is not None else db_manager
        self.activity_service = activity_service or ActivityService(self.db)

    @property
    def users(self):
        return self.db.get_collection("users")

    @property
    def refresh_tokens(self):
        return self.db.get_collection("refresh_tokens")

    async def _issue_tokens(
        self, user: Dict[str, Any], user_agent: Optional[str] = None, ip_address: Optional[str] = None
    ) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        refresh_token = secrets.token_hex(64)
        await self.refresh_tokens.insert_one(
            {
                "token": refresh_token,
                "user_id": user["user_id"],
                "expires_at": now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
                "is_revoked": False,
                "user_agent": user_agent,
                "ip_address": ip_address,
                "created_at": now,
            }
        )
        return {
            "access_token": create_access_token(user),
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": clean_document(user, *HIDDEN_FIELDS),
        }

    async def register(
        self, data: RegisterRequest, user_agent: Optional[str] = None, ip_address: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a local account and log it in.

        Raises:
            ConflictError: If the email or username is already registered.
        """
        if await self.users.find_one({"email": data.email}):
            raise ConflictError("Email already registered", details={"field": "email"})
        if await self.users.find_one({"username": data.username}):
            raise ConflictError("Username already taken", details={"field": "username"})

        now = datetime.now(timezone.utc)
        user = {
            "user_id": new_id("user"),
            "username": data.username,
            "email": data.email,
            "hashed_password": hash_password(data.password),
            "first_name": data.first_name,
            "last_name": data.last_name,
            "display_name": data.display_name or data.username,
            "avatar": None,
            "bio": None,
            "website": None,
            "location": None,
            "role": UserRole.USER.value,
            "status": UserStatus.ACTIVE.value,
            "post_count": 0,
            "comment_count": 0,
            "follower_count": 0,
            "following_count": 0,
            "like_count": 0,
            "last_login_at": None,
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self.users.insert_one(user)
        except DuplicateKeyError as e:
            raise ConflictError("Email or username already registered") from e

        await self.activity_service.log(user["user_id"], ActivityType.REGISTER, "Account created")
        logger.info("Registered user %s (%s)", user["user_id"], user["username"])
        return await self._issue_tokens(user, user_agent, ip_address)

    async def login(
        self, data: LoginRequest, user_agent: Optional[str] = None, ip_address: Optional[str] = None
    ) -> Dict[str, Any]:
        user = await self.users.find_one({"email": data.email})
        if not user or not verify_password(data.password, user.get("hashed_password", "")):
            logger.info("Failed login attempt for %s from %s", data.email, ip_address)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if user.get("status") != UserStatus.ACTIVE.value:
            raise UnauthorizedError("Account is inactive or banned")

        now = datetime.now(timezone.utc)
        await self.users.update_one({"user_id": user["user_id"]}, {"$set": {"last_login_at": now}})
        user["last_login_at"] = now

        await self.activity_service.log(
            user["user_id"], ActivityType.LOGIN, "Logged in", {"ip_address": ip_address, "user_agent": user_agent}
        )
        logger.info("User %s logged in", user["user_id"])
        return await self._issue_tokens(user, user_agent, ip_address)

    async def refresh(self, refresh_token: str, user_agent: Optional[str] = None, ip_address: Optional[str] = None) -> Dict[str, Any]:
        """Exchange a refresh token for a new token pair, revoking the presented one."""
        now = datetime.now(timezone.utc)
        stored = await self.refresh_tokens.find_one({"token": refresh_token, "is_revoked": False})
        if not stored or _as_aware(stored["expires_at"]) <= now:
            raise UnauthorizedError("Invalid or expired refresh token")

        user = await self.users.find_one({"user_id": stored["user_id"]})
        if not user or user.get("status") != UserStatus.ACTIVE.value:
            raise UnauthorizedError("Invalid or expired refresh token")

        await self.refresh_tokens.update_one({"token": refresh_token}, {"$set": {"is_revoked": True}})
        return await self._issue_tokens(user, user_agent, ip_address)

    async def logout(self, refresh_token: str, user_id: str) -> None:
        await self.refresh_tokens.update_one(
            {"token": refresh_token, "user_id": user_id}, {"$set": {"is_revoked": True}}
        )
        await self.activity_service.log(user_id, ActivityType.LOGOUT, "Logged out")

    async def change_password(self, user_id: str, data: ChangePasswordRequest) -> None:
        """
        Replace the password and revoke every refresh token of the user.

        Raises:
            UnauthorizedError: If the current password does not match.
            ValidationError: If the new password equals the current one.
        """
        user = await self.users.find_one({"user_id": user_id})
        if not user or not verify_password(data.current_password, user.get("hashed_password", "")):
            raise UnauthorizedError("Current password is incorrect")
        if data.current_password == data.new_password:
            raise ValidationError("New password must differ from the current password")

        await self.users.update_one(
            {"user_id": user_id},
            {"$set": {"hashed_password": hash_password(data.new_password), "updated_at": datetime.now(timezone.utc)}},
        )
        await self.refresh_tokens.update_many({"user_id": user_id}, {"$set": {"is_revoked": True}})
        logger.info("Password changed for user %s", user_id)

    async def forgot_password(self, data: ForgotPasswordRequest) -> None:
        """
        Issue a single-use password reset token for the account registered to `data.email`.

        Unknown emails return silently, the same as known ones.
        """
        user = await self.users.find_one({"email": data.email})
        if not user:
            logger.info("Password reset requested for unknown email")
            return

        expires = datetime.now(timezone.utc) + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        await self.users.update_one(
            {"user_id": user["user_id"]},
            {"$set": {"reset_password_token": secrets.token_hex(32), "reset_password_expires": expires}},
        )
        # TODO: deliver the reset token to the user's email once an outbound mail client exists.
        logger.info("Password reset token issued for user %s", user["user_id"])

    async def reset_password(self, data: ResetPasswordRequest) -> None:
        """
        Set a new password from a reset token, then clear the token and revoke every refresh token.

        Raises:
            ValidationError: If the token is unknown or expired.
        """
        user = await self.users.find_one(
            {"reset_password_token": data.token, "reset_password_expires": {"$gt": datetime.now(timezone.utc)}}
        )
        if not user:
            raise ValidationError("Invalid or expired reset token")

        await self.users.update_one(
            {"user_id": user["user_id"]},
            {
                "$set": {"hashed_password": hash_password(data.new_password), "updated_at": datetime.now(timezone.utc)},
                "$unset": {"reset_password_token": "", "reset_password_expires": ""},
            },
        )
        await self.refresh_tokens.update_many({"user_id": user["user_id"]}, {"$set": {"is_revoked": True}})
        await self.activity_service.log(user["user_id"], ActivityType.PASSWORD_RESET, "Password reset")
        logger.info("Password reset for user %s", user["user_id"])

    async def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve an access token into the active user it was issued to."""
        payload = decode_access_token(token)
        user = await self.users.find_one({"user_id": payload["sub"]})
        if not user:
            raise UnauthorizedError("Could not validate credentials")
        if user.get("status") != UserStatus.ACTIVE.value:
            raise UnauthorizedError("Account is inactive or banned")
        return clean_document(user, *HIDDEN_FIELDS)


def _as_aware(value: datetime) -> datetime:
    # Motor returns naive UTC datetimes unless the client is tz_aware.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
