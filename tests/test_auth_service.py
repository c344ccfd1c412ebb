from datetime import datetime, timedelta, timezone

import pytest

from content_forum.errors import ConflictError, UnauthorizedError, ValidationError
from content_forum.models.user_models import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from content_forum.services.auth_service import create_access_token, decode_access_token


def registration(**overrides):
    data = {"username": "writer", "email": "Writer@Example.com", "password": "s3cret-pass"}
    data.update(overrides)
    return RegisterRequest(**data)


@pytest.mark.asyncio
async def test_register_issues_tokens_and_hides_hash(services, db):
    result = await services.auth.register(registration())

    assert result["token_type"] == "bearer"
    assert len(result["refresh_token"]) == 128
    assert result["user"]["email"] == "writer@example.com"
    assert result["user"]["role"] == "user"
    assert "hashed_password" not in result["user"]

    stored = db["users"].docs[0]
    assert stored["hashed_password"] != "s3cret-pass"
    assert decode_access_token(result["access_token"])["sub"] == stored["user_id"]
    assert [a["type"] for a in db["user_activities"].docs] == ["register"]


@pytest.mark.asyncio
async def test_register_rejects_duplicates(services):
    await services.auth.register(registration())

    with pytest.raises(ConflictError) as exc_info:
        await services.auth.register(registration(username="other"))
    assert exc_info.value.message == "Email already registered"

    with pytest.raises(ConflictError) as exc_info:
        await services.auth.register(registration(email="other@example.com"))
    assert exc_info.value.message == "Username already taken"


@pytest.mark.asyncio
async def test_login(services, db):
    await services.auth.register(registration())

    result = await services.auth.login(LoginRequest(email="WRITER@example.com", password="s3cret-pass"), ip_address="1.2.3.4")

    assert result["user"]["username"] == "writer"
    assert db["users"].docs[0]["last_login_at"] is not None

    with pytest.raises(UnauthorizedError) as exc_info:
        await services.auth.login(LoginRequest(email="writer@example.com", password="wrong-pass"))
    assert exc_info.value.message == "Invalid credentials"

    with pytest.raises(UnauthorizedError) as exc_info:
        await services.auth.login(LoginRequest(email="nobody@example.com", password="s3cret-pass"))
    assert exc_info.value.message == "Invalid credentials"


@pytest.mark.asyncio
async def test_banned_user_cannot_login(services, db):
    await services.auth.register(registration())
    db["users"].docs[0]["status"] = "banned"

    with pytest.raises(UnauthorizedError) as exc_info:
        await services.auth.login(LoginRequest(email="writer@example.com", password="s3cret-pass"))
    assert exc_info.value.message == "Account is inactive or banned"


@pytest.mark.asyncio
async def test_refresh_rotates_token(services):
    issued = await services.auth.register(registration())

    rotated = await services.auth.refresh(issued["refresh_token"])
    assert rotated["refresh_token"] != issued["refresh_token"]

    with pytest.raises(UnauthorizedError) as exc_info:
        await services.auth.refresh(issued["refresh_token"])
    assert exc_info.value.message == "Invalid or expired refresh token"


@pytest.mark.asyncio
async def test_expired_refresh_token_is_rejected(services, db):
    issued = await services.auth.register(registration())
    stored = db["refresh_tokens"].docs[0]
    stored["expires_at"] = stored["created_at"] - timedelta(seconds=1)

    with pytest.raises(UnauthorizedError):
        await services.auth.refresh(issued["refresh_token"])


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(services, db):
    issued = await services.auth.register(registration())
    user_id = issued["user"]["user_id"]

    await services.auth.logout(issued["refresh_token"], user_id)

    assert db["refresh_tokens"].docs[0]["is_revoked"] is True
    with pytest.raises(UnauthorizedError):
        await services.auth.refresh(issued["refresh_token"])


@pytest.mark.asyncio
async def test_change_password_revokes_all_sessions(services, db):
    issued = await services.auth.register(registration())
    await services.auth.login(LoginRequest(email="writer@example.com", password="s3cret-pass"))
    user_id = issued["user"]["user_id"]

    with pytest.raises(UnauthorizedError) as exc_info:
        await services.auth.change_password(user_id, ChangePasswordRequest(current_password="nope", new_password="another-pass"))
    assert exc_info.value.message == "Current password is incorrect"

    with pytest.raises(ValidationError):
        await services.auth.change_password(
            user_id, ChangePasswordRequest(current_password="s3cret-pass", new_password="s3cret-pass")
        )

    await services.auth.change_password(
        user_id, ChangePasswordRequest(current_password="s3cret-pass", new_password="another-pass")
    )

    assert all(t["is_revoked"] for t in db["refresh_tokens"].docs)
    result = await services.auth.login(LoginRequest(email="writer@example.com", password="another-pass"))
    assert result["user"]["user_id"] == user_id


@pytest.mark.asyncio
async def test_forgot_password_stores_short_lived_token(services, db):
    await services.auth.register(registration())

    await services.auth.forgot_password(ForgotPasswordRequest(email="WRITER@example.com"))

    stored = db["users"].docs[0]
    assert len(stored["reset_password_token"]) == 64
    remaining = stored["reset_password_expires"] - datetime.now(timezone.utc)
    assert timedelta(minutes=9) < remaining <= timedelta(minutes=10)


@pytest.mark.asyncio
async def test_forgot_password_for_unknown_email_is_silent(services, db):
    await services.auth.register(registration())

    await services.auth.forgot_password(ForgotPasswordRequest(email="nobody@example.com"))

    assert "reset_password_token" not in db["users"].docs[0]


@pytest.mark.asyncio
async def test_reset_password_replaces_hash_and_revokes_sessions(services, db):
    issued = await services.auth.register(registration())
    await services.auth.forgot_password(ForgotPasswordRequest(email="writer@example.com"))
    token = db["users"].docs[0]["reset_password_token"]

    await services.auth.reset_password(ResetPasswordRequest(token=token, new_password="brand-new-pass"))

    stored = db["users"].docs[0]
    assert "reset_password_token" not in stored
    assert "reset_password_expires" not in stored
    assert all(t["is_revoked"] for t in db["refresh_tokens"].docs)
    assert db["user_activities"].docs[-1]["type"] == "password_reset"
    with pytest.raises(UnauthorizedError):
        await services.auth.refresh(issued["refresh_token"])
    with pytest.raises(UnauthorizedError):
        await services.auth.login(LoginRequest(email="writer@example.com", password="s3cret-pass"))
    result = await services.auth.login(LoginRequest(email="writer@example.com", password="brand-new-pass"))
    assert "reset_password_token" not in result["user"]

    with pytest.raises(ValidationError) as exc_info:
        await services.auth.reset_password(ResetPasswordRequest(token=token, new_password="third-pass"))
    assert exc_info.value.message == "Invalid or expired reset token"


@pytest.mark.asyncio
async def test_reset_password_rejects_expired_token(services, db):
    await services.auth.register(registration())
    await services.auth.forgot_password(ForgotPasswordRequest(email="writer@example.com"))
    stored = db["users"].docs[0]
    stored["reset_password_expires"] = datetime.now(timezone.utc) - timedelta(seconds=1)

    with pytest.raises(ValidationError):
        await services.auth.reset_password(
            ResetPasswordRequest(token=stored["reset_password_token"], new_password="brand-new-pass")
        )

    result = await services.auth.login(LoginRequest(email="writer@example.com", password="s3cret-pass"))
    assert result["user"]["username"] == "writer"


@pytest.mark.asyncio
async def test_get_current_user(services, db):
    issued = await services.auth.register(registration())

    user = await services.auth.get_current_user(issued["access_token"])
    assert user["username"] == "writer"
    assert "hashed_password" not in user

    db["users"].docs[0]["status"] = "inactive"
    with pytest.raises(UnauthorizedError):
        await services.auth.get_current_user(issued["access_token"])


def test_expired_or_tampered_access_token():
    user = {"user_id": "user_0123456789abcdef", "email": "a@example.com", "role": "admin"}

    expired = create_access_token(user, expires_delta=timedelta(seconds=-5))
    with pytest.raises(UnauthorizedError):
        decode_access_token(expired)

    with pytest.raises(UnauthorizedError):
        decode_access_token(create_access_token(user) + "x")

    payload = decode_access_token(create_access_token(user))
    assert (payload["sub"], payload["role"]) == ("user_0123456789abcdef", "admin")


def test_access_token_requires_user_subject():
    token = create_access_token({"user_id": "post_0123456789abcdef", "email": "a@example.com"})
    with pytest.raises(UnauthorizedError):
        decode_access_token(token)
