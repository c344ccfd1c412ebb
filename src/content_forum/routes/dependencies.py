"""
# Route Dependencies

FastAPI dependencies shared by every router.

## Two Kinds of Callers

- **Local accounts** (authors, moderators, admins) send a JWT issued by `/auth/login`.
  `get_current_user` validates it and loads the account; `require_roles(...)` narrows access.
- **Commenters** are customers of the external identity service. Their bearer token is
  passed through untouched (`get_bearer_token`) and resolved by the comment service.

## Usage

```python
@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    current_user: dict = Depends(require_roles(UserRole.ADMIN, UserRole.MODERATOR)),
    services: ServiceContainer = Depends(get_services),
):
    ...
```

Attributes:
    oauth2_scheme (OAuth2PasswordBearer): Token extraction scheme
"""

from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from content_forum.errors import ForbiddenError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.user_models import UserRole
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Route Dependencies]")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_services(request: Request) -> ServiceContainer:
    """Return the service container built in the application lifespan."""
    return request.app.state.services


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """
    Resolve the JWT access token to the active local account.

    Raises:
        UnauthorizedError: If the token is invalid or the account is not active.
    """
    return await services.auth.get_current_user(token)


def require_roles(*roles: UserRole) -> Callable:
    """Build a dependency admitting only users holding one of `roles`."""
    allowed = {role.value for role in roles}

    async def _require_roles(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if current_user.get("role") not in allowed:
            logger.info(
                "User %s with role %s denied (requires %s)",
                current_user.get("user_id"),
                current_user.get("role"),
                sorted(allowed),
            )
            raise ForbiddenError("Insufficient permissions", details={"required_roles": sorted(allowed)})
        return current_user

    return _require_roles


require_staff = require_roles(UserRole.ADMIN, UserRole.MODERATOR)
require_admin = require_roles(UserRole.ADMIN)


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the raw bearer token of an externally identified caller, if any."""
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
