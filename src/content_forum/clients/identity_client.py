"""
# Identity Client

Resolves a commenter's bearer token into a customer profile by querying the external
identity GraphQL service. The forum never stores these credentials; each comment write
re-resolves the caller.

Every failure is raised as `UpstreamError`: transport errors, timeouts, non-2xx statuses,
GraphQL `errors`, a missing `customer` and a profile that does not parse. Callers decide
how to surface it; the comment service turns it into `UnauthorizedError`.
"""

from typing import Optional

import httpx
import pydantic

from content_forum.config import settings
from content_forum.errors import UpstreamError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.integration_models import ExternalUser

logger = get_logger(prefix="[Identity Client]")

CUSTOMER_QUERY = """
query getCustomer {
  customer {
    email
    firstname
    lastname
    middlename
    mobile_number
    picture
    ranking {
      ranking
      ranking_next
      total_points
      uneven_points
    }
  }
}
"""


class IdentityClient:
    """Async GraphQL client for the identity service."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.GRAPHQL_USER_ENDPOINT
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.EXTERNAL_API_TIMEOUT,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    async def resolve_user(self, token: str) -> ExternalUser:
        """
        Fetch the customer profile for a bearer token.

        Args:
            token: The caller's bearer token, without the `Bearer ` prefix.

        Returns:
            ExternalUser: The resolved profile.

        Raises:
            UpstreamError: If the token cannot be resolved for any reason.
        """
        if not token:
            raise UpstreamError("Missing identity token")

        try:
            response = await self._client.post(
                self.endpoint,
                json={"query": CUSTOMER_QUERY},
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            )
        except httpx.TimeoutException as e:
            logger.warning("Identity service timed out: %s", e)
            raise UpstreamError("Identity service timed out") from e
        except httpx.HTTPError as e:
            logger.warning("Identity service request failed: %s", e)
            raise UpstreamError("Identity service unavailable") from e

        if response.status_code >= 400:
            logger.info("Identity service rejected token with status %d", response.status_code)
            raise UpstreamError(
                "Identity service rejected the token", details={"status_code": response.status_code}
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError("Identity service returned invalid JSON") from e

        if payload.get("errors"):
            message = payload["errors"][0].get("message", "GraphQL error")
            logger.info("Identity service returned GraphQL errors: %s", message)
            raise UpstreamError("Failed to resolve user", details={"reason": message})

        customer = (payload.get("data") or {}).get("customer")
        if not customer or not customer.get("email"):
            raise UpstreamError("Identity service returned no customer")

        customer["ranking"] = customer.get("ranking") or []
        try:
            return ExternalUser(**customer)
        except pydantic.ValidationError as e:
            logger.warning("Identity service returned an unparseable customer: %s", e)
            raise UpstreamError("Identity service returned an invalid profile") from e
