"""Identity client - resolves bearer tokens to user ids via the auth service."""
import logging
from typing import Optional

import httpx

from ..config import Settings
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class IdentityClient:
    """Asks the external auth service who a bearer token belongs to."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.auth_url = (settings.auth_url or "").rstrip("/")
        self.api_key = settings.auth_api_key
        self._transport = transport

    async def get_user_id(self, token: str) -> str:
        """Return the user id for ``token`` or raise AuthenticationError."""
        if not self.auth_url:
            raise AuthenticationError("Authentication service is not configured")
        if not token:
            raise AuthenticationError("Missing token")

        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.get(f"{self.auth_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Auth service unreachable: {e}")
            raise AuthenticationError("Authentication service unavailable") from e

        if response.status_code != 200:
            raise AuthenticationError("Invalid Token")

        try:
            user_id = response.json().get("id")
        except (ValueError, AttributeError) as e:
            raise AuthenticationError("Invalid Token") from e
        if not user_id:
            raise AuthenticationError("Invalid Token")
        return str(user_id)
