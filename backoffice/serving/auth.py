"""
Admin Authorization

Resolves bearer tokens against the hosted auth provider and checks the
resulting identity against the configured admin allow-list.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import httpx
import structlog
from fastapi import Depends, Request

from backoffice.config.settings import AuthSettings
from backoffice.serving.api.errors import AuthenticationFailure, AuthorizationFailure

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AdminIdentity:
    """Authenticated user as reported by the auth provider"""
    id: str
    email: str


class AdminAllowList:
    """Case-insensitive set of e-mail addresses allowed to read the dashboard"""

    def __init__(self, emails: Iterable[str]):
        self._emails = frozenset(email.strip().lower() for email in emails if email and email.strip())

    def __contains__(self, email: object) -> bool:
        return isinstance(email, str) and email.strip().lower() in self._emails

    def __len__(self) -> int:
        return len(self._emails)

    def allows(self, identity: AdminIdentity) -> bool:
        return identity.email in self


class SupabaseAuthClient:
    """
    Looks up the user behind an access token.

    Example:
        client = SupabaseAuthClient.from_settings(settings.auth)
        identity = await client.get_user(token)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"apikey": api_key} if api_key else {},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> "SupabaseAuthClient":
        return cls(
            base_url=settings.supabase_url,
            api_key=settings.supabase_anon_key.get_secret_value(),
            timeout=settings.timeout_seconds,
        )

    async def get_user(self, token: str) -> Optional[AdminIdentity]:
        """
        Resolve ``token`` to an identity.

        Returns:
            AdminIdentity, or None when the provider rejects the token or
            cannot be reached
        """
        try:
            response = await self._client.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("Auth provider unreachable", error=str(e), error_type=type(e).__name__)
            return None

        if response.status_code != 200:
            logger.info("Auth provider rejected token", status_code=response.status_code)
            return None

        try:
            user = response.json()
        except ValueError:
            logger.warning("Auth provider returned a non-JSON body")
            return None

        if not user.get("id"):
            return None
        return AdminIdentity(id=str(user["id"]), email=(user.get("email") or "").lower())

    async def aclose(self) -> None:
        await self._client.aclose()


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header value."""
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def get_identity_resolver(request: Request) -> SupabaseAuthClient:
    return request.app.state.identity_resolver


def get_admin_allow_list(request: Request) -> AdminAllowList:
    return request.app.state.admin_allow_list


async def require_admin(
    request: Request,
    resolver: SupabaseAuthClient = Depends(get_identity_resolver),
    allow_list: AdminAllowList = Depends(get_admin_allow_list),
) -> AdminIdentity:
    """
    FastAPI dependency guarding admin-only routes.

    Raises:
        AuthenticationFailure: no token, or the provider does not know it
        AuthorizationFailure: the user is not on the allow-list
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        logger.info("Dashboard request without bearer token", path=request.url.path)
        raise AuthenticationFailure()

    identity = await resolver.get_user(token)
    if identity is None:
        logger.info("Dashboard request with invalid token", path=request.url.path)
        raise AuthenticationFailure()

    if not allow_list.allows(identity):
        logger.warning("Non-admin dashboard access denied", user_id=identity.id, email=identity.email)
        raise AuthorizationFailure()

    return identity
