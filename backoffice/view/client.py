"""
Dashboard API Client

Synchronous httpx client used by the Streamlit view: signs the admin in
against the auth provider and fetches dashboard payloads.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from backoffice.config.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


class DashboardClientError(Exception):
    """Request to the auth provider or the dashboard API failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response, fallback: str) -> str:
    """Best human-readable message from an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or fallback
    if not isinstance(body, dict):
        return fallback
    for key in ("error_description", "msg", "message", "error"):
        if body.get(key):
            message = str(body[key])
            if key == "error" and body.get("details"):
                message = f"{message}: {body['details']}"
            return message
    return fallback


class DashboardClient:
    """
    Client for the dashboard API.

    Example:
        client = DashboardClient.from_settings(get_settings())
        session = client.sign_in("admin@example.com", "secret")
        payload = client.fetch_dashboard("month", session["access_token"])
    """

    def __init__(
        self,
        api_base_url: str,
        auth_base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.auth_base_url = auth_base_url.rstrip("/")
        self._api_key = api_key
        self._http = httpx.Client(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DashboardClient":
        settings = settings or get_settings()
        return cls(
            api_base_url=settings.view.api_base_url,
            auth_base_url=settings.auth.supabase_url,
            api_key=settings.auth.supabase_anon_key.get_secret_value(),
            timeout=settings.view.request_timeout_seconds,
        )

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        Exchange e-mail and password for a session.

        Returns:
            Provider session, including ``access_token``

        Raises:
            DashboardClientError: wrong credentials or provider unreachable
        """
        headers = {"apikey": self._api_key} if self._api_key else {}
        try:
            response = self._http.post(
                f"{self.auth_base_url}/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise DashboardClientError(f"Could not reach the auth provider: {e}") from e

        if response.status_code != 200:
            raise DashboardClientError(
                _error_message(response, "Sign-in failed"),
                status_code=response.status_code,
            )

        session = response.json()
        if not session.get("access_token"):
            raise DashboardClientError("Sign-in returned no access token")
        logger.info("Admin signed in", email=email)
        return session

    def fetch_dashboard(self, time_filter: str, access_token: str) -> Dict[str, Any]:
        """
        Fetch the dashboard payload for ``time_filter``.

        Raises:
            DashboardClientError: non-2xx response, with the server's message
        """
        try:
            response = self._http.get(
                f"{self.api_base_url}/admin/dashboard",
                params={"filter": time_filter},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise DashboardClientError(f"Could not reach the dashboard API: {e}") from e

        if not response.is_success:
            message = _error_message(response, f"Dashboard request failed ({response.status_code})")
            logger.warning("Dashboard request failed", status_code=response.status_code, error=message)
            raise DashboardClientError(message, status_code=response.status_code)

        return response.json()

    def close(self) -> None:
        self._http.close()
