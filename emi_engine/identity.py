"""
Identity Enrichment Client Module

Best-effort lookup of a display name for a user id, used to label who
recorded a payment. Lookups are time-bounded and never raise; callers fall
back to a placeholder label when no name comes back.
"""

import httpx
import logging
from urllib.parse import quote
from abc import ABC, abstractmethod
from typing import Dict, Optional

logger = logging.getLogger("emi.identity")


def placeholder_name(user_id: str) -> str:
    """Label shown when the identity service cannot name the user"""
    return f"User #{user_id}"


class IdentityDirectory(ABC):
    """Port for resolving user ids to display names"""

    @abstractmethod
    def get_user_name(self, user_id: str) -> Optional[str]:
        """Return the display name, or None when unknown or unavailable"""
        pass

    def display_name(self, user_id: str) -> str:
        """Display name with placeholder fallback; never raises"""
        try:
            name = self.get_user_name(user_id)
        except Exception as e:
            logger.warning(f"Identity lookup failed for user {user_id}: {e}")
            name = None
        return name or placeholder_name(user_id)

    def close(self) -> None:
        """Release any connections held by the directory"""
        pass


class HttpIdentityClient(IdentityDirectory):
    """REST client for the user service"""

    def __init__(
        self,
        base_url: str = "http://localhost:8081",
        timeout: float = 2.0,  # short, payment responses wait on it
        api_key: Optional[str] = None,
        enabled: bool = True
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_key = api_key
        self.enabled = enabled
        self._client = httpx.Client(timeout=timeout)

    def get_user_name(self, user_id: str) -> Optional[str]:
        """GET /users/{id} and read the full name, None on any failure"""
        if not self.enabled or not user_id:
            return None

        try:
            headers = {}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"

            response = self._client.get(f"{self.base_url}/users/{quote(user_id, safe='')}", headers=headers)

            if response.status_code == 200:
                data = response.json()
                name = data.get("full_name") or data.get("name")
                if not name:
                    first = data.get("first_name", "")
                    last = data.get("last_name", "")
                    name = f"{first} {last}".strip()
                return name or None

            logger.warning(f"Identity service returned {response.status_code} for user {user_id}")
            return None

        except Exception as e:
            logger.error(f"Identity service connection failed: {e}")
            return None

    def health_check(self) -> bool:
        """Check if the identity service is healthy"""
        try:
            r = self._client.get(f"{self.base_url}/health")
            return r.status_code == 200
        except httpx.HTTPError:
            return False

    def close(self):
        """Close the HTTP client"""
        self._client.close()


class StaticIdentityDirectory(IdentityDirectory):
    """In-process directory backed by a dict, for tests and offline runs"""

    def __init__(self, names: Optional[Dict[str, str]] = None):
        self.names = dict(names or {})

    def get_user_name(self, user_id: str) -> Optional[str]:
        return self.names.get(user_id)


def create_identity_directory(base_url: str, timeout: float = 2.0) -> IdentityDirectory:
    """HTTP client when a service URL is configured, empty static directory otherwise"""
    if base_url:
        return HttpIdentityClient(base_url=base_url, timeout=timeout)
    return StaticIdentityDirectory()
