"""
HTTP client for the agent application-hosting service.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from quartermaster.core.connection import ConnectionRecord
from quartermaster.core.exceptions import RemoteServiceError
from quartermaster.schemas.app import App

logger = logging.getLogger(__name__)


class AgentClient:
    """Thin wrapper around the agent REST API.

    Every method is a single blocking request. Failures, including non-2xx
    responses, are raised as RemoteServiceError; nothing is retried.
    """

    def __init__(
        self,
        connection: ConnectionRecord,
        timeout: float = 30.0,
        keyring_service: str = "quartermaster",
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            connection: Service endpoint and credentials
            timeout: Seconds to wait for each request
            keyring_service: Keyring service name for keyring-held passwords
            session: Optional session to reuse (mainly for tests)
        """
        self._base_url = connection.service.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        auth = connection.auth(keyring_service)
        if auth:
            self._session.auth = auth

    @property
    def base_url(self) -> str:
        return self._base_url

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Error connecting to {url}: {str(e)}")
            raise RemoteServiceError(f"Error connecting to {url}: {e}") from e

        if not response.ok:
            logger.error(f"{method} {url} returned {response.status_code}: {response.text}")
            detail = response.text.strip() or response.reason
            raise RemoteServiceError(
                f"{method} {path} failed with status {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(f"Invalid JSON in response from {url}") from e

    # Applications

    def _parse_app(self, path: str, data: Any) -> App:
        try:
            return App.model_validate(data)
        except ValidationError as e:
            raise RemoteServiceError(f"Unexpected response from {self._base_url}{path}: {e}") from e

    def get_apps(self) -> List[App]:
        data = self._request("GET", "/apps") or []
        if not isinstance(data, list):
            raise RemoteServiceError(
                f"Unexpected response from {self._base_url}/apps: expected a list, got {type(data).__name__}"
            )
        return [self._parse_app("/apps", item) for item in data]

    def get_app(self, app_id: str) -> App:
        path = f"/apps/{app_id}"
        return self._parse_app(path, self._request("GET", path))

    def create_app(self, app: App) -> Dict[str, Any]:
        return self._request("POST", "/apps", json=app.to_request())

    def start_app(self, app_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/apps/{app_id}/start")

    def stop_app(self, app_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/apps/{app_id}/stop")

    def delete_app(self, app_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/apps/{app_id}")

    # Versions

    def create_app_version(self, app_id: str, archive: bytes) -> Dict[str, Any]:
        """Upload a zip archive as a new version of an application."""
        return self._request(
            "POST",
            f"/apps/{app_id}/versions",
            data=archive,
            headers={"Content-Type": "application/zip"},
        )

    def start_app_version(self, app_id: str, version_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/apps/{app_id}/versions/{version_id}/start")

    def stop_app_version(self, app_id: str, version_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/apps/{app_id}/versions/{version_id}/stop")

    def delete_app_version(self, app_id: str, version_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/apps/{app_id}/versions/{version_id}")
