"""HTTP provisioning API client."""

import threading
import time
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote
import requests
from requests.adapters import HTTPAdapter
from .base import Provider
from ..utils.errors import ProvisioningError
from ..utils.logging import get_logger

logger = get_logger("provider.http")


class HttpProvider(Provider):
    """
    Provider speaking a JSON resource API.

    Long-running operations answer 202 with an operation id which is polled
    until it succeeds or fails.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        request_timeout: float = 30.0,
        poll_interval: float = 2.0,
        poll_timeout: float = 3600.0,
        max_retries: int = 3,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize HTTP provider.

        Args:
            base_url: API base URL (e.g. https://provisioner.internal/api/v1)
            token: Optional bearer token
            request_timeout: Timeout for each HTTP request in seconds
            poll_interval: Delay between operation status checks
            poll_timeout: Give up polling an operation after this many seconds
            max_retries: Transport-level retries for failed connections
            session: Optional preconfigured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self._cancelled = threading.Event()

        self.session = session or requests.Session()
        adapter = HTTPAdapter(max_retries=max_retries)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def create(self, resource_type: str, attributes: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        body = self._call("POST", f"/resources/{quote(resource_type, safe='')}", {"attributes": attributes})
        resource_id = body.get("id")
        if not resource_id:
            raise ProvisioningError(f"Provider response for {resource_type} create is missing 'id'")
        return str(resource_id), body.get("attributes") or {}

    def update(self, resource_id: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        body = self._call("PUT", self._resource_path(resource_id), {"attributes": attributes})
        return body.get("attributes") or {}

    def delete(self, resource_id: str) -> None:
        self._call("DELETE", self._resource_path(resource_id), None)

    def cancel(self) -> None:
        self._cancelled.set()

    def close(self) -> None:
        self.session.close()

    def _resource_path(self, resource_id: str) -> str:
        return f"/resources/{quote(resource_id, safe='')}"

    def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if self._cancelled.is_set():
            raise ProvisioningError("Run cancelled before the request was sent")

        response = self._send(method, path, payload)
        if response.status_code == 202:
            operation_id = self._json(response).get("operation")
            if not operation_id:
                raise ProvisioningError(f"{method} {path} accepted without an operation id")
            return self._wait_for_operation(str(operation_id))
        if response.status_code == 204:
            return {}
        if response.ok:
            return self._json(response)
        raise ProvisioningError(f"{method} {path} failed with HTTP {response.status_code}: {self._error_message(response)}")

    def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]]) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            return self.session.request(method, url, json=payload, timeout=self.request_timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Provider request error: {e}")
            raise ProvisioningError(f"{method} {url} failed: {e}")

    def _wait_for_operation(self, operation_id: str) -> Dict[str, Any]:
        """Poll an accepted operation until the provider reports its outcome."""
        path = f"/operations/{quote(operation_id, safe='')}"
        deadline = time.monotonic() + self.poll_timeout
        while True:
            response = self._send("GET", path, None)
            if not response.ok:
                raise ProvisioningError(
                    f"Operation {operation_id} status check failed with HTTP {response.status_code}: "
                    f"{self._error_message(response)}"
                )
            status = self._json(response)
            state = str(status.get("status", "")).lower()
            if state == "succeeded":
                return status.get("result") or {}
            if state == "failed":
                raise ProvisioningError(status.get("error") or f"Operation {operation_id} failed")
            if time.monotonic() >= deadline:
                raise ProvisioningError(f"Operation {operation_id} still '{state}' after {self.poll_timeout}s")
            time.sleep(self.poll_interval)

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            raise ProvisioningError(f"Provider returned invalid JSON (HTTP {response.status_code})")
        if not isinstance(body, dict):
            raise ProvisioningError("Provider returned a non-object JSON body")
        return body

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text.strip() or response.reason or "no details"
        if isinstance(body, dict):
            return str(body.get("error") or body.get("message") or body)
        return str(body)
