"""HTTP client for the remote modeling platform.

Resources are created, fetched, deleted and polled through the
platform's REST API. Creation is asynchronous on the platform side:
``create`` returns as soon as the resource is accepted, and ``wait``
polls until it reaches a terminal status.
"""

import logging
import os
import time
from typing import Any, Dict, Optional, Tuple

import requests

from .errors import RemoteCallError, ResourceFailedError, WaitTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://bigml.io/andromeda"

# Status codes reported in a resource's status.code
FINISHED = 5
FAULTY = -1
UNKNOWN = -2
TERMINAL_CODES = (FINISHED, FAULTY, UNKNOWN)


def status_code(resource: Dict[str, Any]) -> Optional[int]:
    """Return status.code of a resource document, if present."""
    return (resource.get('status') or {}).get('code')


class PlatformClient:
    """REST client for the modeling platform.

    Attributes:
        base_url: API root, e.g. https://bigml.io/andromeda.
        poll_interval: Seconds between status polls in wait().
        max_wait: Maximum seconds to wait for one resource (None = no limit).
        timeout: (connect, read) timeout for each HTTP request.
        verify_ssl: Whether to verify TLS certificates.
    """

    def __init__(
        self,
        username: str,
        api_key: str,
        base_url: str = DEFAULT_URL,
        poll_interval: float = 1.0,
        max_wait: Optional[float] = None,
        timeout: Tuple[float, float] = (10, 60),
        verify_ssl: bool = True
    ):
        self.base_url = base_url.rstrip('/')
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._auth = {'username': username, 'api_key': api_key}

    @classmethod
    def from_env(cls, prefix: str = "KFOLD_", **kwargs) -> 'PlatformClient':
        """Build a client from <prefix>USERNAME, <prefix>API_KEY and <prefix>URL."""
        username = os.getenv(f"{prefix}USERNAME")
        api_key = os.getenv(f"{prefix}API_KEY")
        if not username or not api_key:
            raise RemoteCallError(
                f"{prefix}USERNAME and {prefix}API_KEY must be set"
            )
        verify = os.getenv(f"{prefix}VERIFY_SSL", "true").lower() not in ("false", "0", "no")
        kwargs.setdefault('base_url', os.getenv(f"{prefix}URL", DEFAULT_URL))
        kwargs.setdefault('verify_ssl', verify)
        return cls(username, api_key, **kwargs)

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        resource_id: Optional[str] = None
    ) -> requests.Response:
        url = f"{self.base_url}/{path}"
        try:
            resp = requests.request(
                method, url, params=self._auth, json=json,
                timeout=self.timeout, verify=self.verify_ssl
            )
        except requests.RequestException as e:
            raise RemoteCallError(
                f"{method} {path} failed ({type(e).__name__}): {e}",
                resource_id=resource_id
            ) from e

        if 200 <= resp.status_code < 300:
            return resp

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        status = payload.get('status') if isinstance(payload, dict) else None
        message = (status or {}).get('message') or resp.text or resp.reason
        raise RemoteCallError(
            f"{method} {path} returned {resp.status_code}: {message}",
            status_code=resp.status_code,
            resource_id=resource_id
        )

    def create(self, kind: str, args: Dict[str, Any]) -> str:
        """Request creation of a resource and return its id."""
        resp = self._request('POST', kind, json=args)
        resource_id = resp.json().get('resource')
        if not resource_id:
            raise RemoteCallError(f"create {kind} returned no resource id")
        logger.debug(f"Created {resource_id}")
        return resource_id

    def fetch(self, resource_id: str) -> Dict[str, Any]:
        """Fetch the current document of a resource."""
        return self._request('GET', resource_id, resource_id=resource_id).json()

    def delete(self, resource_id: str) -> None:
        """Delete a resource."""
        self._request('DELETE', resource_id, resource_id=resource_id)

    def wait(self, resource_id: str) -> Dict[str, Any]:
        """Block until a resource reaches a terminal status.

        Returns:
            The finished resource document.

        Raises:
            ResourceFailedError: the resource ended faulty or unknown.
            WaitTimeoutError: max_wait elapsed first.
        """
        start = time.monotonic()
        while True:
            resource = self.fetch(resource_id)
            code = status_code(resource)
            if code == FINISHED:
                return resource
            if code in TERMINAL_CODES:
                message = (resource.get('status') or {}).get('message', '')
                raise ResourceFailedError(
                    f"{resource_id} failed: {message}",
                    resource_id=resource_id
                )
            if self.max_wait is not None and time.monotonic() - start > self.max_wait:
                raise WaitTimeoutError(
                    f"{resource_id} not finished after {self.max_wait:.0f}s",
                    resource_id=resource_id
                )
            logger.debug(f"Waiting for {resource_id} (status {code})")
            time.sleep(self.poll_interval)
