"""Identity and write-access queries against an npm registry."""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Optional

import requests
from requests import Response, Session
from requests.exceptions import RequestException

from ..errors import RegistryError, ValidationError
from ..graph.package import PackageNode

logger = logging.getLogger(__name__)

TOKEN_ENV = "NPM_TOKEN"


class AccessClient:
    """Queries ``-/whoami`` and the user's package permissions."""

    def __init__(
        self,
        registry: str,
        *,
        token: Optional[str] = None,
        session: Optional[Session] = None,
        timeout: int = 20,
    ) -> None:
        self.registry = registry.rstrip("/") + "/"
        self.token = token if token is not None else os.getenv(TOKEN_ENV)
        self.session = session or requests.Session()
        self.timeout = timeout

    def whoami(self) -> Optional[str]:
        """Return the authenticated username, or ``None`` when it cannot be resolved."""

        if not self.token:
            logger.debug("no %s available, skipping whoami", TOKEN_ENV)
            return None
        try:
            response = self._get("-/whoami")
        except RequestException as exc:
            logger.debug("whoami request failed: %s", exc)
            return None
        if response.status_code in (401, 403, 404):
            return None
        if response.status_code != 200:
            raise RegistryError(f"whoami returned {response.status_code}: {response.text or response.reason}")
        try:
            payload = response.json()
        except ValueError as exc:
            logger.debug("whoami returned a non-JSON body: %s", exc)
            return None
        if not isinstance(payload, dict):
            logger.debug("whoami returned unexpected payload %r", payload)
            return None
        return payload.get("username") or None

    def package_permissions(self, username: str) -> Optional[Dict[str, str]]:
        """Return ``{package: permission}`` or ``None`` if the registry does not support it."""

        try:
            response = self._get(f"-/user/{username}/package", params={"format": "cli"})
        except RequestException as exc:
            raise RegistryError(f"Package access request failed: {exc}") from exc
        if response.status_code in (404, 500):
            return None
        if response.status_code != 200:
            raise RegistryError(
                f"Package access request returned {response.status_code}: {response.text or response.reason}"
            )
        return {str(name): str(permission) for name, permission in (response.json() or {}).items()}

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Response:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return self.session.get(
            f"{self.registry}{path}",
            headers=headers,
            params=params,
            timeout=self.timeout,
        )


def verify_package_access(client: AccessClient, packages: Iterable[PackageNode], username: str) -> None:
    permissions = client.package_permissions(username)
    if permissions is None:
        logger.warning(
            "Registry %s does not support `npm access ls-packages`, skipping permission checks",
            client.registry,
        )
        return
    for pkg in packages:
        # unpublished packages are absent from the listing
        permission = permissions.get(pkg.name)
        if permission is not None and permission != "read-write":
            raise ValidationError(
                f"You do not have write permission required to publish {pkg.name!r}",
                code="EACCESS",
            )
