import time
from typing import Any
from typing import Protocol

import requests
import structlog

from detectgate.core.client import get_http_client
from detectgate.core.config import BlackDuckConfig
from detectgate.core.errors import BackendUnavailable
from detectgate.core.errors import ProjectNotFound
from detectgate.core.logging import register_secret
from detectgate.models.component import ComponentSet
from detectgate.models.component import HierarchicalComponentSet
from detectgate.models.policy import PolicyStatus
from detectgate.models.vulnerability import Vulnerability
from detectgate.models.vulnerability import VulnerabilitySet

logger = structlog.get_logger('blackduck_service')

USER_MEDIA_TYPE = 'application/vnd.blackducksoftware.user-4+json'
PROJECT_MEDIA_TYPE = 'application/vnd.blackducksoftware.project-detail-4+json'
BOM_MEDIA_TYPE = 'application/vnd.blackducksoftware.bill-of-materials-6+json'

# Renew the bearer token this many seconds before Black Duck expires it
TOKEN_EXPIRY_MARGIN = 60.0


class BackendClient(Protocol):
    def get_components(self, project: str, version: str) -> ComponentSet:
        ...

    def get_components_with_license_policy_rule(self, project: str, version: str) -> ComponentSet:
        ...

    def get_hierarchical_components(self, project: str, version: str) -> HierarchicalComponentSet:
        ...

    def get_vulnerabilities(self, project: str, version: str) -> VulnerabilitySet:
        ...

    def get_policy_status(self, project: str, version: str) -> PolicyStatus:
        ...


class BlackDuckService:
    """Read-only client for the Black Duck REST API of one server."""

    def __init__(
        self,
        server_url: str,
        token: str,
        config: BlackDuckConfig | None = None,
        session: requests.Session | None = None,
    ):
        if not server_url:
            raise ValueError('Black Duck server URL is required')
        if not token:
            raise ValueError('Black Duck API token is required')
        register_secret(token)
        self.config = config or BlackDuckConfig()
        self.server_url = server_url.rstrip('/')
        self.token = token
        self.session = session or get_http_client(retries=self.config.retries)
        self._bearer_token: str | None = None
        self._bearer_expires_at = 0.0

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(
                method, url, timeout=self.config.request_timeout, **kwargs,
            )
        except requests.RequestException as e:
            raise BackendUnavailable(f"Black Duck request {method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise BackendUnavailable(
                f"Black Duck request {method} {url} failed with status {response.status_code}",
            )
        return response

    def _authenticate(self) -> str:
        if self._bearer_token and time.time() < self._bearer_expires_at:
            return self._bearer_token

        response = self._send(
            'POST',
            f"{self.server_url}/api/tokens/authenticate",
            headers={
                'Authorization': f"token {self.token}",
                'Accept': USER_MEDIA_TYPE,
            },
        )
        try:
            data = response.json()
        except ValueError as e:
            raise BackendUnavailable(f"Black Duck authentication returned invalid JSON: {e}") from e

        bearer_token = data.get('bearerToken')
        if not bearer_token:
            raise BackendUnavailable('Black Duck authentication did not return a bearer token')

        register_secret(bearer_token)
        expires_in = float(data.get('expiresInMilliseconds', 0)) / 1000
        self._bearer_token = bearer_token
        self._bearer_expires_at = time.time() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0.0)
        logger.debug('Authenticated against Black Duck', server=self.server_url)
        return bearer_token

    def _get_json(self, url: str, params: dict[str, Any] | None = None, accept: str = BOM_MEDIA_TYPE) -> dict[str, Any]:
        bearer_token = self._authenticate()
        response = self._send(
            'GET',
            url,
            params=params,
            headers={
                'Authorization': f"Bearer {bearer_token}",
                'Accept': accept,
            },
        )
        try:
            return response.json()
        except ValueError as e:
            raise BackendUnavailable(f"Black Duck returned invalid JSON for {url}: {e}") from e

    def _get_collection(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        limit: int | None = None,
        accept: str = BOM_MEDIA_TYPE,
    ) -> list[dict[str, Any]]:
        """Fetch every page of a Black Duck collection."""
        limit = limit or self.config.page_limit
        items: list[dict[str, Any]] = []
        offset = 0
        while True:
            page = self._get_json(
                url, params={**(params or {}), 'limit': limit, 'offset': offset}, accept=accept,
            )
            batch = page.get('items') or []
            items.extend(batch)
            total = page.get('totalCount', len(items))
            if not batch or len(items) >= total:
                return items
            offset += len(batch)

    @staticmethod
    def _link(resource: dict[str, Any], rel: str) -> str:
        for link in resource.get('_meta', {}).get('links', []):
            if link.get('rel') == rel:
                return link['href']
        raise BackendUnavailable(f"Black Duck resource has no '{rel}' link")

    def get_project(self, project: str) -> dict[str, Any]:
        data = self._get_json(
            f"{self.server_url}/api/projects",
            params={'q': f"name:{project}"},
            accept=PROJECT_MEDIA_TYPE,
        )
        for item in data.get('items') or []:
            if item.get('name') == project:
                return item
        raise ProjectNotFound(f"Project '{project}' not found on Black Duck")

    def get_project_version(self, project: str, version: str) -> dict[str, Any]:
        project_resource = self.get_project(project)
        versions = self._get_collection(
            self._link(project_resource, 'versions'),
            limit=self.config.version_page_limit,
            accept=PROJECT_MEDIA_TYPE,
        )
        for item in versions:
            if item.get('versionName') == version:
                return item
        raise ProjectNotFound(f"Version '{version}' of project '{project}' not found on Black Duck")

    def get_components(self, project: str, version: str) -> ComponentSet:
        version_resource = self.get_project_version(project, version)
        items = self._get_collection(self._link(version_resource, 'components'))
        return ComponentSet.model_validate({'totalCount': len(items), 'items': items})

    def get_components_with_license_policy_rule(self, project: str, version: str) -> ComponentSet:
        version_resource = self.get_project_version(project, version)
        items = self._get_collection(
            self._link(version_resource, 'components'),
            params={'filter': 'policyCategory:license'},
        )
        return ComponentSet.model_validate({'totalCount': len(items), 'items': items})

    def get_hierarchical_components(self, project: str, version: str) -> HierarchicalComponentSet:
        version_resource = self.get_project_version(project, version)
        items = self._get_collection(self._link(version_resource, 'hierarchical-components'))
        return HierarchicalComponentSet.model_validate({'totalCount': len(items), 'items': items})

    def get_vulnerabilities(self, project: str, version: str) -> VulnerabilitySet:
        version_resource = self.get_project_version(project, version)
        items = self._get_collection(self._link(version_resource, 'vulnerable-components'))
        return VulnerabilitySet.of([Vulnerability.model_validate(item) for item in items])

    def get_policy_status(self, project: str, version: str) -> PolicyStatus:
        version_resource = self.get_project_version(project, version)
        return PolicyStatus.model_validate(
            self._get_json(self._link(version_resource, 'policy-status')),
        )
