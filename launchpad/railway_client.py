"""Async client for the Railway GraphQL API.

Wraps the four operations the multi-service deploy needs: fetching a
project's environments, creating a service, creating a service domain and
listing a project's services with their domains.

Every HTTP response is decoded once, at the boundary, into a
``GraphQLResponse`` whose ``kind`` is one of ``data``, ``empty`` or
``error``. The typed accessors below never raise: anything other than usable
data degrades to ``None`` or an empty list, and the caller decides whether
that matters.

Typical usage::

    client = RailwayClient(token)
    envs = await client.get_environments(project_id)
    env = select_environment(envs)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from launchpad.utils import log_line, print_warning

DEFAULT_API_URL = "https://backboard.railway.app/graphql/v2"

GET_PROJECT_ENVIRONMENTS = """
query GetProject($id: String!) {
  project(id: $id) {
    id
    environments {
      edges {
        node {
          id
          name
        }
      }
    }
  }
}
"""

SERVICE_CREATE = """
mutation ServiceCreate($projectId: String!, $name: String!) {
  serviceCreate(input: { projectId: $projectId, name: $name }) {
    id
    name
  }
}
"""

SERVICE_DOMAIN_CREATE = """
mutation ServiceDomainCreate($serviceId: String!, $environmentId: String!) {
  serviceDomainCreate(input: { serviceId: $serviceId, environmentId: $environmentId }) {
    domain
  }
}
"""

GET_PROJECT_SERVICES = """
query GetServiceDomains($projectId: String!) {
  project(id: $projectId) {
    services(first: 10) {
      edges {
        node {
          id
          name
          serviceDomains {
            domain
          }
        }
      }
    }
  }
}
"""


# ---------------------------------------------------------------------------
# Response schema
# ---------------------------------------------------------------------------


class ResponseKind(str, Enum):
    """Closed set of shapes a GraphQL call can come back as."""

    DATA = "data"
    EMPTY = "empty"
    ERROR = "error"


class GraphQLResponse(BaseModel):
    """A decoded GraphQL response."""

    kind: ResponseKind
    data: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.kind is ResponseKind.DATA

    @classmethod
    def failed(cls, message: str) -> "GraphQLResponse":
        return cls(kind=ResponseKind.ERROR, errors=[message])

    @classmethod
    def decode(cls, payload: Any) -> "GraphQLResponse":
        """Classify a parsed JSON body.

        ``data`` wins when at least one top-level field is non-null, even if
        ``errors`` is also present (partial success). A body with only errors
        is ``error``; anything else is ``empty``.
        """
        if not isinstance(payload, dict):
            return cls.failed(f"Malformed GraphQL response: {type(payload).__name__}")

        errors: list[str] = []
        for err in payload.get("errors") or []:
            if isinstance(err, dict):
                errors.append(str(err.get("message", err)))
            else:
                errors.append(str(err))

        data = payload.get("data")
        if isinstance(data, dict) and any(value is not None for value in data.values()):
            return cls(kind=ResponseKind.DATA, data=data, errors=errors)
        if errors:
            return cls(kind=ResponseKind.ERROR, errors=errors)
        return cls(kind=ResponseKind.EMPTY)

    def get(self, *path: str) -> Any:
        """Walk nested dict keys, returning ``None`` at the first gap."""
        node: Any = self.data
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node


class Environment(BaseModel):
    """A project environment."""

    id: str
    name: str = ""


class ProjectService(BaseModel):
    """A service inside a project, with its generated domains."""

    id: str
    name: str = ""
    domains: list[str] = Field(default_factory=list)


def _edge_nodes(connection: Any) -> list[dict[str, Any]]:
    """Return the ``node`` dicts of a GraphQL connection, skipping malformed edges."""
    if not isinstance(connection, dict):
        return []
    nodes: list[dict[str, Any]] = []
    for edge in connection.get("edges") or []:
        node = edge.get("node") if isinstance(edge, dict) else None
        if isinstance(node, dict) and node.get("id"):
            nodes.append(node)
    return nodes


def select_environment(
    environments: list[Environment], preferred: str = "production"
) -> Optional[Environment]:
    """Pick the *preferred* environment by name, else the first one, else ``None``."""
    for env in environments:
        if env.name == preferred:
            return env
    return environments[0] if environments else None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RailwayClient:
    """Async client for the Railway GraphQL endpoint.

    Uses a fresh ``httpx.AsyncClient`` per call, authenticated with the
    account-level bearer token.
    """

    def __init__(
        self, token: str, api_url: str = DEFAULT_API_URL, timeout: int = 30
    ) -> None:
        self.token = token
        self.api_url = api_url
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.token}",
            },
        )

    async def graphql(self, query: str, variables: dict[str, Any]) -> GraphQLResponse:
        """POST one GraphQL operation and decode the response.

        Transport failures, HTTP error statuses and non-JSON bodies all come
        back as ``kind=error`` responses.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    self.api_url, json={"query": query, "variables": variables}
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.ConnectError:
            return GraphQLResponse.failed(f"Cannot connect to Railway API at {self.api_url}")
        except httpx.TimeoutException:
            return GraphQLResponse.failed(
                f"Request to Railway API timed out after {self.timeout}s."
            )
        except httpx.HTTPStatusError as exc:
            return GraphQLResponse.failed(
                f"Railway API returned HTTP {exc.response.status_code}: "
                f"{exc.response.text[:500]}"
            )
        except ValueError as exc:
            return GraphQLResponse.failed(f"Railway API returned invalid JSON: {exc}")
        except httpx.HTTPError as exc:
            return GraphQLResponse.failed(f"Railway API request failed: {exc}")

        return GraphQLResponse.decode(payload)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_environments(self, project_id: str) -> list[Environment]:
        """Return the project's environments (empty on any failure)."""
        result = await self.graphql(GET_PROJECT_ENVIRONMENTS, {"id": project_id})
        if not result.ok:
            print_warning(f"Could not fetch environments: {'; '.join(result.errors) or result.kind.value}")
            return []
        nodes = _edge_nodes(result.get("project", "environments"))
        return [Environment(id=str(n["id"]), name=str(n.get("name") or "")) for n in nodes]

    async def create_service(self, project_id: str, name: str) -> Optional[str]:
        """Create a named service; return its id or ``None``."""
        result = await self.graphql(SERVICE_CREATE, {"projectId": project_id, "name": name})
        service_id = result.get("serviceCreate", "id")
        if not service_id:
            print_warning(
                f"Could not create service '{name}' via API: "
                f"{'; '.join(result.errors) or result.kind.value}"
            )
            return None
        log_line("RAILWAY", f"Service '{name}' created via API: {service_id}")
        return str(service_id)

    async def create_service_domain(
        self, service_id: str, environment_id: str
    ) -> Optional[str]:
        """Generate a domain for a service; return the bare domain or ``None``."""
        result = await self.graphql(
            SERVICE_DOMAIN_CREATE,
            {"serviceId": service_id, "environmentId": environment_id},
        )
        domain = result.get("serviceDomainCreate", "domain")
        if not domain:
            print_warning(
                f"Could not create domain for service {service_id}: "
                f"{'; '.join(result.errors) or result.kind.value}"
            )
            return None
        return str(domain)

    async def get_project_services(self, project_id: str) -> list[ProjectService]:
        """Return the project's services with their domains (empty on failure)."""
        result = await self.graphql(GET_PROJECT_SERVICES, {"projectId": project_id})
        if not result.ok:
            print_warning(f"Could not list project services: {'; '.join(result.errors) or result.kind.value}")
            return []

        services: list[ProjectService] = []
        for node in _edge_nodes(result.get("project", "services")):
            domains = [
                str(d["domain"])
                for d in node.get("serviceDomains") or []
                if isinstance(d, dict) and d.get("domain")
            ]
            services.append(
                ProjectService(id=str(node["id"]), name=str(node.get("name") or ""), domains=domains)
            )
        return services

    async def find_service_domain(self, project_id: str, service_id: str) -> Optional[str]:
        """Return the first existing domain of *service_id*, or ``None``."""
        for service in await self.get_project_services(project_id):
            if service.id == service_id and service.domains:
                return service.domains[0]
        return None
