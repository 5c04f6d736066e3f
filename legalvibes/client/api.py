"""
HTTP client for the LegalVibes API.

Thin async wrapper over ``httpx.AsyncClient``. It attaches the current
bearer token, turns error responses into ``legalvibes.errors`` exceptions,
and on a 401 asks the bound session for a fresh token and retries once.

The client itself does not coalesce refreshes: ``SessionStore.refresh`` is
single-flight, so any number of concurrent 401s end up awaiting the same
refresh.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from legalvibes.core.contracts import (
    ApiModel,
    AuthPayload,
    ClientCreate,
    ClientOut,
    ClientUpdate,
    IdentityOut,
    LoginRequest,
    ProfileUpdate,
    ProjectCreate,
    ProjectOut,
    ProjectStatusUpdate,
    ProjectUpdate,
    RegisterRequest,
    TokenCheck,
)
from legalvibes.core.models import ProjectStatus
from legalvibes.errors import NetworkError, error_for_status

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network error: Unable to connect to server"

TokenProvider = Callable[[], Optional[str]]
RefreshHandler = Callable[[], Awaitable[str]]


def _body(model: ApiModel) -> dict:
    return model.to_json()


def _error_message(response: httpx.Response) -> str:
    """Best human-readable message from an error response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        for key in ("error", "message"):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]
        detail = data.get("detail")
        if isinstance(detail, str) and detail:
            return detail
        if isinstance(detail, list) and detail and isinstance(detail[0], dict):
            return str(detail[0].get("msg", "Validation failed"))

    return response.reason_phrase or f"Request failed with status {response.status_code}"


class ApiClient:
    """
    Async API client.

    Usage:
        api = ApiClient("https://localhost:7032/api")
        payload = await api.login("a@x.com", "Str0ng!Pass")

    Normally owned by a SessionStore, which binds itself via
    ``bind_session`` so requests carry its token.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._http = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._token_provider: TokenProvider = lambda: None
        self._refresh_handler: RefreshHandler | None = None

    @classmethod
    def from_settings(cls, settings, transport: httpx.AsyncBaseTransport | None = None) -> ApiClient:
        return cls(
            settings.client_api_base_url,
            timeout=settings.client_timeout_seconds,
            transport=transport,
        )

    def bind_session(self, token_provider: TokenProvider, refresh_handler: RefreshHandler) -> None:
        """Where to read the current token and how to get a fresh one."""
        self._token_provider = token_provider
        self._refresh_handler = refresh_handler

    async def close(self) -> None:
        await self._http.aclose()

    # =========================================================================
    # Core request path
    # =========================================================================

    async def _send(
        self,
        method: str,
        path: str,
        token: str | None,
        json: Any = None,
        params: dict | None = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            return await self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e!r}")
            raise NetworkError(NETWORK_ERROR_MESSAGE) from e

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict | None = None,
        authenticated: bool = True,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None for 204).

        A 401 on an authenticated request is retried once: with the current
        token if it changed while the request was in flight, otherwise with
        the token from a refresh. A failed refresh raises its own error.
        """
        token = self._token_provider() if authenticated else None
        response = await self._send(method, path, token, json, params)

        if response.status_code == 401 and token and self._refresh_handler is not None:
            current = self._token_provider()
            if current and current != token:
                logger.debug(f"{method} {path}: token rotated in flight, retrying")
                retry_token = current
            else:
                logger.debug(f"{method} {path}: 401, refreshing token")
                retry_token = await self._refresh_handler()
            response = await self._send(method, path, retry_token, json, params)

        return self._parse(response)

    def _parse(self, response: httpx.Response) -> Any:
        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()
        raise error_for_status(response.status_code, _error_message(response))

    # =========================================================================
    # Auth (enveloped responses)
    # =========================================================================

    async def login(self, email: str, password: str) -> AuthPayload:
        body = await self.request(
            "POST", "/auth/login",
            json=_body(LoginRequest(email=email, password=password)),
            authenticated=False,
        )
        return AuthPayload.model_validate(body["data"])

    async def register(self, data: RegisterRequest) -> AuthPayload:
        body = await self.request("POST", "/auth/register", json=_body(data), authenticated=False)
        return AuthPayload.model_validate(body["data"])

    async def refresh_token(self, token: str) -> AuthPayload:
        """Exchange ``token`` (possibly expired). Never triggers a refresh itself."""
        response = await self._send("POST", "/auth/refresh-token", token)
        body = self._parse(response)
        return AuthPayload.model_validate(body["data"])

    async def get_profile(self) -> IdentityOut:
        body = await self.request("GET", "/auth/profile")
        return IdentityOut.model_validate(body["data"])

    async def update_profile(self, data: ProfileUpdate) -> IdentityOut:
        body = await self.request("PUT", "/auth/profile", json=_body(data))
        return IdentityOut.model_validate(body["data"])

    async def validate_token(self) -> TokenCheck:
        body = await self.request("POST", "/auth/validate-token")
        return TokenCheck.model_validate(body["data"])

    # =========================================================================
    # Clients
    # =========================================================================

    async def list_clients(self) -> list[ClientOut]:
        return [ClientOut.model_validate(c) for c in await self.request("GET", "/client")]

    async def get_client(self, client_id: str) -> ClientOut:
        return ClientOut.model_validate(await self.request("GET", f"/client/{client_id}"))

    async def create_client(self, data: ClientCreate) -> ClientOut:
        return ClientOut.model_validate(await self.request("POST", "/client", json=_body(data)))

    async def update_client(self, client_id: str, data: ClientUpdate) -> ClientOut:
        body = await self.request("PUT", f"/client/{client_id}", json=_body(data))
        return ClientOut.model_validate(body)

    async def delete_client(self, client_id: str) -> None:
        await self.request("DELETE", f"/client/{client_id}")

    # =========================================================================
    # Projects
    # =========================================================================

    async def list_projects(self, search: str | None = None) -> list[ProjectOut]:
        params = {"search": search} if search else None
        return [ProjectOut.model_validate(p) for p in await self.request("GET", "/project", params=params)]

    async def get_project(self, project_id: str) -> ProjectOut:
        return ProjectOut.model_validate(await self.request("GET", f"/project/{project_id}"))

    async def create_project(self, data: ProjectCreate) -> ProjectOut:
        return ProjectOut.model_validate(await self.request("POST", "/project", json=_body(data)))

    async def update_project(self, project_id: str, data: ProjectUpdate) -> ProjectOut:
        body = await self.request("PUT", f"/project/{project_id}", json=_body(data))
        return ProjectOut.model_validate(body)

    async def update_project_status(self, project_id: str, status: ProjectStatus) -> ProjectOut:
        body = await self.request(
            "PUT", f"/project/{project_id}/status",
            json=_body(ProjectStatusUpdate(status=status)),
        )
        return ProjectOut.model_validate(body)

    async def delete_project(self, project_id: str) -> None:
        await self.request("DELETE", f"/project/{project_id}")

    # =========================================================================
    # Misc
    # =========================================================================

    async def health(self) -> dict:
        """Server health. Lives outside the API prefix."""
        url = self._http.base_url.copy_with(path="/health")
        try:
            response = await self._http.get(url)
        except httpx.TransportError as e:
            raise NetworkError(NETWORK_ERROR_MESSAGE) from e
        return self._parse(response)
