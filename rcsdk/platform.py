from __future__ import annotations

import asyncio
import inspect
import threading
import time
from typing import Any, Callable

import httpx

from auth.oauth2 import (
    REVOKE_ENDPOINT,
    TOKEN_ENDPOINT,
    authorization_code_grant,
    basic_credential,
    build_authorization_url,
    password_grant,
    refresh_grant,
    revoke_payload,
)
from auth.single_flight import AsyncSingleFlight, SingleFlight
from auth.token_state import Auth

from .constants import LOGGER
from .errors import CredentialError, ExpiredCredentialError, SessionExpiredError
from .http import ApiResponse, Request, async_event_hooks, build_user_agent, event_hooks

AuthListener = Callable[[ApiResponse], Any]


class _BasePlatform:
    """State and request shaping shared by the blocking and asyncio platforms.

    Nothing here performs I/O. The bearer credential is read from ``auth`` for
    every outbound call instead of being parked on the HTTP client.
    """

    def __init__(
        self,
        app_key: str,
        app_secret: str,
        server_url: str,
        app_name: str = "",
        app_version: str = "",
        *,
        on_auth_refreshed: AuthListener | None = None,
        clock: Callable[[], float] = time.time,
        debug: bool = False,
    ) -> None:
        self._app_key = app_key
        self._app_secret = app_secret
        self.server_url = server_url.rstrip("/")
        self.auth = Auth(clock=clock)
        self.user_agent = build_user_agent(app_name, app_version)
        self._on_auth_refreshed = on_auth_refreshed
        self._debug = debug

    def authorize_uri(self, redirect_uri: str, state: str = "") -> str:
        return build_authorization_url(self.server_url, self._app_key, redirect_uri, state)

    def _default_headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "RC-User-Agent": self.user_agent}

    def _basic_authorization(self) -> str:
        return f"Basic {basic_credential(self._app_key, self._app_secret)}"

    def _bearer_authorization(self) -> str:
        access_token = self.auth.access_token
        if not access_token:
            raise SessionExpiredError()
        return f"{self.auth.token_type} {access_token}"

    def _login_request(
        self, username: str, extension: str, password: str, remember: bool
    ) -> Request:
        return Request(
            TOKEN_ENDPOINT,
            data=password_grant(username, extension, password, remember=remember),
        )

    def _refresh_request(self) -> Request:
        if not self.auth.is_refresh_token_valid():
            raise ExpiredCredentialError()
        return Request(
            TOKEN_ENDPOINT,
            data=refresh_grant(self.auth.refresh_token or "", remember=self.auth.remember),
        )

    def _authenticate_request(self, auth_code: str, redirect_uri: str) -> Request:
        return Request(TOKEN_ENDPOINT, data=authorization_code_grant(auth_code, redirect_uri))

    def _clear_for_logout(self) -> Request:
        # The session is logged out locally even if the revoke call fails.
        access_token = self.auth.access_token
        self.auth.reset()
        LOGGER.info("Session cleared; revoking access token")
        return Request(REVOKE_ENDPOINT, data=revoke_payload(access_token))

    def _store_token_response(
        self, action: str, result: ApiResponse, *, remember: bool | None = None
    ) -> None:
        if not result.ok:
            LOGGER.warning("%s rejected status=%s", action, result.status_code)
            raise CredentialError(
                f"{action} failed with status {result.status_code}: {result.error_message()}",
                result,
            )
        self.auth.set_data(result.json, remember=remember)
        LOGGER.info(
            "%s succeeded owner_id=%s remember=%s",
            action,
            self.auth.owner_id,
            self.auth.remember,
        )

    def _log_revoke(self, result: ApiResponse) -> None:
        if not result.ok:
            LOGGER.warning("Token revoke failed status=%s", result.status_code)


class Platform(_BasePlatform):
    """Blocking session manager backed by ``httpx.Client``.

    Safe to share between threads: at most one refresh is on the wire at a
    time, and callers that need a refresh while one is running wait for it and
    share its outcome.

    ``on_auth_refreshed`` runs after the round trip has been stored (or
    rejected) and the session lock released, so it may use the platform.
    """

    def __init__(
        self,
        app_key: str,
        app_secret: str,
        server_url: str,
        app_name: str = "",
        app_version: str = "",
        *,
        on_auth_refreshed: AuthListener | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
        debug: bool = False,
    ) -> None:
        super().__init__(
            app_key,
            app_secret,
            server_url,
            app_name,
            app_version,
            on_auth_refreshed=on_auth_refreshed,
            clock=clock,
            debug=debug,
        )
        self._client = httpx.Client(
            base_url=self.server_url,
            headers=self._default_headers(),
            timeout=timeout,
            transport=transport,
            event_hooks=event_hooks(debug=debug),
        )
        self._auth_lock = threading.Lock()
        self._refresh_flight: SingleFlight[bool] = SingleFlight()

    def login(
        self, username: str, extension: str, password: str, remember: bool = False
    ) -> ApiResponse:
        request = self._login_request(username, extension, password, remember)
        completed: list[ApiResponse] = []
        try:
            with self._auth_lock:
                result = self._auth_call(request, completed)
                self._store_token_response("Login", result, remember=remember)
            return result
        finally:
            self._notify(completed)

    def refresh(self) -> ApiResponse:
        completed: list[ApiResponse] = []
        try:
            with self._auth_lock:
                return self._refresh_locked(completed)
        finally:
            self._notify(completed)

    def authenticate(self, auth_code: str, redirect_uri: str) -> ApiResponse:
        request = self._authenticate_request(auth_code, redirect_uri)
        completed: list[ApiResponse] = []
        try:
            with self._auth_lock:
                result = self._auth_call(request, completed)
                self._store_token_response("Authorization code exchange", result)
            return result
        finally:
            self._notify(completed)

    def logout(self) -> ApiResponse:
        completed: list[ApiResponse] = []
        try:
            with self._auth_lock:
                request = self._clear_for_logout()
                result = self._auth_call(request, completed)
            self._log_revoke(result)
            return result
        finally:
            self._notify(completed)

    def logged_in(self) -> bool:
        if self.auth.is_access_token_valid():
            return True
        if not self.auth.is_refresh_token_valid():
            return False
        # Only the caller that leads the flight collects a response to report.
        completed: list[ApiResponse] = []
        try:
            return self._refresh_flight.do(lambda: self._refresh_expired_access(completed))
        finally:
            self._notify(completed)

    def send(self, method: str, request: Request) -> ApiResponse:
        if not self.logged_in():
            raise SessionExpiredError()
        http_request = request.build(
            self._client, method, authorization=self._bearer_authorization()
        )
        return ApiResponse(self._client.send(http_request), request)

    def get(self, request: Request) -> ApiResponse:
        return self.send("GET", request)

    def post(self, request: Request) -> ApiResponse:
        return self.send("POST", request)

    def put(self, request: Request) -> ApiResponse:
        return self.send("PUT", request)

    def delete(self, request: Request) -> ApiResponse:
        return self.send("DELETE", request)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Platform":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _refresh_expired_access(self, completed: list[ApiResponse]) -> bool:
        with self._auth_lock:
            if self.auth.is_access_token_valid():
                return True
            if not self.auth.is_refresh_token_valid():
                return False
            self._refresh_locked(completed)
            return True

    def _refresh_locked(self, completed: list[ApiResponse]) -> ApiResponse:
        request = self._refresh_request()
        result = self._auth_call(request, completed)
        self._store_token_response("Refresh", result)
        return result

    def _auth_call(self, request: Request, completed: list[ApiResponse]) -> ApiResponse:
        http_request = request.build(
            self._client, "POST", authorization=self._basic_authorization()
        )
        result = ApiResponse(self._client.send(http_request), request)
        completed.append(result)
        return result

    def _notify(self, completed: list[ApiResponse]) -> None:
        if self._on_auth_refreshed is None:
            return
        for result in completed:
            self._on_auth_refreshed(result)


class AsyncPlatform(_BasePlatform):
    """asyncio session manager backed by ``httpx.AsyncClient``.

    Waiting for a shared refresh suspends the caller instead of blocking a
    worker thread. ``on_auth_refreshed`` may be a coroutine function.
    """

    def __init__(
        self,
        app_key: str,
        app_secret: str,
        server_url: str,
        app_name: str = "",
        app_version: str = "",
        *,
        on_auth_refreshed: AuthListener | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
        debug: bool = False,
    ) -> None:
        super().__init__(
            app_key,
            app_secret,
            server_url,
            app_name,
            app_version,
            on_auth_refreshed=on_auth_refreshed,
            clock=clock,
            debug=debug,
        )
        self._client = httpx.AsyncClient(
            base_url=self.server_url,
            headers=self._default_headers(),
            timeout=timeout,
            transport=transport,
            event_hooks=async_event_hooks(debug=debug),
        )
        self._auth_lock = asyncio.Lock()
        self._refresh_flight: AsyncSingleFlight[bool] = AsyncSingleFlight()

    async def login(
        self, username: str, extension: str, password: str, remember: bool = False
    ) -> ApiResponse:
        request = self._login_request(username, extension, password, remember)
        completed: list[ApiResponse] = []
        try:
            async with self._auth_lock:
                result = await self._auth_call(request, completed)
                self._store_token_response("Login", result, remember=remember)
            return result
        finally:
            await self._notify(completed)

    async def refresh(self) -> ApiResponse:
        completed: list[ApiResponse] = []
        try:
            async with self._auth_lock:
                return await self._refresh_locked(completed)
        finally:
            await self._notify(completed)

    async def authenticate(self, auth_code: str, redirect_uri: str) -> ApiResponse:
        request = self._authenticate_request(auth_code, redirect_uri)
        completed: list[ApiResponse] = []
        try:
            async with self._auth_lock:
                result = await self._auth_call(request, completed)
                self._store_token_response("Authorization code exchange", result)
            return result
        finally:
            await self._notify(completed)

    async def logout(self) -> ApiResponse:
        completed: list[ApiResponse] = []
        try:
            async with self._auth_lock:
                request = self._clear_for_logout()
                result = await self._auth_call(request, completed)
            self._log_revoke(result)
            return result
        finally:
            await self._notify(completed)

    async def logged_in(self) -> bool:
        if self.auth.is_access_token_valid():
            return True
        if not self.auth.is_refresh_token_valid():
            return False
        completed: list[ApiResponse] = []
        try:
            return await self._refresh_flight.do(
                lambda: self._refresh_expired_access(completed)
            )
        finally:
            await self._notify(completed)

    async def send(self, method: str, request: Request) -> ApiResponse:
        if not await self.logged_in():
            raise SessionExpiredError()
        http_request = request.build(
            self._client, method, authorization=self._bearer_authorization()
        )
        return ApiResponse(await self._client.send(http_request), request)

    async def get(self, request: Request) -> ApiResponse:
        return await self.send("GET", request)

    async def post(self, request: Request) -> ApiResponse:
        return await self.send("POST", request)

    async def put(self, request: Request) -> ApiResponse:
        return await self.send("PUT", request)

    async def delete(self, request: Request) -> ApiResponse:
        return await self.send("DELETE", request)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncPlatform":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _refresh_expired_access(self, completed: list[ApiResponse]) -> bool:
        async with self._auth_lock:
            if self.auth.is_access_token_valid():
                return True
            if not self.auth.is_refresh_token_valid():
                return False
            await self._refresh_locked(completed)
            return True

    async def _refresh_locked(self, completed: list[ApiResponse]) -> ApiResponse:
        request = self._refresh_request()
        result = await self._auth_call(request, completed)
        self._store_token_response("Refresh", result)
        return result

    async def _auth_call(self, request: Request, completed: list[ApiResponse]) -> ApiResponse:
        http_request = request.build(
            self._client, "POST", authorization=self._basic_authorization()
        )
        result = ApiResponse(await self._client.send(http_request), request)
        completed.append(result)
        return result

    async def _notify(self, completed: list[ApiResponse]) -> None:
        if self._on_auth_refreshed is None:
            return
        for result in completed:
            outcome = self._on_auth_refreshed(result)
            if inspect.isawaitable(outcome):
                await outcome
