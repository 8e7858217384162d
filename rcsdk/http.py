from __future__ import annotations

import json as jsonlib
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

import httpx

from .constants import (
    LOGGER,
    METHOD_OVERRIDE_HEADER,
    REQUEST_ID_HEADER,
    SDK_VERSION,
    UNTUNNELED_METHODS,
)

_USER_AGENT_STRIP = re.compile(r"""(?:[^a-z0-9\-_. ]|(?<=['"])s)""", re.IGNORECASE)


@dataclass
class Request:
    url: str
    data: dict[str, str] | None = None
    json: Any = None
    params: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    http_method_tunneling: bool = False

    def build(
        self,
        client: httpx.Client | httpx.AsyncClient,
        method: str,
        *,
        authorization: str | None = None,
    ) -> httpx.Request:
        method = method.upper()
        headers = dict(self.headers)
        if authorization is not None:
            headers["Authorization"] = authorization
        if self.http_method_tunneling:
            method, headers = apply_http_method_tunneling(method, headers)

        return client.build_request(
            method,
            self.url,
            data=self.data,
            json=self.json,
            params=self.params,
            headers=headers,
        )


class ApiResponse:
    def __init__(self, response: httpx.Response, request: Request | None = None) -> None:
        self.raw = response
        self.request = request

    @property
    def status_code(self) -> int:
        return self.raw.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self.raw.headers

    @property
    def text(self) -> str:
        return self.raw.text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @cached_property
    def json(self) -> Any:
        if not self.raw.content:
            return None
        try:
            return self.raw.json()
        except (jsonlib.JSONDecodeError, UnicodeDecodeError):
            return None

    def error_message(self) -> str:
        payload = self.json
        if isinstance(payload, dict):
            for key in ("message", "error_description", "description"):
                value = payload.get(key)
                if isinstance(value, str) and value:
                    return value
            errors = payload.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                message = errors[0].get("message")
                if isinstance(message, str) and message:
                    return message
            error = payload.get("error")
            if isinstance(error, str) and error:
                return error
        return f"RingCentral API request failed with status {self.status_code}."

    def __repr__(self) -> str:
        return f"<ApiResponse [{self.status_code}]>"


def apply_http_method_tunneling(
    method: str, headers: dict[str, str]
) -> tuple[str, dict[str, str]]:
    if method in UNTUNNELED_METHODS:
        return method, headers
    tunneled = dict(headers)
    tunneled[METHOD_OVERRIDE_HEADER] = method
    return "POST", tunneled


def build_user_agent(app_name: str = "", app_version: str = "") -> str:
    agent = ""
    if app_name:
        agent = app_name
        if app_version:
            agent += f"_{app_version}"

    if agent:
        agent += f".RCCSSDK_{SDK_VERSION}"
    else:
        agent = f"RCCSSDK_{SDK_VERSION}"
    return _USER_AGENT_STRIP.sub("", agent)


def handle_rate_limits(response: httpx.Response) -> None:
    remaining = response.headers.get("x-rate-limit-remaining")
    window = response.headers.get("x-rate-limit-window")
    group = response.headers.get("x-rate-limit-group")
    endpoint = str(response.request.url)

    if remaining is not None or window is not None:
        LOGGER.debug(
            "Rate limit state endpoint=%s group=%s remaining=%s window=%s",
            endpoint,
            group,
            remaining,
            window,
        )

    if response.status_code == 429 or remaining == "0":
        LOGGER.warning(
            "Rate limit warning endpoint=%s status=%s remaining=%s retry_after=%s",
            endpoint,
            response.status_code,
            remaining,
            response.headers.get("retry-after"),
        )


def log_request(request: httpx.Request) -> None:
    LOGGER.info("RingCentral request %s %s", request.method, request.url)


def log_response(response: httpx.Response) -> None:
    LOGGER.info(
        "RingCentral response %s %s -> %s",
        response.request.method,
        response.request.url,
        response.status_code,
    )
    if response.status_code >= 400:
        request_id = response.headers.get(REQUEST_ID_HEADER)
        if request_id:
            LOGGER.warning("RingCentral %s: %s", REQUEST_ID_HEADER, request_id)


def log_error_body(body: bytes) -> None:
    text = body.decode("utf-8", errors="replace")
    if len(text) > 1000:
        text = text[:1000] + "...<truncated>"
    LOGGER.warning("RingCentral error body: %s", text)


def event_hooks(*, debug: bool) -> dict[str, list]:
    def on_response(response: httpx.Response) -> None:
        handle_rate_limits(response)
        if not debug:
            return
        log_response(response)
        if response.status_code >= 400:
            log_error_body(response.read())

    request_hooks: list = [log_request] if debug else []
    return {"request": request_hooks, "response": [on_response]}


def async_event_hooks(*, debug: bool) -> dict[str, list]:
    async def on_request(request: httpx.Request) -> None:
        log_request(request)

    async def on_response(response: httpx.Response) -> None:
        handle_rate_limits(response)
        if not debug:
            return
        log_response(response)
        if response.status_code >= 400:
            log_error_body(await response.aread())

    request_hooks: list = [on_request] if debug else []
    return {"request": request_hooks, "response": [on_response]}
