from __future__ import annotations

import base64
import urllib.parse
from dataclasses import dataclass

from rcsdk.errors import InvalidTokenResponseError

TOKEN_ENDPOINT = "/restapi/oauth/token"
REVOKE_ENDPOINT = "/restapi/oauth/revoke"
AUTHORIZE_ENDPOINT = "/restapi/oauth/authorize"

ACCESS_TOKEN_TTL = 3600  # 60 minutes
REFRESH_TOKEN_TTL = 36000  # 10 hours
REFRESH_TOKEN_TTL_REMEMBER = 604800  # 1 week


@dataclass
class TokenResponse:
    access_token: str
    refresh_token: str
    expires_in: int
    refresh_token_expires_in: int
    token_type: str = "Bearer"
    scope: str | None = None
    owner_id: str | None = None
    endpoint_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> "TokenResponse":
        if not isinstance(payload, dict):
            raise InvalidTokenResponseError("Token response must be a JSON object.")

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        expires_in = payload.get("expires_in")
        refresh_token_expires_in = payload.get("refresh_token_expires_in")
        token_type = payload.get("token_type") or "Bearer"

        if not isinstance(access_token, str) or not access_token:
            raise InvalidTokenResponseError("Token response missing access_token.")
        if not isinstance(refresh_token, str) or not refresh_token:
            raise InvalidTokenResponseError("Token response missing refresh_token.")
        if not _is_seconds(expires_in):
            raise InvalidTokenResponseError("Token response missing expires_in.")
        if not _is_seconds(refresh_token_expires_in):
            raise InvalidTokenResponseError(
                "Token response missing refresh_token_expires_in."
            )
        if not isinstance(token_type, str):
            raise InvalidTokenResponseError("Token response token_type must be a string.")
        if token_type.lower() == "bearer":
            token_type = "Bearer"

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(expires_in),
            refresh_token_expires_in=int(refresh_token_expires_in),
            token_type=token_type,
            scope=_optional_str(payload.get("scope")),
            owner_id=_optional_str(payload.get("owner_id")),
            endpoint_id=_optional_str(payload.get("endpoint_id")),
        )


def _is_seconds(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def refresh_token_ttl(remember: bool) -> int:
    return REFRESH_TOKEN_TTL_REMEMBER if remember else REFRESH_TOKEN_TTL


def password_grant(
    username: str,
    extension: str,
    password: str,
    *,
    remember: bool,
) -> dict[str, str]:
    return {
        "grant_type": "password",
        "username": username,
        "password": password,
        "extension": extension,
        "access_token_ttl": str(ACCESS_TOKEN_TTL),
        "refresh_token_ttl": str(refresh_token_ttl(remember)),
    }


def refresh_grant(refresh_token: str, *, remember: bool) -> dict[str, str]:
    return {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "access_token_ttl": str(ACCESS_TOKEN_TTL),
        "refresh_token_ttl": str(refresh_token_ttl(remember)),
    }


def authorization_code_grant(code: str, redirect_uri: str) -> dict[str, str]:
    return {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
    }


def revoke_payload(access_token: str | None) -> dict[str, str]:
    return {"token": access_token or ""}


def basic_credential(app_key: str, app_secret: str) -> str:
    raw = f"{app_key}:{app_secret}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def build_authorization_url(
    server_url: str,
    client_id: str,
    redirect_uri: str,
    state: str = "",
) -> str:
    query = {
        "response_type": "code",
        "state": state,
        "redirect_uri": redirect_uri,
        "client_id": client_id,
    }
    encoded = urllib.parse.urlencode(query, quote_via=urllib.parse.quote, safe="")
    return f"{server_url.rstrip('/')}{AUTHORIZE_ENDPOINT}?{encoded}"
