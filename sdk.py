from __future__ import annotations

import json
import os

from rcsdk.constants import LOGGER
from rcsdk.env import load_env, load_settings, setup_logging
from rcsdk.errors import (
    CredentialError,
    ExpiredCredentialError,
    InvalidTokenResponseError,
    RingCentralError,
    SessionExpiredError,
)
from rcsdk.http import ApiResponse, Request
from rcsdk.platform import AsyncPlatform, AuthListener, Platform

__all__ = [
    "ApiResponse",
    "AsyncPlatform",
    "CredentialError",
    "ExpiredCredentialError",
    "InvalidTokenResponseError",
    "Platform",
    "Request",
    "RingCentralError",
    "SessionExpiredError",
    "create_platform",
    "main",
]

CURRENT_EXTENSION_PATH = "/restapi/v1.0/account/~/extension/~"


def create_platform(on_auth_refreshed: AuthListener | None = None) -> Platform:
    load_env()
    setup_logging()
    settings = load_settings()
    return Platform(
        settings.app_key,
        settings.app_secret,
        settings.server_url,
        settings.app_name,
        settings.app_version,
        on_auth_refreshed=on_auth_refreshed,
        timeout=settings.timeout,
        debug=settings.debug,
    )


def main() -> None:
    platform = create_platform()
    username = os.getenv("RC_USERNAME", "")
    if not username:
        raise RuntimeError("RC_USERNAME must be set to log in.")

    with platform:
        platform.login(
            username,
            os.getenv("RC_EXTENSION", ""),
            os.getenv("RC_PASSWORD", ""),
        )
        try:
            response = platform.get(Request(CURRENT_EXTENSION_PATH))
            if not response.ok:
                LOGGER.warning(
                    "Extension lookup failed status=%s: %s",
                    response.status_code,
                    response.error_message(),
                )
            print(json.dumps(response.json, indent=2, sort_keys=True))
        finally:
            platform.logout()


if __name__ == "__main__":
    main()
