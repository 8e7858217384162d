from __future__ import annotations

import time
from typing import Callable

from auth.oauth2 import TokenResponse


class Auth:
    """Current token set of one session.

    Not thread-safe on its own; the owning platform serializes every mutation.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self.remember = False
        self.token_type = "Bearer"
        self.access_token: str | None = None
        self.refresh_token: str | None = None
        self.access_token_expires_at: float | None = None
        self.refresh_token_expires_at: float | None = None
        self.scope: str | None = None
        self.owner_id: str | None = None
        self.endpoint_id: str | None = None

    def set_data(self, payload: dict | None, *, remember: bool | None = None) -> TokenResponse:
        # Validate everything before touching state so a bad payload keeps the old set.
        token = TokenResponse.from_payload(payload)
        now = self._clock()

        self.access_token = token.access_token
        self.refresh_token = token.refresh_token
        self.access_token_expires_at = now + token.expires_in
        self.refresh_token_expires_at = now + token.refresh_token_expires_in
        self.token_type = token.token_type
        self.scope = token.scope
        self.owner_id = token.owner_id
        self.endpoint_id = token.endpoint_id
        if remember is not None:
            self.remember = remember
        return token

    def reset(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.access_token_expires_at = None
        self.refresh_token_expires_at = None
        self.scope = None
        self.owner_id = None
        self.endpoint_id = None

    def is_access_token_valid(self) -> bool:
        return _is_valid(self.access_token, self.access_token_expires_at, self._clock())

    def is_refresh_token_valid(self) -> bool:
        return _is_valid(self.refresh_token, self.refresh_token_expires_at, self._clock())


def _is_valid(token: str | None, expires_at: float | None, now: float) -> bool:
    if not token or expires_at is None:
        return False
    return now < expires_at
