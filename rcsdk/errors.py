from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rcsdk.http import ApiResponse


class RingCentralError(RuntimeError):
    pass


class CredentialError(RingCentralError):
    """The auth server rejected a login, refresh or code exchange."""

    def __init__(self, message: str, response: ApiResponse | None = None) -> None:
        super().__init__(message)
        self.response = response
        self.status_code = response.status_code if response is not None else None


class ExpiredCredentialError(CredentialError):
    def __init__(self, message: str = "Refresh token has expired.") -> None:
        super().__init__(message)


class SessionExpiredError(RingCentralError):
    def __init__(self, message: str = "Access has expired.") -> None:
        super().__init__(message)
        self.status_code = 401


class InvalidTokenResponseError(RingCentralError):
    pass
