from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class AuthenticationRequiredError(AppError):
    """No session credential is available."""


class AuthenticationFailedError(AppError):
    """The relay or API rejected the session credential."""


class TransportError(AppError):
    """Socket-level failure. Fatal to the connection, never to the process."""


class HandshakeRejectedError(TransportError):
    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        super().__init__(detail or f"Relay rejected handshake with HTTP {status_code}")


class ConnectionClosedError(TransportError):
    def __init__(self, code: int, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"Connection closed: {code} {reason}".rstrip())


class RequestError(AppError):
    """Request/response call failed. Retrying is the caller's decision."""

    def __init__(self, detail: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(detail)
