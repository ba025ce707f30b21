"""Domain-specific exceptions for call admission and relay operations.

These exceptions are safe to import from API layers without pulling in the Twilio SDK.
"""

from __future__ import annotations

from typing import Any


class CallRelayError(Exception):
    status_code: int = 500
    default_detail: str = "Call relay error"

    def __init__(self, detail: str | None = None, *, details: Any = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail
        self.details = details


class InvalidStatusError(CallRelayError):
    status_code = 400
    default_detail = "Call not accepted"


class MissingParameterError(CallRelayError):
    status_code = 400
    default_detail = "Required parameter is missing"


class CallNotFoundError(CallRelayError):
    status_code = 404
    default_detail = "Unknown call"


class NoPendingCallError(CallRelayError):
    status_code = 409
    default_detail = "There is no incoming call to accept"


class PayloadTooLargeError(CallRelayError):
    status_code = 413
    default_detail = "Upload is too large"


class UpstreamProviderError(CallRelayError):
    status_code = 502
    default_detail = "Upstream provider request failed"


class ConfigurationError(CallRelayError):
    status_code = 503
    default_detail = "Service is not configured"
