"""
Exceptions raised by the AuthHMAC signing library.

Verification never raises for authentication failures; these errors are
reserved for caller integration bugs and misconfiguration.
"""

from typing import Any


class AuthHMACError(Exception):
    """Base class for all AuthHMAC errors."""


class UnsupportedRequestShape(AuthHMACError, TypeError):
    """The request object cannot be adapted into a RequestView."""

    def __init__(self, request: Any):
        self.request_type = type(request).__name__
        super().__init__(f"Unsupported request type: {self.request_type}")


class MissingCredential(AuthHMACError, ValueError):
    """No secret is registered for the key id used to sign a request."""

    def __init__(self, key_id: str):
        self.key_id = key_id
        super().__init__(f"No secret found for key id '{key_id}'")
