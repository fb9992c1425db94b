"""
AuthHMAC request signing for HTTP requests.

Signs requests with a shared-secret HMAC-SHA1 over a canonical string of
method, content-type, content-md5, date and path, and verifies them on the
receiving side by looking the secret up by key id.

Basic Usage:
    from auth_hmac import AuthHMAC

    auth = AuthHMAC({"my-key-id": "secret"})

    # Client: sign a urllib/requests request, WSGI environ or plain mapping
    auth.sign(request, "my-key-id")
    # request["Authorization"] == "AuthHMAC my-key-id:<base64 digest>"

    # Server: verify (never raises for bad credentials)
    if auth.authenticated(environ):
        ...

Custom service label and string-to-sign:
    auth = AuthHMAC(
        credentials,
        service_label="MyService",
        strategy=lambda view: f"{view.method()} {view.path()}",
    )

Key Rotation Usage:
    from auth_hmac import AuthHMAC, KeyStore

    store = KeyStore.from_mapping({"v1": "secret-v1"})
    store.add_key("v2", "secret-v2")
    auth = AuthHMAC(store)
    store.revoke_key("v1")
"""

from auth_hmac.auth_hmac import (
    DEFAULT_SERVICE_LABEL,
    AuthHMAC,
    Credential,
    SigningOptions,
    canonical_string,
    compute_signature,
    format_credential,
    parse_credential,
    sign_request,
    signature,
)

from auth_hmac.errors import (
    AuthHMACError,
    MissingCredential,
    UnsupportedRequestShape,
)

from auth_hmac.key_store import (
    CallableLookup,
    CredentialLookup,
    KeyStore,
)

from auth_hmac.request_view import (
    AUTHORIZATION_HEADER,
    RequestShape,
    RequestView,
    classify_request,
    request_view,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Signing
    "DEFAULT_SERVICE_LABEL",
    "AuthHMAC",
    "Credential",
    "SigningOptions",
    "canonical_string",
    "compute_signature",
    "format_credential",
    "parse_credential",
    "sign_request",
    "signature",
    # Errors
    "AuthHMACError",
    "MissingCredential",
    "UnsupportedRequestShape",
    # Credential lookups
    "CallableLookup",
    "CredentialLookup",
    "KeyStore",
    # Request views
    "AUTHORIZATION_HEADER",
    "RequestShape",
    "RequestView",
    "classify_request",
    "request_view",
]
