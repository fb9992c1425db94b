import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass
from email.utils import formatdate
from typing import Any, Callable, NamedTuple, Optional, Union

from auth_hmac.errors import MissingCredential
from auth_hmac.key_store import CredentialLookup
from auth_hmac.request_view import RequestView, request_view

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_LABEL = "AuthHMAC"

SignatureStrategy = Callable[[RequestView], str]


class Credential(NamedTuple):
    """Parsed value of an AuthHMAC authorization header."""

    service_label: str
    key_id: str
    digest: str


def canonical_string(request: Any) -> str:
    """
    Build the canonical string that is signed for a request.

    The string is five newline-separated fields, in order:
    method, content-type, content-md5, date and path. Missing fields are
    kept as empty lines and the path never includes the query string.

    Args:
        request: A RequestView or any supported request shape

    Returns:
        The canonical string, e.g. "PUT\\ntext/plain\\nblahblah\\n<date>\\n/path/to/put"

    Raises:
        UnsupportedRequestShape: If the request cannot be adapted
    """
    view = request_view(request)
    return "\n".join(
        [
            view.method(),
            view.header("content-type"),
            view.header("content-md5"),
            view.header("date"),
            view.path(),
        ]
    )


def compute_signature(message: str, secret: Union[str, bytes], encoding: str = "utf-8") -> str:
    """
    Compute the base64-encoded HMAC-SHA1 digest of a message.

    Args:
        message: The string to sign
        secret: The shared secret used as the HMAC key
        encoding: Text encoding for message and secret (default: utf-8)

    Returns:
        Base64-encoded digest without trailing whitespace
    """
    if isinstance(secret, str):
        secret = secret.encode(encoding)
    h = hmac.new(secret, message.encode(encoding), hashlib.sha1)
    return base64.b64encode(h.digest()).decode("ascii").strip()


def format_credential(service_label: str, key_id: str, digest: str) -> str:
    """Serialize a credential as "<service_label> <key_id>:<digest>"."""
    return f"{service_label} {key_id}:{digest}"


def parse_credential(value: Optional[str]) -> Optional[Credential]:
    """
    Parse an authorization header value into a Credential.

    The service label ends at the first space and the digest starts after
    the last colon, so key ids may contain spaces.

    Returns:
        The parsed Credential, or None if the value is not in AuthHMAC format
    """
    if not value:
        return None

    service_label, sep, rest = value.partition(" ")
    if not sep:
        return None

    key_id, sep, digest = rest.rpartition(":")
    if not sep:
        return None

    return Credential(service_label, key_id, digest)


@dataclass(frozen=True)
class SigningOptions:
    """Configuration of an AuthHMAC instance."""

    service_label: str = DEFAULT_SERVICE_LABEL
    strategy: SignatureStrategy = canonical_string
    add_date: bool = False  # Stamp a Date header on unsigned requests without one


class AuthHMAC:
    """
    Signs and verifies requests with a shared-secret HMAC.

    Usage:
        auth = AuthHMAC({"my-key-id": "secret"})

        # Client: adds "Authorization: AuthHMAC my-key-id:<digest>"
        auth.sign(request, "my-key-id")

        # Server
        if not auth.authenticated(environ):
            ...

    The credential lookup is only read, never cached or modified, so the
    same instance can be shared between threads as long as the lookup
    supports concurrent reads.
    """

    def __init__(
        self,
        credentials: CredentialLookup,
        service_label: str = DEFAULT_SERVICE_LABEL,
        strategy: SignatureStrategy = canonical_string,
        add_date: bool = False,
    ):
        """
        Args:
            credentials: Lookup of secrets by key id (a dict, KeyStore, ...)
            service_label: Prefix of the authorization header value
            strategy: Builds the string to sign from a RequestView
            add_date: Whether sign() adds a Date header to requests without one
        """
        self._credentials = credentials
        self._options = SigningOptions(service_label, strategy, add_date)

    @property
    def options(self) -> SigningOptions:
        return self._options

    @property
    def service_label(self) -> str:
        return self._options.service_label

    def signature(self, request: Any, secret: Union[str, bytes]) -> str:
        """Digest of the request's string-to-sign under the configured strategy."""
        view = request_view(request)
        return compute_signature(self._options.strategy(view), secret)

    def sign(self, request: Any, key_id: str) -> str:
        """
        Sign a request in place.

        Args:
            request: Any supported request shape
            key_id: Identifier of the secret to sign with

        Returns:
            The credential written to the request's Authorization header

        Raises:
            UnsupportedRequestShape: If the request cannot be adapted
            MissingCredential: If key_id has no secret in the lookup
        """
        view = request_view(request)

        secret = self._credentials.get(key_id)
        if secret is None:
            raise MissingCredential(key_id)

        if self._options.add_date and not view.header("date"):
            view.set_header("Date", formatdate(usegmt=True))

        credential = format_credential(
            self._options.service_label, key_id, self.signature(view, secret)
        )
        view.set_credential(credential)

        logger.debug("Signed %r with key id '%s' (%s)", view, key_id, self._options.service_label)
        return credential

    def authenticated(self, request: Any) -> bool:
        """
        Check the credential carried by a request.

        Every authentication failure (missing or malformed header, foreign
        service label, unknown key, digest mismatch) returns False. Errors
        raised by the credential lookup or the strategy also return False.

        Raises:
            UnsupportedRequestShape: If the request cannot be adapted
        """
        view = request_view(request)

        credential = parse_credential(view.credential())
        if credential is None:
            logger.debug("Rejected %r: missing or malformed credential", view)
            return False

        if credential.service_label != self._options.service_label:
            logger.debug("Rejected %r: service label '%s'", view, credential.service_label)
            return False

        if not credential.key_id or not credential.digest:
            logger.debug("Rejected %r: empty key id or digest", view)
            return False

        try:
            secret = self._credentials.get(credential.key_id)
            if secret is None:
                logger.debug("Rejected %r: unknown key id '%s'", view, credential.key_id)
                return False
            expected = self.signature(view, secret)
        except Exception as e:
            logger.debug("Rejected %r: verification error for key id '%s': %s", view, credential.key_id, e)
            return False

        if not hmac.compare_digest(expected.encode("utf-8"), credential.digest.encode("utf-8")):
            logger.debug("Rejected %r: signature mismatch for key id '%s'", view, credential.key_id)
            return False

        return True


def signature(
    request: Any, secret: Union[str, bytes], strategy: SignatureStrategy = canonical_string
) -> str:
    """
    Compute the digest for a request without touching it.

    Args:
        request: Any supported request shape
        secret: The shared secret
        strategy: Builds the string to sign (default: canonical_string)

    Returns:
        Base64-encoded HMAC-SHA1 digest
    """
    return compute_signature(strategy(request_view(request)), secret)


def sign_request(
    request: Any,
    key_id: str,
    secret: Union[str, bytes],
    service_label: str = DEFAULT_SERVICE_LABEL,
    strategy: SignatureStrategy = canonical_string,
) -> str:
    """
    Sign a request with an explicit secret.

    Equivalent to ``AuthHMAC({key_id: secret}, service_label, strategy).sign(request, key_id)``.

    Returns:
        The credential written to the request's Authorization header
    """
    return AuthHMAC({key_id: secret}, service_label, strategy).sign(request, key_id)
