"""
Uniform read/write access to the request fields used for signing.

Three request shapes are understood:

- native request objects: ``urllib.request.Request``, ``requests.Request``
  and ``requests.PreparedRequest``
- environment mappings: a WSGI environ, or a client-side environment holding
  ``method``, ``url`` and ``request_headers`` keys
- plain field mappings, e.g.
  ``{"REQUEST_METHOD": "PUT", "content-type": "text/plain", "PATH_INFO": "/x"}``

The shape is decided once, when the view is built; each view class only knows
how to read its own shape.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from enum import Enum
from typing import Any, Callable, Optional
from urllib.parse import ParseResult, SplitResult, quote, urlsplit
from urllib.request import Request as UrllibRequest

import requests
from requests.structures import CaseInsensitiveDict

from auth_hmac.errors import UnsupportedRequestShape

AUTHORIZATION_HEADER = "Authorization"

_METHOD_KEYS = ("REQUEST_METHOD", ":method", "method")
_PATH_KEYS = (":path", "path", "url", "REQUEST_URI", "RAW_URI")

# CGI variables that are not prefixed with HTTP_ in a WSGI environ
_UNPREFIXED_CGI_HEADERS = {"content-type", "content-length"}

# Characters left unescaped when rebuilding a raw path from PATH_INFO
_PATH_SAFE = "/;=,:@!$&'()*+~"


class RequestShape(Enum):
    """Supported request representations."""

    NATIVE = "native"
    ENVIRONMENT = "environment"
    FIELDS = "fields"


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return str(value)


def _header_name(name: str) -> str:
    """Normalize a header or CGI variable name for comparison."""
    key = name.lower().replace("_", "-")
    if key.startswith("http-"):
        key = key[5:]
    return key


def _find_key(
    headers: Mapping, name: str, normalize: Callable[[str], str] = _header_name
) -> Optional[str]:
    """Return the key in headers that names the same field as name, if any."""
    wanted = normalize(name)
    for key in headers:
        if isinstance(key, str) and normalize(key) == wanted:
            return key
    return None


def _lookup(headers: Mapping, name: str, normalize: Callable[[str], str] = _header_name) -> str:
    key = _find_key(headers, name, normalize)
    if key is None:
        return ""
    return _text(headers[key])


def _store(
    headers: MutableMapping,
    name: str,
    value: str,
    default_key: Optional[str] = None,
    normalize: Callable[[str], str] = _header_name,
) -> None:
    # Reuse an existing spelling of the field so it is never duplicated
    key = _find_key(headers, name, normalize)
    headers[key if key is not None else default_key or name] = value


def _path_only(value: Any) -> str:
    """Strip the query string, fragment and the scheme/host of full URLs from value."""
    if isinstance(value, (SplitResult, ParseResult)):
        return value.path
    text = _text(value)
    if "://" in text:
        return urlsplit(text).path
    return re.split(r"[?#]", text, maxsplit=1)[0]


def _mapping_method(mapping: Mapping) -> str:
    for key in _METHOD_KEYS:
        value = mapping.get(key)
        if value:
            return _text(value).upper()
    return ""


def _mapping_path(mapping: Mapping) -> str:
    if "PATH_INFO" in mapping:
        return _text(mapping.get("SCRIPT_NAME")) + _path_only(mapping["PATH_INFO"])
    for key in _PATH_KEYS:
        if key in mapping:
            return _path_only(mapping[key])
    return ""


class RequestView(ABC):
    """Read/write adapter over a single request object."""

    shape: RequestShape

    def __init__(self, request: Any):
        self.request = request

    @abstractmethod
    def method(self) -> str:
        """Upper-case HTTP verb, or an empty string."""

    @abstractmethod
    def header(self, name: str) -> str:
        """Value of a header, matched case-insensitively; empty if absent."""

    @abstractmethod
    def set_header(self, name: str, value: str) -> None:
        """Write a header into the underlying request."""

    @abstractmethod
    def path(self) -> str:
        """Request path without the query string."""

    def credential(self) -> str:
        return self.header(AUTHORIZATION_HEADER)

    def set_credential(self, value: str) -> None:
        self.set_header(AUTHORIZATION_HEADER, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.method()} {self.path()}>"


class UrllibRequestView(RequestView):
    """View over ``urllib.request.Request``."""

    shape = RequestShape.NATIVE

    def method(self) -> str:
        return self.request.get_method().upper()

    def header(self, name: str) -> str:
        wanted = name.lower()
        for key, value in self.request.header_items():
            if key.lower() == wanted:
                return _text(value)
        return ""

    def set_header(self, name: str, value: str) -> None:
        # urllib stores header names as str.capitalize() in two dicts
        self.request.remove_header(name.capitalize())
        self.request.add_header(name, value)

    def path(self) -> str:
        return _path_only(self.request.selector) or "/"


class RequestsRequestView(RequestView):
    """View over ``requests.Request`` and ``requests.PreparedRequest``."""

    shape = RequestShape.NATIVE

    def method(self) -> str:
        return _text(self.request.method).upper()

    def header(self, name: str) -> str:
        return _lookup(self.request.headers or {}, name, str.lower)

    def set_header(self, name: str, value: str) -> None:
        if self.request.headers is None:
            self.request.headers = CaseInsensitiveDict()
        _store(self.request.headers, name, value, normalize=str.lower)

    def path(self) -> str:
        return _path_only(self.request.url) or "/"


class WSGIEnvironView(RequestView):
    """View over a WSGI environ (``REQUEST_METHOD``, ``HTTP_DATE``, ...)."""

    shape = RequestShape.ENVIRONMENT

    def method(self) -> str:
        return _mapping_method(self.request)

    def header(self, name: str) -> str:
        return _lookup(self.request, name)

    def set_header(self, name: str, value: str) -> None:
        cgi_name = name.upper().replace("-", "_")
        if name.lower() not in _UNPREFIXED_CGI_HEADERS:
            cgi_name = "HTTP_" + cgi_name
        _store(self.request, name, value, default_key=cgi_name)

    def path(self) -> str:
        # PATH_INFO is percent-decoded; signers sign the raw path
        for key in ("RAW_URI", "REQUEST_URI"):
            if self.request.get(key):
                return _path_only(self.request[key])
        path = _text(self.request.get("SCRIPT_NAME")) + _text(self.request.get("PATH_INFO"))
        # PEP 3333 carries the request bytes as latin-1 str
        return quote(path, safe=_PATH_SAFE, encoding="latin-1")


class ClientEnvironView(RequestView):
    """View over a client-side environment with a full ``url`` and ``request_headers``."""

    shape = RequestShape.ENVIRONMENT

    def method(self) -> str:
        return _mapping_method(self.request)

    def header(self, name: str) -> str:
        return _lookup(self.request.get("request_headers") or {}, name)

    def set_header(self, name: str, value: str) -> None:
        headers = self.request.get("request_headers")
        if headers is None:
            headers = self.request["request_headers"] = {}
        _store(headers, name, value)

    def path(self) -> str:
        return _path_only(self.request.get("url"))


class FieldMappingView(RequestView):
    """View over a plain mapping of request fields."""

    shape = RequestShape.FIELDS

    def method(self) -> str:
        return _mapping_method(self.request)

    def header(self, name: str) -> str:
        return _lookup(self.request, name)

    def set_header(self, name: str, value: str) -> None:
        _store(self.request, name, value)

    def path(self) -> str:
        return _mapping_path(self.request)


_NATIVE_TYPES = (UrllibRequest, requests.Request, requests.PreparedRequest)


def classify_request(request: Any) -> RequestShape:
    """
    Decide which request shape an object has.

    Args:
        request: A native request, environment mapping, field mapping or RequestView

    Returns:
        The RequestShape tag for the object

    Raises:
        UnsupportedRequestShape: If the object is none of the supported shapes
    """
    if isinstance(request, RequestView):
        return request.shape
    if isinstance(request, _NATIVE_TYPES):
        return RequestShape.NATIVE
    if isinstance(request, Mapping):
        if "wsgi.version" in request or "request_headers" in request:
            return RequestShape.ENVIRONMENT
        return RequestShape.FIELDS
    raise UnsupportedRequestShape(request)


def request_view(request: Any) -> RequestView:
    """
    Build the RequestView for a request.

    An existing RequestView is returned unchanged.

    Raises:
        UnsupportedRequestShape: If the request cannot be adapted
    """
    if isinstance(request, RequestView):
        return request

    shape = classify_request(request)
    if shape is RequestShape.NATIVE:
        if isinstance(request, UrllibRequest):
            return UrllibRequestView(request)
        return RequestsRequestView(request)
    if shape is RequestShape.ENVIRONMENT:
        if "request_headers" in request:
            return ClientEnvironView(request)
        return WSGIEnvironView(request)
    return FieldMappingView(request)
