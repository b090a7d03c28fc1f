"""HTTP client for the Couchbase Capella v4 management API."""

from __future__ import annotations

import json
import posixpath
from typing import Any, Callable, Mapping, Optional, Protocol, Union
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_BASE_URL = "https://cloudapi.cloud.couchbase.com"
DEFAULT_USER_AGENT = "capellaextras-terraform-provider/unknown"

DEFAULT_KEY_HEADER = "X-Client-Id"
DEFAULT_SECRET_HEADER = "X-Client-Secret"

# Connection failures, 429 and every 5xx except 501 are retried.
_RETRY_STATUSES = frozenset({429} | (set(range(500, 600)) - {501}))

Decoder = Union[bool, Callable[[Any], Any]]


class Authenticator(Protocol):
    """Anything that can add credentials to an outgoing request."""

    def apply(self, request: requests.PreparedRequest) -> None: ...


class BearerTokenAuth:
    """Sends ``Authorization: Bearer <token>`` when a token is set."""

    def __init__(self, token: str = "") -> None:
        self.token = token

    def apply(self, request: requests.PreparedRequest) -> None:
        if self.token:
            request.headers["Authorization"] = "Bearer " + self.token


class APIKeySecretAuth:
    """Sends an API key and secret in configurable headers."""

    def __init__(
        self,
        key: str = "",
        secret: str = "",
        header_key_name: str = "",
        header_secret_name: str = "",
    ) -> None:
        self.key = key
        self.secret = secret
        self.header_key_name = header_key_name
        self.header_secret_name = header_secret_name

    def apply(self, request: requests.PreparedRequest) -> None:
        if not self.key and not self.secret:
            return
        if self.key:
            request.headers[self.header_key_name or DEFAULT_KEY_HEADER] = self.key
        if self.secret:
            request.headers[self.header_secret_name or DEFAULT_SECRET_HEADER] = self.secret


class CapellaError(Exception):
    """Raised when a Capella API call fails."""

    def __init__(self, message: str, response: Optional[requests.Response] = None) -> None:
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> Optional[int]:
        return None if self.response is None else self.response.status_code


class ApiError(CapellaError):
    """An error payload returned by the API with a code and/or message."""

    def __init__(
        self,
        code: str = "",
        message: str = "",
        detail: Any = None,
        response: Optional[requests.Response] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.detail = detail
        super().__init__(self._describe(), response)

    def _describe(self) -> str:
        if not self.code and not self.message:
            return "capella api error"
        if not self.code:
            return self.message
        if not self.message:
            return self.code
        return f"{self.code}: {self.message}"

    def __str__(self) -> str:
        text = self._describe()
        if self.response is not None:
            text += f" (status {self.response.status_code})"
        return text


def make_session(retry_max: int = 4, retry_wait_min: float = 0.5, retry_wait_max: float = 4.0) -> requests.Session:
    """Build a session that retries transient failures with exponential backoff."""
    retry = Retry(
        total=retry_max,
        connect=retry_max,
        read=retry_max,
        status=retry_max,
        backoff_factor=retry_wait_min,
        backoff_max=retry_wait_max,
        status_forcelist=_RETRY_STATUSES,
        allowed_methods=None,
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def _normalise_base_url(raw: Optional[str]) -> str:
    if not raw:
        return DEFAULT_BASE_URL
    if not raw.startswith("http"):
        raw = "https://" + raw
    try:
        urlsplit(raw)
    except ValueError:
        return DEFAULT_BASE_URL
    return raw


def _error_from(response: requests.Response) -> CapellaError:
    raw = response.content
    try:
        payload = json.loads(raw)
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        fields = {str(key).lower(): value for key, value in payload.items()}
        code = fields.get("code") or ""
        message = fields.get("message") or ""
        if isinstance(code, str) and isinstance(message, str) and (code or message):
            return ApiError(code, message, fields.get("detail"), response)
    body = raw.decode("utf-8", errors="replace")
    return CapellaError(
        f"capella api request failed: status {response.status_code}, body: {body}",
        response,
    )


def _read_json(response: requests.Response) -> Any:
    try:
        text = response.content.decode("utf-8").lstrip(" \t\r\n")
        if not text:
            return None
        value, _ = json.JSONDecoder().raw_decode(text)
    except ValueError as exc:
        raise CapellaError(f"invalid JSON response: {exc}", response) from exc
    return value


class Client:
    """A small Capella v4 API client with retries, authentication and JSON handling."""

    def __init__(
        self,
        base_url: Optional[str] = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        auth: Optional[Authenticator] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        organization_id: str = "",
        project_id: str = "",
    ) -> None:
        self.base_url = _normalise_base_url(base_url)
        self.session = session if session is not None else make_session()
        self.auth = auth
        self.user_agent = user_agent
        self.organization_id = organization_id
        self.project_id = project_id

    def _build_url(self, path: str, query: Optional[Mapping[str, str]]) -> str:
        if path.startswith(("http://", "https://")):
            url = path
        else:
            clean = posixpath.normpath("/" + path.strip().lstrip("/"))
            url = urljoin(self.base_url, clean)
        if query:
            parts = urlsplit(url)
            pairs = [
                (key, value)
                for key, value in parse_qsl(parts.query, keep_blank_values=True)
                if key not in query
            ]
            pairs.extend(query.items())
            pairs.sort(key=lambda pair: pair[0])
            url = urlunsplit(parts._replace(query=urlencode(pairs)))
        return url

    def do(
        self,
        method: str,
        path: str,
        query: Optional[Mapping[str, str]] = None,
        body: Any = None,
        decode: Decoder = False,
    ) -> Any:
        """Send a request and check its status.

        Without ``decode`` the response is returned. With ``decode=True`` the
        parsed JSON body is returned, and with a callable the callable's result
        on the parsed body. An empty or null body gives ``None``.
        """
        if not self.base_url:
            raise CapellaError("client base URL not configured")
        url = self._build_url(path, query)

        headers = {"Accept": "application/json"}
        data = None
        if body is not None:
            encoded = json.dumps(body, ensure_ascii=False, separators=(",", ":")) + "\n"
            data = encoded.encode("utf-8")
            headers["Content-Type"] = "application/json"
        if self.user_agent:
            headers["User-Agent"] = self.user_agent

        prepared = self.session.prepare_request(
            requests.Request(method, url, headers=headers, data=data)
        )
        if self.auth is not None:
            self.auth.apply(prepared)

        try:
            response = self.session.send(prepared)
        except requests.RequestException as exc:
            raise CapellaError(str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise _error_from(response)

        if decode is False or decode is None:
            return response
        payload = _read_json(response)
        if payload is None or decode is True:
            return payload
        return decode(payload)

    def get(self, path: str, query: Optional[Mapping[str, str]] = None, decode: Decoder = False) -> Any:
        return self.do("GET", path, query, None, decode)

    def post(self, path: str, body: Any = None, decode: Decoder = False) -> Any:
        return self.do("POST", path, None, body, decode)

    def put(self, path: str, body: Any = None, decode: Decoder = False) -> Any:
        return self.do("PUT", path, None, body, decode)

    def patch(self, path: str, body: Any = None, decode: Decoder = False) -> Any:
        return self.do("PATCH", path, None, body, decode)

    def delete(self, path: str) -> requests.Response:
        return self.do("DELETE", path)