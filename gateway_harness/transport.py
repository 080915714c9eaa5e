"""
Single-shot HTTP transport.

Every request is sent the way curl would send it: fresh connection, no
cookies carried between calls, redirects returned as-is, a fixed protocol
version and a fixed User-Agent. Status codes are never interpreted here.
"""
import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

import httpx

from gateway_harness.config import HarnessConfig
from gateway_harness.errors import TransportError

logger = logging.getLogger(__name__)

METHODS = ("GET", "POST", "PUT", "DELETE")


def mask_token(token: Optional[str]) -> str:
    if not token:
        return "null"
    return token[:20] + "..."


@dataclass(frozen=True)
class RequestSpec:
    method: str
    endpoint: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[Mapping[str, Any]] = None
    auth_token: Optional[str] = None

    def __post_init__(self):
        method = self.method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported method {self.method!r}")
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        if self.body is not None:
            object.__setattr__(self, "body", MappingProxyType(dict(self.body)))


@dataclass(frozen=True)
class ResponseDescriptor:
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_empty(self) -> bool:
        return not self.body or not self.body.strip()

    def json(self) -> Any:
        """Parse the body. Raises ValueError when it is empty or not JSON."""
        return json.loads(self.body)

    def json_or_none(self) -> Any:
        if self.is_empty:
            return None
        try:
            return self.json()
        except ValueError:
            return None

    def json_field(self, name: str) -> Any:
        data = self.json_or_none()
        if isinstance(data, dict):
            return data.get(name)
        return None


class HttpTransport:
    def __init__(self, config: HarnessConfig, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        self._transport = transport

    def _headers(self, spec: RequestSpec) -> httpx.Headers:
        # caller headers replace defaults regardless of case
        headers = httpx.Headers({
            "Accept": "*/*",
            "User-Agent": self.config.user_agent,
            "Connection": "close",
        })
        if spec.body is not None:
            headers["Content-Type"] = "application/json"
        if spec.auth_token:
            headers["Authorization"] = f"Bearer {spec.auth_token}"
        headers.update(spec.headers)
        return headers

    def _client(self) -> httpx.Client:
        http2 = self.config.http_version == "HTTP/2"
        return httpx.Client(
            timeout=self.config.timeout,
            follow_redirects=False,
            http1=not http2,
            http2=http2,
            transport=self._transport,
        )

    def execute(self, spec: RequestSpec) -> ResponseDescriptor:
        content = None
        if spec.body is not None:
            content = json.dumps(dict(spec.body)).encode("utf-8")
        logger.debug("%s %s token=%s body=%s", spec.method, spec.endpoint,
                     mask_token(spec.auth_token), dict(spec.body) if spec.body is not None else None)
        try:
            with self._client() as client:
                response = client.request(
                    spec.method,
                    spec.endpoint,
                    headers=self._headers(spec),
                    content=content,
                )
        except httpx.TransportError as e:
            raise TransportError(f"{spec.method} {spec.endpoint} failed: {e}") from e
        logger.debug("%s %s -> %s %s", spec.method, spec.endpoint, response.status_code, response.text)
        return ResponseDescriptor(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.text,
        )
