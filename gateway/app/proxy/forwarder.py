"""
Upstream Forwarding Proxy
=========================

Relays every request under a mount prefix to a single upstream API while
keeping the upstream credential on the server.

Per request:
------------
1. Reject methods outside the allow-list (405 + Allow header)
2. Resolve the upstream path; reject "." or ".." segments and, if configured,
   paths outside the allow-list (403)
3. Fail fast when the credential is not configured (500, no upstream call)
4. Forward with ``Authorization: Bearer <credential>`` and the caller's
   Content-Type only; every other inbound header is dropped
5. Bound the upstream call by ``timeout_seconds`` (504 on expiry)
6. Relay upstream status, content type and body bytes unchanged

There is no retry: each accepted request produces exactly one upstream attempt.
"""

import asyncio
import json
import logging
from fnmatch import fnmatchcase
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

import httpx
from fastapi import Request, Response
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .errors import (
    ConfigurationError,
    MethodNotAllowed,
    PathNotAllowed,
    ProxyError,
    UpstreamNetworkError,
    UpstreamTimeout,
)

logger = logging.getLogger(__name__)

BODYLESS_METHODS = frozenset({"GET", "HEAD"})
DEFAULT_CONTENT_TYPE = "application/json"
EMPTY_JSON_BODY = b"{}"
REDACTED = "[redacted]"
DOT_SEGMENTS = frozenset({".", ".."})
PATH_SEGMENT_SAFE = ":@!$&'()*+,;="


class ProxyConfig(BaseModel):
    """
    Configuration of one proxy mount.

    Attributes:
        name: Short label used in logs (e.g. "openai")
        mount_prefix: Inbound path prefix, e.g. "/api/openai"
        upstream_base: Base URL the wildcard path is appended to
        allowed_methods: Methods accepted, in the order advertised by ``Allow``
        credential_name: Environment variable name, used in the 500 message
        credential: Bearer token attached upstream, None when not configured
        timeout_seconds: Upper bound on the upstream call
        allowed_paths: Glob patterns for the upstream path; empty allows any
    """

    model_config = ConfigDict(frozen=True)

    name: str
    mount_prefix: str
    upstream_base: str
    allowed_methods: Tuple[str, ...] = ("POST", "GET", "PUT", "DELETE")
    credential_name: str
    credential: Optional[SecretStr] = Field(default=None, repr=False)
    timeout_seconds: float = Field(default=20.0, gt=0)
    allowed_paths: Tuple[str, ...] = ()

    @field_validator("allowed_methods")
    @classmethod
    def normalize_methods(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v:
            raise ValueError("allowed_methods must not be empty")
        return tuple(method.upper() for method in v)


# ============================================================================
# Request Building
# ============================================================================

def join_upstream_path(wildcard: str) -> str:
    """Join the non-empty segments of the wildcard remainder with '/'."""
    return "/".join(segment for segment in wildcard.split("/") if segment)


def has_dot_segments(upstream_path: str) -> bool:
    """True when the path contains a '.' or '..' segment."""
    return any(segment in DOT_SEGMENTS for segment in upstream_path.split("/"))


def build_upstream_url(upstream_base: str, upstream_path: str, query: str = "") -> str:
    """
    Append the upstream path and the raw inbound query string to the base.

    Each path segment is percent-encoded again, so a decoded '?', '#' or
    '%' in the wildcard stays part of the path. An empty path maps to the
    upstream base itself.

    Example:
        >>> build_upstream_url("https://api.openai.com/v1", "threads/abc/runs")
        'https://api.openai.com/v1/threads/abc/runs'
    """
    url = upstream_base
    if upstream_path:
        encoded = "/".join(
            quote(segment, safe=PATH_SEGMENT_SAFE) for segment in upstream_path.split("/")
        )
        url = f"{upstream_base.rstrip('/')}/{encoded}"
    if query:
        url = f"{url}?{query}"
    return url


def build_upstream_headers(credential: str, inbound_content_type: Optional[str]) -> Dict[str, str]:
    """
    Build headers for the upstream request.

    Only the injected Authorization and the caller's Content-Type are sent;
    cookies, host and every other inbound header stay behind.
    """
    headers = {"Authorization": f"Bearer {credential}"}
    if inbound_content_type:
        headers["Content-Type"] = inbound_content_type
    return headers


def build_upstream_body(method: str, raw_body: bytes) -> Optional[bytes]:
    """
    Serialize the inbound body as JSON text.

    GET and HEAD never carry a body. An empty or unparseable body is
    replaced with an empty JSON object instead of failing the request.
    """
    if method in BODYLESS_METHODS:
        return None
    if not raw_body:
        return EMPTY_JSON_BODY
    try:
        payload = json.loads(raw_body)
        return json.dumps(payload).encode("utf-8")
    except (ValueError, TypeError, RecursionError):
        return EMPTY_JSON_BODY


def is_path_allowed(upstream_path: str, patterns: Iterable[str]) -> bool:
    """
    Match the upstream path against glob patterns, one segment at a time.

    ``*`` matches within a single segment; a trailing ``**`` segment matches
    one or more remaining segments. No patterns means every path is allowed.
    """
    patterns = tuple(patterns)
    if not patterns:
        return True
    segments = upstream_path.split("/") if upstream_path else []
    return any(_match_segments(segments, pattern.strip("/").split("/")) for pattern in patterns)


def _match_segments(segments: List[str], pattern: List[str]) -> bool:
    if pattern and pattern[-1] == "**":
        head = pattern[:-1]
        if len(segments) <= len(head):
            return False
        segments = segments[:len(head)]
        pattern = head
    if len(segments) != len(pattern):
        return False
    return all(fnmatchcase(segment, part) for segment, part in zip(segments, pattern))


def scrub(message: str, secret: str) -> str:
    """Replace every occurrence of the secret in a message."""
    if secret:
        return message.replace(secret, REDACTED)
    return message


# ============================================================================
# Proxy
# ============================================================================

class UpstreamProxy:
    """
    Stateless forwarder bound to one ``ProxyConfig``.

    The credential is taken from the config handed in at construction and is
    never looked up again, logged, or echoed in a response.
    """

    def __init__(self, config: ProxyConfig):
        self.config = config

    @property
    def _secret(self) -> str:
        if self.config.credential is None:
            return ""
        return self.config.credential.get_secret_value()

    async def handle(self, request: Request, wildcard: str, client: httpx.AsyncClient) -> Response:
        """
        Forward one inbound request and return the response for the caller.

        All proxy failures are converted to their JSON error response here;
        none propagate to the framework.

        Args:
            request: Inbound request
            wildcard: Path remainder captured after the mount prefix
            client: Shared HTTP client used for the upstream call

        Returns:
            Upstream passthrough response, or a 403/405/500/504 error response
        """
        try:
            return await self._forward(request, wildcard, client)
        except ProxyError as exc:
            return exc.to_response()

    async def _forward(self, request: Request, wildcard: str, client: httpx.AsyncClient) -> Response:
        config = self.config
        method = request.method.upper()
        upstream_path = join_upstream_path(wildcard)
        logger.info(
            f"[{config.name}-proxy] {method} /{upstream_path}",
            extra={"proxy": config.name, "method": method, "upstream_path": upstream_path},
        )

        if method not in config.allowed_methods:
            raise MethodNotAllowed(method, config.allowed_methods)

        # The upstream client resolves dot segments, which would escape the base path
        if has_dot_segments(upstream_path) or not is_path_allowed(upstream_path, config.allowed_paths):
            logger.warning(f"[{config.name}-proxy] path not allowed: /{upstream_path}")
            raise PathNotAllowed(upstream_path)

        secret = self._secret
        if not secret:
            logger.error(f"[{config.name}-proxy] {config.credential_name} is not configured")
            raise ConfigurationError(config.credential_name)

        url = build_upstream_url(config.upstream_base, upstream_path, request.url.query)
        headers = build_upstream_headers(secret, request.headers.get("content-type"))
        body = build_upstream_body(method, await request.body())

        try:
            upstream = await asyncio.wait_for(
                client.request(method, url, headers=headers, content=body),
                timeout=config.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.error(f"[{config.name}-proxy] upstream timeout /{upstream_path}")
            raise UpstreamTimeout()
        except Exception as e:
            logger.error(
                f"[{config.name}-proxy] upstream error /{upstream_path}: {type(e).__name__}"
            )
            raise UpstreamNetworkError(scrub(str(e) or type(e).__name__, secret))

        content_type = upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers={"Content-Type": content_type},
        )
