"""
Proxy Error Taxonomy
====================

Every failure the forwarding proxy can produce is one of these exceptions.
They are raised while a request is prepared or forwarded and converted to a
JSON response at the single handling boundary in ``UpstreamProxy.handle``.

A non-2xx status returned by the upstream is not an error of the proxy and
has no exception here: it is relayed verbatim.
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import status
from fastapi.responses import JSONResponse


class ProxyError(Exception):
    """Base class for failures converted to an HTTP response by the proxy."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "proxy error"

    def body(self) -> Dict[str, Any]:
        return {"error": self.error}

    def headers(self) -> Optional[Dict[str, str]]:
        return None

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=self.body(),
            headers=self.headers(),
        )


class MethodNotAllowed(ProxyError):
    """Inbound method outside the allow-list. Caller-correctable."""

    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    error = "Method not allowed"

    def __init__(self, method: str, allowed: Iterable[str]):
        self.method = method
        self.allowed = tuple(allowed)
        super().__init__(f"{method} not in {', '.join(self.allowed)}")

    def headers(self) -> Dict[str, str]:
        return {"Allow": ", ".join(self.allowed)}


class PathNotAllowed(ProxyError):
    """Upstream path outside the configured path allow-list."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "Path not allowed"

    def __init__(self, upstream_path: str):
        self.upstream_path = upstream_path
        super().__init__(f"upstream path not allowed: /{upstream_path}")


class ConfigurationError(ProxyError):
    """Credential missing on the server. Recoverable only by redeploying."""

    def __init__(self, credential_name: str):
        self.credential_name = credential_name
        self.error = f"{credential_name} not set on server"
        super().__init__(self.error)


class UpstreamTimeout(ProxyError):
    """Upstream did not answer within the timeout budget."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error = "upstream timeout"


class UpstreamNetworkError(ProxyError):
    """
    Any other failure reaching or talking to the upstream (DNS, refused
    connection, TLS). ``detail`` must already be scrubbed of the credential.
    """

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)

    def body(self) -> Dict[str, Any]:
        return {"error": self.error, "detail": self.detail}
