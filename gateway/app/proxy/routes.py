"""
Proxy Routes - Upstream Request Forwarding
==========================================

Builds one FastAPI router per proxy mount. Every route, including the
catch-all wildcard, hands the request to ``UpstreamProxy.handle``.

Routes are registered for every HTTP method so that the proxy, not the
framework, decides which methods are allowed and advertises them in the
``Allow`` header of its 405 response.

Endpoints (per mount):
----------------------
- ANY <mount_prefix>
- ANY <mount_prefix>/{path:path}
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from .forwarder import ProxyConfig, UpstreamProxy

logger = logging.getLogger(__name__)

ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# ============================================================================
# Dependencies
# ============================================================================

def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Dependency to get the shared upstream HTTP client from app state.

    Args:
        request: FastAPI request object

    Returns:
        httpx.AsyncClient opened by the application lifespan
    """
    if not hasattr(request.app.state, "app_state"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="HTTP client not initialized"
        )

    client = request.app.state.app_state.http_client
    if not client:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="HTTP client not available"
        )

    return client


# ============================================================================
# Router Factory
# ============================================================================

def create_proxy_router(config: ProxyConfig) -> APIRouter:
    """
    Create the router for a single proxy mount.

    Args:
        config: Mount configuration, credential included

    Returns:
        APIRouter with the mount point and its wildcard registered
    """
    proxy = UpstreamProxy(config)
    router = APIRouter(prefix=config.mount_prefix)

    async def forward_root(
        request: Request,
        client: httpx.AsyncClient = Depends(get_http_client),
    ) -> Response:
        return await proxy.handle(request, "", client)

    async def forward(
        request: Request,
        path: str,
        client: httpx.AsyncClient = Depends(get_http_client),
    ) -> Response:
        return await proxy.handle(request, path, client)

    router.add_api_route(
        "",
        forward_root,
        methods=ROUTED_METHODS,
        name=f"{config.name}_proxy_root",
        include_in_schema=False,
    )
    router.add_api_route(
        "/{path:path}",
        forward,
        methods=ROUTED_METHODS,
        name=f"{config.name}_proxy",
    )

    logger.info(
        f"Mounted {config.name} proxy",
        extra={"mount_prefix": config.mount_prefix, "upstream_base": config.upstream_base},
    )
    return router
