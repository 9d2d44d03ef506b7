"""
Proxy Package
=============

This package implements the forwarding proxy that relays browser requests
to the external AI chat APIs while keeping their credentials server-side.

Main Components:
----------------
- forwarder.py: ProxyConfig and the UpstreamProxy request handler
- errors.py: Error taxonomy converted to JSON responses
- routes.py: Router factory mounting one proxy per configured upstream

Usage:
------
    from gateway.app.proxy import create_proxy_router
    app.include_router(create_proxy_router(settings.openai_proxy))
"""

from .forwarder import ProxyConfig, UpstreamProxy
from .routes import create_proxy_router, get_http_client

__all__ = ["ProxyConfig", "UpstreamProxy", "create_proxy_router", "get_http_client"]
