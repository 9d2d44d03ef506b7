"""
Community AI Gateway Application

Server side of the community web app: credential-holding proxies for the
external AI chat APIs and a local posts search.

Modules:
- main: application factory, lifespan and system endpoints
- config: environment-driven settings
- proxy: upstream forwarding proxy
- posts: local posts listing and search
"""
