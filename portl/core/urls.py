# portl/core/urls.py
"""Absolute URL helpers for tenant storefronts and the main site."""

from urllib.parse import urlparse

from portl.core.config import settings


def _protocol() -> str:
    scheme = urlparse(settings.APP_URL).scheme
    return scheme or "https"


def tenant_url(subdomain: str, path: str = "/") -> str:
    """URL on a tenant's storefront, e.g. https://acme.portl.ph/checkout."""
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{_protocol()}://{subdomain}.{settings.ROOT_DOMAIN}{path}"


def main_url(path: str = "/") -> str:
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{settings.APP_URL.rstrip('/')}{path}"
