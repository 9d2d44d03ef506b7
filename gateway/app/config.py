"""
Configuration module for the Community AI Gateway.

This module uses Pydantic Settings to load and validate environment variables
for the upstream AI proxies, the local posts search and the HTTP surface
(CORS, logging, bind address).

Environment variables are loaded from .env file or system environment.
Credentials are read once at process start and handed to the proxy as
explicit configuration; nothing reads them from the environment per request.
"""

from functools import lru_cache
from typing import List, Optional, Tuple

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .proxy.forwarder import ProxyConfig


DEFAULT_ALLOWED_METHODS = "POST,GET,PUT,DELETE"


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # =========================================================================
    # OpenAI Upstream
    # =========================================================================

    OPENAI_API_KEY: Optional[SecretStr] = Field(
        None,
        description="OpenAI API key attached to proxied requests (never logged)",
    )

    OPENAI_UPSTREAM_BASE_URL: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL requests under OPENAI_MOUNT_PREFIX are forwarded to",
    )

    OPENAI_MOUNT_PREFIX: str = Field(
        default="/api/openai",
        description="Path prefix the OpenAI proxy is mounted at",
    )

    OPENAI_ALLOWED_PATHS: Optional[str] = Field(
        None,
        description="Comma-separated glob patterns of upstream paths (empty = any path)",
    )

    # =========================================================================
    # Poe Upstream
    # =========================================================================

    POE_API_KEY: Optional[SecretStr] = Field(
        None,
        description="Poe API key attached to proxied requests (never logged)",
    )

    POE_UPSTREAM_BASE_URL: str = Field(
        default="https://api.poe.com/v1",
        description="Base URL requests under POE_MOUNT_PREFIX are forwarded to",
    )

    POE_MOUNT_PREFIX: str = Field(
        default="/api/poe",
        description="Path prefix the Poe proxy is mounted at",
    )

    POE_ALLOWED_PATHS: Optional[str] = Field(
        None,
        description="Comma-separated glob patterns of upstream paths (empty = any path)",
    )

    # =========================================================================
    # Shared Proxy Behaviour
    # =========================================================================

    PROXY_ALLOWED_METHODS: str = Field(
        default=DEFAULT_ALLOWED_METHODS,
        description="Comma-separated HTTP methods the proxies accept",
    )

    PROXY_TIMEOUT_SECONDS: float = Field(
        default=20.0,
        description="Upper bound on a single upstream call",
        gt=0,
        le=300,
    )

    # =========================================================================
    # Posts Search
    # =========================================================================

    POSTS_DATA_PATH: str = Field(
        default="data/posts.json",
        description="JSON file holding the posts served by /api/posts and /api/search",
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    GATEWAY_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the gateway server",
    )

    GATEWAY_PORT: int = Field(
        default=3000,
        description="Port to bind the gateway server",
        ge=1,
        le=65535,
    )

    ALLOWED_ORIGINS: Optional[str] = Field(
        "http://127.0.0.1:5500,http://localhost:5500",
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        return _split_csv(self.ALLOWED_ORIGINS)

    @property
    def allowed_methods(self) -> Tuple[str, ...]:
        return tuple(method.upper() for method in _split_csv(self.PROXY_ALLOWED_METHODS))

    @property
    def openai_proxy(self) -> ProxyConfig:
        return ProxyConfig(
            name="openai",
            mount_prefix=self.OPENAI_MOUNT_PREFIX,
            upstream_base=self.OPENAI_UPSTREAM_BASE_URL,
            allowed_methods=self.allowed_methods,
            credential_name="OPENAI_API_KEY",
            credential=self.OPENAI_API_KEY,
            timeout_seconds=self.PROXY_TIMEOUT_SECONDS,
            allowed_paths=tuple(_split_csv(self.OPENAI_ALLOWED_PATHS)),
        )

    @property
    def poe_proxy(self) -> ProxyConfig:
        return ProxyConfig(
            name="poe",
            mount_prefix=self.POE_MOUNT_PREFIX,
            upstream_base=self.POE_UPSTREAM_BASE_URL,
            allowed_methods=self.allowed_methods,
            credential_name="POE_API_KEY",
            credential=self.POE_API_KEY,
            timeout_seconds=self.PROXY_TIMEOUT_SECONDS,
            allowed_paths=tuple(_split_csv(self.POE_ALLOWED_PATHS)),
        )

    @property
    def proxy_configs(self) -> List[ProxyConfig]:
        """Every proxy mount, in the order the routers are registered."""
        return [self.openai_proxy, self.poe_proxy]

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("PROXY_ALLOWED_METHODS")
    @classmethod
    def validate_allowed_methods(cls, v: str) -> str:
        """
        Validate that PROXY_ALLOWED_METHODS names at least one HTTP method.

        Raises:
            ValueError: If the list is empty or contains a non-token entry
        """
        methods = _split_csv(v)
        if not methods:
            raise ValueError("PROXY_ALLOWED_METHODS must contain at least one method")

        for method in methods:
            if not method.isalpha():
                raise ValueError(f"Invalid HTTP method: '{method}'")

        return v

    @field_validator("OPENAI_MOUNT_PREFIX", "POE_MOUNT_PREFIX")
    @classmethod
    def validate_mount_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith("/"):
            raise ValueError(f"Mount prefix must start with '/': '{v}'")
        return v

    @field_validator("OPENAI_UPSTREAM_BASE_URL", "POE_UPSTREAM_BASE_URL")
    @classmethod
    def validate_upstream_base(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Upstream base URL must be http(s): '{v}'")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}, got: {v}")
        return v.upper()


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If environment variables are invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Validate configuration and return a status report.

    A missing credential is only a warning: the affected proxy answers 500
    on every route, the rest of the service keeps working.

    Returns:
        Dictionary with validation status, errors and warnings.
    """
    errors = []
    warnings = []

    prefixes = [config.mount_prefix for config in settings.proxy_configs]
    if len(set(prefixes)) != len(prefixes):
        errors.append(f"Proxy mount prefixes must be distinct: {prefixes}")

    for config in settings.proxy_configs:
        if config.credential is None or not config.credential.get_secret_value():
            warnings.append(
                f"{config.credential_name} is not set; {config.mount_prefix} will respond 500"
            )
        if not config.allowed_paths:
            warnings.append(
                f"{config.mount_prefix} forwards any upstream path "
                f"(set {config.name.upper()}_ALLOWED_PATHS to restrict it)"
            )

    if not settings.allowed_origins_list:
        warnings.append("ALLOWED_ORIGINS is empty; browsers on other origins will be blocked")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "mounts": prefixes,
    }
