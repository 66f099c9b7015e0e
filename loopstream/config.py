"""
Configuration management for loopstream.
Provides centralized configuration with environment variable support.
"""

import logging
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StreamClientConfig(BaseSettings):
    """Stream client configuration with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LOOPSTREAM_",
        case_sensitive=False,
        extra="ignore",
    )

    # Daemon connection
    base_url: str = Field(default="http://127.0.0.1:7700", description="Base URL of the loop daemon")
    token: Optional[str] = Field(default=None, description="Bearer token sent with every stream request")
    connect_timeout: float = Field(default=10.0, gt=0, description="Per-attempt connect timeout in seconds")

    # Reconnection backoff
    initial_backoff_ms: float = Field(default=1000, gt=0, description="Wait before the first reconnect")
    backoff_multiplier: float = Field(default=2.0, ge=1.0, description="Growth factor per consecutive failure")
    max_backoff_ms: float = Field(default=30000, gt=0, description="Upper bound on the reconnect wait")
    backoff_jitter: float = Field(default=0.0, ge=0.0, le=1.0, description="Random spread added to each wait, as a fraction")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )

    # Development
    debug: bool = Field(default=False, description="Enable debug mode")


# Global configuration instance
_config: Optional[StreamClientConfig] = None


def get_config() -> StreamClientConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StreamClientConfig()
        setup_logging(_config)
    return _config


def setup_logging(config: StreamClientConfig) -> None:
    """Set up logging based on configuration."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=config.log_format
    )

    if config.debug:
        logging.getLogger("loopstream").setLevel(logging.DEBUG)
    else:
        # Streams keep a request open for minutes; httpx logs every (re)connect
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def reload_config() -> StreamClientConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
