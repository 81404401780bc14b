"""Configuration models for detector dispatch.

Settings come from ``DISPATCH_`` environment variables; values from an
optional YAML file and explicit keyword arguments take precedence over them.
A named file that is missing or is not a YAML mapping is a
``ConfigurationError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_TARGET_PORT = 8080
DEFAULT_DETECTOR_PATH = "/api/v1/text/contents"


class TlsConfig(BaseModel):
    """TLS material for reaching a detector over https."""
    ca_cert_path: Optional[str] = None
    client_cert_path: Optional[str] = None
    client_key_path: Optional[str] = None
    insecure: bool = False


class ServiceAddr(BaseModel):
    """Network address of a single detector service."""
    hostname: str = Field(..., min_length=1)
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    path: str = DEFAULT_DETECTOR_PATH
    tls: Optional[TlsConfig] = None


class DispatchConfig(BaseModel):
    """Tuning for the pooled HTTP client shared by a detector address."""
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    max_connections: int = Field(default=100, ge=1)
    max_keepalive_connections: int = Field(default=20, ge=0)
    user_agent: str = "detector-dispatch/0.1.0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    model_config = SettingsConfigDict(env_prefix="DISPATCH_", env_nested_delimiter="__")

    log_level: str = "INFO"
    log_format: str = "json"  # json | text
    default_target_port: int = Field(default=DEFAULT_TARGET_PORT, ge=1, le=65535)
    detectors: Dict[str, ServiceAddr] = {}
    client: DispatchConfig = DispatchConfig()

    def __init__(self, config_file: Optional[str] = None, **values: Any) -> None:
        file_values: Dict[str, Any] = {}
        if config_file:
            cfg_path = Path(config_file)
            if not cfg_path.is_file():
                raise ConfigurationError(f"config file not found: {config_file}")
            try:
                loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"unreadable config {config_file}: {exc}") from exc
            if not isinstance(loaded, dict):
                raise ConfigurationError(f"config {config_file} must be a mapping")
            file_values = loaded
        super().__init__(**{**file_values, **values})
