"""Configuration management for fiddleserver."""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

DEFAULT_CONFIG_FILENAME = "fiddleserver.yaml"

# Environment variables that override values from the config file
ENV_OVERRIDES = {
    "S3_REGION": ("storage", "region"),
    "S3_BUCKET": ("storage", "bucket"),
    "GITHUB_CLIENT_ID": ("gist", "client_id"),
    "GITHUB_CLIENT_SECRET": ("gist", "client_secret"),
    "PORT": ("server", "port"),
}


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""


class StorageConfig(BaseModel):
    """Object store holding the published sandbox bundles."""

    region: Optional[str] = None
    bucket: Optional[str] = None
    connect_timeout: int = Field(default=5, ge=1)
    read_timeout: int = Field(default=10, ge=1)


class GistConfig(BaseModel):
    """Remote gist API configuration."""

    api_url: str = "https://api.github.com"
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    timeout: float = Field(default=10, gt=0)
    # Keeps us clear of the 5000 req/hour rate limit
    cache_ttl: float = Field(default=30, gt=0)
    source_extension: str = ".cljs"

    @property
    def credentials(self) -> Optional[tuple[str, str]]:
        """Basic auth pair, only when both halves are configured."""
        if self.client_id and self.client_secret:
            return (self.client_id, self.client_secret)
        return None


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    gzip_min_size: int = Field(default=1024, ge=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"


class FiddleConfig(BaseModel):
    """Main fiddleserver configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    gist: GistConfig = Field(default_factory=GistConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def require_storage(self) -> None:
        """Fail fast when the object store cannot be addressed."""
        missing = [
            name
            for name, value in (
                ("storage.region (S3_REGION)", self.storage.region),
                ("storage.bucket (S3_BUCKET)", self.storage.bucket),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    return Path(os.environ.get("FIDDLESERVER_CONFIG", DEFAULT_CONFIG_FILENAME))


def get_default_config() -> str:
    """Get the default configuration as YAML string."""
    return """# fiddleserver configuration

#----------------------------------------------------------------------
# OBJECT STORE
#----------------------------------------------------------------------
storage:
  # Overridden by S3_REGION / S3_BUCKET
  region: null
  bucket: null
  connect_timeout: 5
  read_timeout: 10

#----------------------------------------------------------------------
# GIST API
#----------------------------------------------------------------------
gist:
  api_url: https://api.github.com
  # Overridden by GITHUB_CLIENT_ID / GITHUB_CLIENT_SECRET
  client_id: null
  client_secret: null
  timeout: 10
  cache_ttl: 30
  source_extension: .cljs

#----------------------------------------------------------------------
# SERVER
#----------------------------------------------------------------------
server:
  host: 0.0.0.0
  # Overridden by PORT
  port: 8080
  gzip_min_size: 1024

#----------------------------------------------------------------------
# LOGGING
#----------------------------------------------------------------------
logging:
  level: INFO
"""


def create_default_config(path: Optional[Path] = None) -> Path:
    """Create the default configuration file."""
    config_path = path or get_config_path()
    if not config_path.exists():
        config_path.write_text(get_default_config())
    return config_path


def apply_env_overrides(data: dict[str, Any], environ: Optional[dict[str, str]] = None) -> dict[str, Any]:
    """Overlay environment variables onto raw config data."""
    environ = os.environ if environ is None else environ
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            data.setdefault(section, {})
            if data[section] is None:
                data[section] = {}
            data[section][key] = value
    return data


def load_config(path: Optional[Path] = None, environ: Optional[dict[str, str]] = None) -> FiddleConfig:
    """Load configuration from file (if present) and the environment."""
    config_path = path or get_config_path()

    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid configuration file {config_path}: expected a mapping")

    try:
        return FiddleConfig(**apply_env_overrides(data, environ))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


# Global config instance
_config: FiddleConfig | None = None


def get_config() -> FiddleConfig:
    """Get the current configuration (loads if not already loaded)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(path: Optional[Path] = None) -> FiddleConfig:
    """Reload configuration from file and environment."""
    global _config
    _config = load_config(path)
    return _config
