"""Configuration module for toolhub-server using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolhubServerSettings(BaseSettings):
    """Main configuration settings for toolhub-server.

    All settings can be overridden via environment variables with the TOOLHUB_ prefix.
    For example, TOOLHUB_CACHE_TTL_SECONDS will override the cache_ttl_seconds setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Data locations (relative to data_dir)
    data_dir: str = "."
    servers_file: str = "servers.json"
    cache_dir: str = "cache"
    queue_dir: str = "queue"

    # Discovery
    cache_ttl_seconds: int = 3600

    # Immediate lane
    external_tool_timeout: float = 30.0

    # Background lane
    default_queue: str = "ai-functions"
    job_max_tries: int = 3
    job_timeout: int = 300

    # Execution
    execute_concurrently: bool = True

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="TOOLHUB_")

    # --- Resolved paths (computed from data_dir + relative paths) ---

    @property
    def resolved_servers_file(self) -> Path:
        """Get the full path to the tool servers file."""
        return Path(self.data_dir) / self.servers_file

    @property
    def resolved_cache_dir(self) -> Path:
        """Get the full path to the cache directory."""
        return Path(self.data_dir) / self.cache_dir

    @property
    def resolved_queue_dir(self) -> Path:
        """Get the full path to the job queue directory."""
        return Path(self.data_dir) / self.queue_dir
