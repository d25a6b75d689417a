"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="readmaster-forum", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )

    # Authentication (tokens are issued upstream, only verified here)
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="JWT verification key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=15, description="Lifetime of locally minted access tokens"
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(default=10, description="Max Redis connections")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )
    redis_retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    redis_health_check_interval: int = Field(
        default=30, description="Health check interval"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="readmaster", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_datacenter: str | None = Field(
        default=None,
        description="Local datacenter (enables NetworkTopologyStrategy)",
    )
    cassandra_replication_factor: int = Field(
        default=1, description="Keyspace replication factor"
    )

    # Forum
    forum_max_reply_depth: int = Field(
        default=5, description="Maximum length of a reply's parent chain"
    )
    forum_posts_cache_ttl: int = Field(
        default=300, description="TTL of cached post listings (seconds)"
    )
    forum_reply_max_length: int = Field(
        default=50000, description="Maximum reply length (characters)"
    )
    forum_replies_limit: int = Field(
        default=50, description="Replies returned with a post detail"
    )
    forum_list_scan_limit: int = Field(
        default=1000, description="Max post rows scanned for one listing"
    )
    forum_reply_lock_timeout: float = Field(
        default=10.0, description="Lease of the per-post reply write lock (seconds)"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_to_file: bool = Field(default=False, description="Also write JSON log files")
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
