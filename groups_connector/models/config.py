"""Configuration models for the groups connector."""

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class GraphConfig(BaseModel):
    """Configuration for the Microsoft Graph connection."""

    tenant_id: str = Field(default=..., min_length=1, description="Directory (tenant) ID")
    client_id: str = Field(default=..., min_length=1, description="Application (client) ID")
    client_secret: str = Field(default=..., min_length=1, description="Client secret")
    base_url: HttpUrl = Field(
        default="https://graph.microsoft.com/v1.0", description="Graph API root URL"
    )
    authority_host: HttpUrl = Field(
        default="https://login.microsoftonline.com",
        description="Identity platform host used for token requests",
    )
    timeout_seconds: float = Field(
        default=30.0, gt=0, le=300, description="Per-request HTTP timeout"
    )


class SyncConfig(BaseModel):
    """Configuration for synchronization passes and schema registration."""

    watermark_path: str = Field(
        default="lastuploadtime.txt", description="File holding the last successful sync time"
    )
    use_local_store: bool = Field(
        default=True,
        description="Mirror directory groups into the local store to detect content changes",
    )
    database_path: str = Field(default="groups.db", description="SQLite database for the local store")
    schema_poll_interval_seconds: float = Field(
        default=3.0, gt=0, le=60, description="Delay between schema operation status checks"
    )
    schema_max_attempts: int = Field(
        default=100, ge=1, le=10000, description="Status checks before giving up on a schema"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=False,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stderr.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the APP_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    graph: GraphConfig
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
